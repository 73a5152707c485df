from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Mapping, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from shuttle.domain.models import (
    Classification,
    Match,
    MatchGroup,
    Player,
    Tournament,
    TournamentFormat,
)
from shuttle.domain.updater import group_standings

BRACKET_COLUMNS = ["Round", "Match", "Group", "Side A", "Score A", "Score B", "Side B", "Winner"]
STANDINGS_COLUMNS = ["Group", "Rank", "Team", "Wins", "Points", "Played"]
ROSTER_COLUMNS = ["Name", "Classification"]

HEADER_FILL = PatternFill(start_color="1F4E78", end_color="1F4E78", fill_type="solid")
WINNER_FONT = Font(bold=True, color="006100")


def roster_csv_filename(today: date | None = None) -> str:
    return f"badminton_players_{(today or date.today()).isoformat()}.csv"


def _name(tournament: Tournament, competitor_id: str | None) -> str:
    competitor = tournament.competitor(competitor_id)
    return competitor.name if competitor is not None else "TBD"


def bracket_rows(tournament: Tournament) -> list[list[object]]:
    rows: list[list[object]] = []
    ordered = sorted(tournament.matches, key=lambda m: (m.round, m.match_index))
    for match in ordered:
        rows.append(
            [
                match.round,
                match.id,
                match.group.value if match.group else "",
                _name(tournament, match.competitor_a_id),
                match.score_a,
                match.score_b,
                _name(tournament, match.competitor_b_id),
                _name(tournament, match.winner_id) if match.winner_id else "",
            ]
        )
    return rows


def standings_rows(tournament: Tournament) -> list[list[object]]:
    rows: list[list[object]] = []
    for group in (MatchGroup.A, MatchGroup.B):
        for rank, team in enumerate(group_standings(tournament, group), start=1):
            stats = team.stats
            rows.append(
                [
                    group.value,
                    rank,
                    team.name,
                    stats.wins if stats else 0,
                    stats.points if stats else 0,
                    stats.played if stats else 0,
                ]
            )
    return rows


def tournament_header_lines(tournament: Tournament) -> list[str]:
    champion = tournament.champion
    return [
        f"Tournament {tournament.id}",
        f"Format: {tournament.format.value} ({tournament.kind.value})",
        f"Created: {tournament.created_at:%Y-%m-%d %H:%M}",
        f"Status: {tournament.status.value}",
        f"Champion: {champion.name if champion else '-'}",
    ]


class ExportService:
    def export_roster_csv(self, path: str | Path, players: Sequence[Player]) -> Path:
        """Write one name per line with a BOM so spreadsheet apps detect UTF-8."""
        if not players:
            raise ValueError("Roster is empty; nothing to export.")
        output_path = Path(path)
        content = "\ufeff" + "\n".join(player.name for player in players)
        output_path.write_text(content, encoding="utf-8")
        return output_path

    def export_tournament_xlsx(self, path: str | Path, tournament: Tournament) -> Path:
        workbook = Workbook()
        bracket_sheet = workbook.active
        bracket_sheet.title = "Bracket"
        header_lines = tournament_header_lines(tournament)
        rows = bracket_rows(tournament)
        self._write_table(bracket_sheet, header_lines, BRACKET_COLUMNS, rows)
        self._highlight_winners(bracket_sheet, tournament, len(header_lines) + 2)

        if tournament.format == TournamentFormat.ROUND_ROBIN_6:
            standings_sheet = workbook.create_sheet("Standings")
            self._write_table(
                standings_sheet,
                header_lines[:2],
                STANDINGS_COLUMNS,
                standings_rows(tournament),
            )

        output_path = Path(path)
        workbook.save(output_path)
        return output_path

    def export_roster_xlsx(
        self,
        path: str | Path,
        players: Sequence[Player],
        classification: Mapping[str, Classification] | None = None,
    ) -> Path:
        if not players:
            raise ValueError("Roster is empty; nothing to export.")
        classification = classification or {}
        rows = [
            [player.name, Classification.parse(classification.get(player.id)).value]
            for player in players
        ]
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "Roster"
        self._write_table(sheet, [], ROSTER_COLUMNS, rows)
        output_path = Path(path)
        workbook.save(output_path)
        return output_path

    def _write_table(
        self,
        sheet: Worksheet,
        header_lines: Sequence[str],
        columns: Sequence[str],
        rows: Sequence[Sequence[object]],
    ) -> None:
        current_row = 1
        for line in header_lines:
            sheet.cell(row=current_row, column=1, value=line)
            current_row += 1

        header_row = current_row
        for column, header_text in enumerate(columns, start=1):
            cell = sheet.cell(row=header_row, column=column, value=header_text)
            cell.font = Font(bold=True, color="FFFFFF")
            cell.alignment = Alignment(horizontal="center", vertical="center")
            cell.fill = HEADER_FILL

        current_row += 1
        alignment = Alignment(horizontal="left", vertical="top", wrap_text=True)
        for row in rows:
            for column, value in enumerate(row, start=1):
                cell = sheet.cell(row=current_row, column=column, value=value)
                cell.alignment = alignment
            current_row += 1

        sheet.freeze_panes = f"A{header_row + 1}"

        for column_index in range(1, len(columns) + 1):
            max_length = len(str(columns[column_index - 1]))
            for row_index in range(header_row + 1, current_row):
                value = sheet.cell(row=row_index, column=column_index).value
                if value is None:
                    continue
                max_length = max(max_length, len(str(value)))
            sheet.column_dimensions[get_column_letter(column_index)].width = min(max_length + 2, 60)

        sheet.page_setup.orientation = "landscape"
        sheet.page_setup.fitToWidth = 1
        sheet.page_setup.fitToHeight = 0

    @staticmethod
    def _highlight_winners(sheet: Worksheet, tournament: Tournament, first_row: int) -> None:
        side_a_column = BRACKET_COLUMNS.index("Side A") + 1
        side_b_column = BRACKET_COLUMNS.index("Side B") + 1
        ordered: list[Match] = sorted(tournament.matches, key=lambda m: (m.round, m.match_index))
        for offset, match in enumerate(ordered):
            if match.winner_id is None:
                continue
            column = side_a_column if match.winner_id == match.competitor_a_id else side_b_column
            sheet.cell(row=first_row + offset, column=column).font = WINNER_FONT

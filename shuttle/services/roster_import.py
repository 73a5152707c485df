from __future__ import annotations

import csv
import io
import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from shuttle.domain.models import Player
from shuttle.services.audit_log import IMPORT_ROSTER, AuditLogService
from shuttle.services.roster import RosterService, normalize_names
from shuttle.settings import get_roster_path

logger = logging.getLogger(__name__)

NAME_HEADER_SYNONYMS = {"name", "player", "players", "姓名", "名字", "選手", "球員"}


@dataclass
class RosterImportReport:
    source: str
    names: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _normalize_header(value: object) -> str:
    if value is None:
        return ""
    text = str(value).strip().lower()
    return "".join(ch for ch in text if ch.isalnum())


def _clean_cell(value: object) -> str:
    text = "" if value is None else str(value).strip()
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        text = text[1:-1].strip()
    return text.replace('""', '"')


def parse_roster_csv(text: str) -> list[str]:
    """Return unique names from the first column of a CSV export."""
    text = text.lstrip("\ufeff")
    names: list[str] = []
    for row in csv.reader(io.StringIO(text)):
        if not row:
            continue
        cell = _clean_cell(row[0])
        if cell:
            names.append(cell)
    return normalize_names(names)


def parse_name_list(text: str) -> list[str]:
    """Return unique names from pasted text, one name per line."""
    return normalize_names(line.strip() for line in text.splitlines())


def _detect_name_column(row_values: Iterable[object]) -> int | None:
    for idx, value in enumerate(row_values):
        if _normalize_header(value) in NAME_HEADER_SYNONYMS:
            return idx
    return None


def load_roster_xlsx(path: str | Path) -> list[str]:
    """Read player names from the first worksheet of an ``.xlsx`` file."""
    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, OSError, KeyError) as exc:
        raise ValueError(f"Cannot read roster workbook {path}: {exc}") from exc
    try:
        sheet = workbook.worksheets[0]
        rows = [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()

    rows = [row for row in rows if any(cell not in (None, "") for cell in row)]
    if not rows:
        return []
    column = _detect_name_column(rows[0])
    if column is None:
        column, data_rows = 0, rows
    else:
        data_rows = rows[1:]
    return normalize_names(
        _clean_cell(row[column]) for row in data_rows if column < len(row)
    )


def read_roster_file(path: str | Path) -> RosterImportReport:
    source = Path(path)
    suffix = source.suffix.lower()
    report = RosterImportReport(source=str(source))
    if suffix in {".xlsx", ".xlsm"}:
        report.names = load_roster_xlsx(source)
    elif suffix in {".csv", ".txt", ""}:
        text = source.read_text(encoding="utf-8-sig")
        report.names = parse_roster_csv(text) if suffix == ".csv" else parse_name_list(text)
    else:
        raise ValueError(f"Unsupported roster format: {source.suffix}")
    if not report.names:
        report.warnings.append("No player names found.")
    return report


def import_roster_file(connection: sqlite3.Connection, path: str | Path) -> list[Player]:
    """Replace the stored roster with the names found in ``path``."""
    audit_log = AuditLogService(connection)
    try:
        report = read_roster_file(path)
    except (OSError, ValueError) as exc:
        audit_log.log_error("Roster import failed", exc, context={"path": str(path)})
        raise
    if not report.names:
        audit_log.log_event(
            IMPORT_ROSTER,
            "Roster import skipped",
            f"{path}: no player names found; roster left unchanged.",
            level="warning",
            context={"path": str(path)},
        )
        return RosterService(connection).players()

    audit_log.log_event(
        IMPORT_ROSTER,
        "Roster imported",
        f"{len(report.names)} names read from {path}.",
        context={"path": str(path), "count": len(report.names)},
    )
    return RosterService(connection).replace_roster(report.names, source=str(path))


def load_configured_roster(connection: sqlite3.Connection) -> list[Player]:
    """Import the configured roster file when the stored roster is empty.

    Returns the roster after the import, or the current roster when nothing
    is configured or players are already stored.
    """
    roster = RosterService(connection)
    players = roster.players()
    path = get_roster_path()
    if players or not path:
        return players
    logger.info("Loading configured roster from %s", path)
    return import_roster_file(connection, path)

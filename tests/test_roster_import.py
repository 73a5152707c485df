from pathlib import Path

import pytest

from shuttle.db.database import get_connection
from shuttle.services.audit_log import ERROR, IMPORT_ROSTER, AuditLogService
from shuttle.services.roster import RosterService
from shuttle.services.roster_import import (
    import_roster_file,
    load_configured_roster,
    load_roster_xlsx,
    parse_name_list,
    parse_roster_csv,
    read_roster_file,
)
from tests.helpers.roster_factory import make_roster_xlsx


def test_parse_roster_csv_uses_first_column() -> None:
    text = '\ufeff小戴,Taipei\r\n"王齊麟",x\n\n"Lee ""Dan""",y\n小戴,dup\n'
    assert parse_roster_csv(text) == ["小戴", "王齊麟", 'Lee "Dan"']


def test_parse_name_list_skips_blank_lines() -> None:
    assert parse_name_list("  Amy \n\nBob\nAmy\n") == ["Amy", "Bob"]


def test_load_roster_xlsx_detects_name_header(tmp_path: Path) -> None:
    path = make_roster_xlsx(
        tmp_path,
        headers=["#", "Name", "Club"],
        rows=[[1, "Amy", "A"], [2, "Bob", "B"], [3, None, "C"]],
    )
    assert load_roster_xlsx(path) == ["Amy", "Bob"]


def test_load_roster_xlsx_without_header_reads_first_column(tmp_path: Path) -> None:
    path = make_roster_xlsx(tmp_path, rows=[["Amy"], ["Bob"], ["Amy"]])
    assert load_roster_xlsx(path) == ["Amy", "Bob"]


def test_broken_workbook_raises_value_error(tmp_path: Path) -> None:
    broken = tmp_path / "broken.xlsx"
    broken.write_text("not-an-xlsx", encoding="utf-8")
    with pytest.raises(ValueError):
        load_roster_xlsx(broken)


def test_unsupported_format_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "roster.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        read_roster_file(path)


def test_empty_file_reports_warning(tmp_path: Path) -> None:
    path = tmp_path / "empty.csv"
    path.write_text("\n\n", encoding="utf-8")
    report = read_roster_file(path)
    assert report.names == []
    assert report.warnings


def test_import_roster_file_replaces_roster_and_logs(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    RosterService(connection).add_player("Old")
    csv_path = tmp_path / "players.csv"
    csv_path.write_text("Amy\nBob\n", encoding="utf-8")

    players = import_roster_file(connection, csv_path)

    assert [p.name for p in players] == ["Amy", "Bob"]
    events = AuditLogService(connection).list_events(event_type=IMPORT_ROSTER)
    assert len(events) == 1
    assert events[0].context["count"] == 2


def test_import_of_empty_file_keeps_roster(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    RosterService(connection).add_player("Old")
    txt_path = tmp_path / "players.txt"
    txt_path.write_text("", encoding="utf-8")

    players = import_roster_file(connection, txt_path)

    assert [p.name for p in players] == ["Old"]
    events = AuditLogService(connection).list_events(event_type=IMPORT_ROSTER)
    assert events[0].level == "warning"


def test_failed_import_is_logged(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    with pytest.raises(ValueError):
        import_roster_file(connection, tmp_path / "roster.pdf")
    events = AuditLogService(connection).list_events(event_type=ERROR)
    assert len(events) == 1
    assert events[0].context["error_type"] == "ValueError"


def test_configured_roster_loads_into_empty_roster(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    csv_path = tmp_path / "default.csv"
    csv_path.write_text("Amy\nBob\n", encoding="utf-8")
    monkeypatch.setenv("SHUTTLE_ROSTER_PATH", str(csv_path))
    connection = get_connection(tmp_path / "app.db")

    players = load_configured_roster(connection)

    assert [p.name for p in players] == ["Amy", "Bob"]
    assert AuditLogService(connection).list_events(event_type=IMPORT_ROSTER)


def test_configured_roster_never_overwrites_stored_players(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    csv_path = tmp_path / "default.csv"
    csv_path.write_text("Amy\nBob\n", encoding="utf-8")
    monkeypatch.setenv("SHUTTLE_ROSTER_PATH", str(csv_path))
    connection = get_connection(tmp_path / "app.db")
    RosterService(connection).add_player("Kept")

    players = load_configured_roster(connection)

    assert [p.name for p in players] == ["Kept"]
    assert not AuditLogService(connection).list_events(event_type=IMPORT_ROSTER)


def test_no_configured_roster_leaves_roster_empty(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg"))
    monkeypatch.delenv("SHUTTLE_ROSTER_PATH", raising=False)
    connection = get_connection(tmp_path / "app.db")

    assert load_configured_roster(connection) == []

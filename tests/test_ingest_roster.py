from pathlib import Path

from teamsplit.ingest import RosterRow, load_records_from_csv, load_roster_csv, rows_to_records
from teamsplit.models import AgeGroup, Position


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "roster.csv"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_roster_with_default_columns(tmp_path):
    path = _write(
        tmp_path,
        "id,name,age_group,position,strength,active\n"
        "k1,Karl,AH,Torwart,4,\n"
        "s1,Sven,Ü32,vorne,,true\n"
        "r1,Rudi,,hinten,7,false\n",
    )

    records = load_records_from_csv(path)

    assert [r.player_id for r in records] == ["k1", "s1", "r1"]
    karl, sven, rudi = records
    assert karl.position is Position.GOALKEEPER and karl.age_group is AgeGroup.SENIOR
    assert karl.active is True
    assert sven.strength == 3
    assert sven.age_group is AgeGroup.OVER32
    assert rudi.strength == 3
    assert rudi.active is False


def test_custom_mapping_joins_columns(tmp_path):
    path = _write(
        tmp_path,
        "Vorname,Nachname,Rolle,Stärke\n"
        "Jana,Berg,vorne,5\n"
        "Tom,Klein,,2\n",
    )
    mapping = {"name": "Vorname|Nachname", "position": "Rolle", "strength": "Stärke"}

    rows = load_roster_csv(path, mapping=mapping)
    assert [row.raw_name for row in rows] == ["Jana Berg", "Tom Klein"]

    records = rows_to_records(rows)
    assert [r.player_id for r in records] == ["jana-berg", "tom-klein"]
    assert records[0].strength == 5
    assert records[1].position is Position.UNSET


def test_rows_without_name_are_skipped():
    rows = [RosterRow(raw_name=""), RosterRow(raw_name="Mia", raw_id="m")]
    assert [r.player_id for r in rows_to_records(rows)] == ["m"]


def test_duplicate_ids_get_suffix():
    rows = [
        RosterRow(raw_name="Max"),
        RosterRow(raw_name="max"),
        RosterRow(raw_name="Other", raw_id="max"),
    ]
    assert [r.player_id for r in rows_to_records(rows)] == ["max", "max-2", "max-3"]

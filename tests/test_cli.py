import csv
from pathlib import Path

from teamsplit.cli import main


ROSTER = """id,name,age_group,position,strength,active
gk1,Gerd,AH,goalkeeper,3,
gk2,Gabi,Ü32,goalkeeper,4,
d1,Dieter,AH,defense,4,
d2,Dana,Ü32,defense,2,
a1,Anna,Ü32,attack,5,
a2,Arne,AH,attack,3,
x1,Xaver,AH,attack,5,false
"""


def _roster(tmp_path: Path) -> Path:
    path = tmp_path / "roster.csv"
    path.write_text(ROSTER, encoding="utf-8")
    return path


def _read_output(path: Path) -> list[dict]:
    with path.open(newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


def test_cli_writes_teams(tmp_path, capsys):
    output = tmp_path / "teams.csv"
    code = main([str(_roster(tmp_path)), "--trials", "50", "--seed", "7", "--output", str(output)])

    assert code == 0
    rows = _read_output(output)
    assert {row["player_id"] for row in rows} == {"gk1", "gk2", "d1", "d2", "a1", "a2"}
    assert [row["team"] for row in rows].count("A") == 3
    assert {row["player_id"] for row in rows if row["team"] == "A"} >= {"gk1"}
    assert "strength" not in rows[0]

    out = capsys.readouterr().out
    assert "Team A: 3 players" in out
    assert "Balance score" in out


def test_cli_present_filter(tmp_path, capsys):
    output = tmp_path / "teams.csv"
    code = main(
        [
            str(_roster(tmp_path)),
            "--present",
            "d1",
            "d2",
            "a1",
            "x1",
            "--size-rule",
            "strict",
            "--trials",
            "20",
            "--output",
            str(output),
        ]
    )

    assert code == 0
    rows = _read_output(output)
    assert sorted(row["player_id"] for row in rows) == ["a1", "d1", "d2"]
    assert [row["team"] for row in rows] == ["A", "A", "B"]
    assert "x1" in capsys.readouterr().out


def test_cli_reports_balancer_errors(tmp_path, capsys):
    output = tmp_path / "teams.csv"
    code = main([str(_roster(tmp_path)), "--present", "a1", "--output", str(output)])

    assert code == 1
    assert "Unable to build teams" in capsys.readouterr().err
    assert not output.exists()


def test_cli_custom_columns(tmp_path):
    path = tmp_path / "club.csv"
    path.write_text("Vorname,Nachname,Rolle\nJana,Berg,vorne\nTom,Klein,hinten\n", encoding="utf-8")
    output = tmp_path / "teams.csv"

    code = main(
        [
            str(path),
            "--column",
            "name=Vorname|Nachname",
            "--column",
            "position=Rolle",
            "--trials",
            "10",
            "--output",
            str(output),
        ]
    )

    assert code == 0
    rows = _read_output(output)
    assert sorted(row["name"] for row in rows) == ["Jana Berg", "Tom Klein"]

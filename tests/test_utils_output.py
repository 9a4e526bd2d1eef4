"""Tests for utils/output.py — JSON/CSV/table output routing."""
import json

from estoque_client.models.notifications import Notification
from estoque_client.utils.output import OutputFormat, print_csv, print_json, print_output


def _notification(_id="n1", seen=False):
    return Notification.model_validate(
        {"_id": _id, "mensagem": "Estoque baixo", "data_hora": "2025-01-01T10:00:00Z", "visualizada": seen}
    )


# ── print_json ───────────────────────────────────────────────────────

def test_print_json_list(capsys):
    print_json([{"id": "1"}, {"id": "2"}])
    assert len(json.loads(capsys.readouterr().out)) == 2


def test_print_json_dict(capsys):
    print_json({"key": "value"})
    assert json.loads(capsys.readouterr().out) == {"key": "value"}


def test_print_json_empty(capsys):
    print_json([])
    assert json.loads(capsys.readouterr().out) == []


def test_print_json_models(capsys):
    print_json([_notification()])
    data = json.loads(capsys.readouterr().out)
    assert data[0]["id"] == "n1"
    assert data[0]["visualizada"] is False


# ── print_csv ────────────────────────────────────────────────────────

def test_print_csv_basic(capsys):
    print_csv([{"name": "a", "val": "1"}, {"name": "b", "val": "2"}])
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0] == "name,val"
    assert len(lines) == 3


def test_print_csv_selected_columns(capsys):
    print_csv([{"name": "a", "val": "1", "extra": "x"}], columns=["name", "val"])
    assert "extra" not in capsys.readouterr().out


def test_print_csv_empty(capsys):
    print_csv([])
    assert capsys.readouterr().out == ""


def test_print_csv_dict_input(capsys):
    print_csv({"name": "a", "val": "1"})
    assert len(capsys.readouterr().out.strip().split("\n")) == 2


def test_print_csv_models(capsys):
    print_csv([_notification("n1"), _notification("n2", True)], columns=["id", "visualizada"])
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines == ["id,visualizada", "n1,False", "n2,True"]


# ── print_output routing ────────────────────────────────────────────

def test_output_routes_to_json(capsys):
    print_output([{"x": 1}], fmt=OutputFormat.JSON)
    assert json.loads(capsys.readouterr().out) == [{"x": 1}]


def test_output_routes_to_csv(capsys):
    print_output([{"x": 1}], fmt=OutputFormat.CSV)
    assert capsys.readouterr().out.splitlines() == ["x", "1"]


def test_table_goes_to_stderr(capsys):
    print_output([{"x": 1}], fmt=OutputFormat.TABLE)
    assert capsys.readouterr().out == ""

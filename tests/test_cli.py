"""Tests for the pantrytrip command line."""

import json

import pytest

from pantrytrip.cli import main


@pytest.fixture(autouse=True)
def _no_db_env(monkeypatch):
    monkeypatch.delenv("PANTRYTRIP_DB", raising=False)


@pytest.fixture
def db(tmp_path):
    return str(tmp_path / "cli.db")


@pytest.fixture
def receipt_file(tmp_path):
    path = tmp_path / "receipt.json"
    path.write_text(json.dumps({
        "id": "r1",
        "storeName": "Corner Market",
        "total": 8.0,
        "items": [
            {"name": "Milk", "unitPrice": 1.5, "category": "dairy"},
            {"name": "Chocolate", "unitPrice": 2.5, "quantity": 2, "confidence": 40},
            {"name": "Bread", "unitPrice": 1.5},
        ],
    }))
    return str(path)


@pytest.fixture
def list_file(tmp_path):
    path = tmp_path / "list.json"
    path.write_text(json.dumps({
        "id": "l1",
        "name": "Weekly",
        "budget": 10,
        "items": [{"name": "Milk"}, {"name": "Bread"}, {"name": "Eggs"}],
    }))
    return str(path)


def _import(db, receipt_file, list_file, capsys):
    main(["--db", db, "import-receipt", receipt_file])
    main(["--db", db, "import-list", list_file])
    return capsys.readouterr().out.split()


def test_no_command(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 1


def test_import(db, receipt_file, list_file, capsys):
    assert _import(db, receipt_file, list_file, capsys) == ["r1", "l1"]


def test_reconcile_dry_run(db, receipt_file, list_file, capsys):
    _import(db, receipt_file, list_file, capsys)

    main(["--db", db, "reconcile", "r1", "--json"])
    data = json.loads(capsys.readouterr().out)

    assert data["restocked_items"] == []
    assert [n["name"] for n in data["items_to_add"]] == ["Milk", "Chocolate", "Bread"]

    main(["--db", db, "pantry", "--json"])
    assert json.loads(capsys.readouterr().out) == []


def test_summary_json(db, receipt_file, list_file, capsys):
    _import(db, receipt_file, list_file, capsys)

    main(["--db", db, "summary", "r1", "l1", "--json"])
    data = json.loads(capsys.readouterr().out)

    assert data["difference"] == 2.0
    assert data["saved_money"] is True
    assert data["percent_saved"] == 20.0
    assert data["overspend"] == 0
    assert [i["name"] for i in data["unplanned_items"]] == ["Chocolate"]
    assert data["unplanned_total"] == 5.0
    assert [i["name"] for i in data["missed_items"]] == ["Eggs"]


def test_complete_yes(db, receipt_file, list_file, capsys):
    _import(db, receipt_file, list_file, capsys)

    main(["--db", db, "complete", "r1", "l1", "--yes"])
    out = capsys.readouterr().out
    assert "? Chocolate" in out
    assert "Saved $2.00" in out

    main(["--db", db, "pantry", "--json"])
    pantry = json.loads(capsys.readouterr().out)
    assert sorted(p["name"] for p in pantry) == ["Bread", "Chocolate", "Milk"]
    assert {p["stock_level"] for p in pantry} == {"stocked"}
    assert {p["last_store_name"] for p in pantry} == {"Corner Market"}


def test_complete_prompts(db, receipt_file, list_file, capsys, monkeypatch):
    _import(db, receipt_file, list_file, capsys)
    replies = iter(["y", "maybe", "n", "y"])
    monkeypatch.setattr("builtins.input", lambda prompt: next(replies))

    main(["--db", db, "complete", "r1", "l1"])
    capsys.readouterr()

    main(["--db", db, "pantry", "--json"])
    names = [p["name"] for p in json.loads(capsys.readouterr().out)]
    assert names == ["Milk", "Bread"]


def test_complete_twice_fails(db, receipt_file, list_file, capsys):
    _import(db, receipt_file, list_file, capsys)
    main(["--db", db, "complete", "r1", "l1", "--no"])

    with pytest.raises(SystemExit) as exc_info:
        main(["--db", db, "complete", "r1", "l1", "--no"])
    assert exc_info.value.code == 1
    assert "already completed" in capsys.readouterr().err


def test_unknown_receipt(db, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--db", db, "summary", "nope", "l1"])
    assert exc_info.value.code == 1
    assert "not found" in capsys.readouterr().err


def test_invalid_receipt_file(db, tmp_path, capsys):
    path = tmp_path / "empty.json"
    path.write_text(json.dumps({"id": "r9", "items": []}))
    with pytest.raises(SystemExit):
        main(["--db", db, "import-receipt", str(path)])
    assert "no items" in capsys.readouterr().err


def test_duplicate_import(db, receipt_file, list_file, capsys):
    """Importing the same ids again is a clean error, not a traceback."""
    _import(db, receipt_file, list_file, capsys)

    with pytest.raises(SystemExit) as exc_info:
        main(["--db", db, "import-receipt", receipt_file])
    assert exc_info.value.code == 1
    assert "cannot save receipt 'r1'" in capsys.readouterr().err

    with pytest.raises(SystemExit) as exc_info:
        main(["--db", db, "import-list", list_file])
    assert exc_info.value.code == 1
    assert "cannot save list 'l1'" in capsys.readouterr().err


def test_receipt_for_unknown_list(db, tmp_path, capsys):
    path = tmp_path / "linked.json"
    path.write_text(json.dumps({
        "id": "r2",
        "list_id": "missing",
        "items": [{"name": "Milk", "unitPrice": 1.5}],
    }))
    with pytest.raises(SystemExit) as exc_info:
        main(["--db", db, "import-receipt", str(path)])
    assert exc_info.value.code == 1
    assert "cannot save receipt 'r2'" in capsys.readouterr().err


def test_unknown_list_status(db, tmp_path, capsys):
    path = tmp_path / "list.json"
    path.write_text(json.dumps({"id": "l2", "status": "lost", "items": [{"name": "Milk"}]}))
    with pytest.raises(SystemExit) as exc_info:
        main(["--db", db, "import-list", str(path)])
    assert exc_info.value.code == 1
    assert "unknown list status 'lost'" in capsys.readouterr().err


@pytest.mark.parametrize(
    "item",
    [
        {"name": "Milk", "unitPrice": "cheap"},
        {"name": "Milk", "quantity": [2]},
        {"name": "Milk", "confidence": "high"},
    ],
)
def test_non_numeric_receipt_fields(db, tmp_path, capsys, item):
    path = tmp_path / "receipt.json"
    path.write_text(json.dumps({"id": "r3", "items": [item]}))
    with pytest.raises(SystemExit) as exc_info:
        main(["--db", db, "import-receipt", str(path)])
    assert exc_info.value.code == 1
    assert "must be a number" in capsys.readouterr().err


def test_non_numeric_budget(db, tmp_path, capsys):
    path = tmp_path / "list.json"
    path.write_text(json.dumps({"id": "l3", "budget": "lots"}))
    with pytest.raises(SystemExit) as exc_info:
        main(["--db", db, "import-list", str(path)])
    assert exc_info.value.code == 1
    assert "budget must be a number" in capsys.readouterr().err

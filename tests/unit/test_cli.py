"""Tests for the statute editor CLI."""

import json
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from statute_editor.cli import app
from statute_editor.core.database.schema import connect, create_schema
from tests.unit.conftest import SAMPLE_TREE, insert_tree

runner = CliRunner()


def _setup_data_dir(tmp_path: Path) -> Path:
    """Helper: create a data dir holding the sample statute, return it."""
    data = tmp_path / "data"
    data.mkdir()
    conn = connect(data / "statutes.db")
    create_schema(conn)
    insert_tree(conn, SAMPLE_TREE)
    conn.commit()
    conn.close()
    return data


def test_init_creates_database(tmp_path: Path) -> None:
    data = tmp_path / "data"
    result = runner.invoke(app, ["init", "--data-dir", str(data)])
    assert result.exit_code == 0, result.output
    assert (data / "statutes.db").exists()


def test_commands_fail_without_database(tmp_path: Path) -> None:
    result = runner.invoke(app, ["statutes", "--data-dir", str(tmp_path)])
    assert result.exit_code == 1


def test_create_then_list(tmp_path: Path) -> None:
    data = tmp_path / "data"
    runner.invoke(app, ["init", "--data-dir", str(data)])

    result = runner.invoke(
        app, ["create", "Banking Act", "--act-no", "7", "--data-dir", str(data)]
    )
    assert result.exit_code == 0, result.output
    assert "Created statute 1: Banking Act" in result.output

    result = runner.invoke(app, ["statutes", "--data-dir", str(data)])
    assert result.exit_code == 0, result.output
    assert "Banking Act (Act 7)" in result.output


def test_create_rejects_duplicate_name(tmp_path: Path) -> None:
    data = _setup_data_dir(tmp_path)
    result = runner.invoke(app, ["create", "Companies Act", "--data-dir", str(data)])
    assert result.exit_code == 1
    assert "A statute with this name already exists" in result.output


def test_show_renders_outline(tmp_path: Path) -> None:
    data = _setup_data_dir(tmp_path)
    result = runner.invoke(app, ["show", "1", "--ids", "--data-dir", str(data)])
    assert result.exit_code == 0, result.output
    assert "**Part** 1. Preliminary [part 1]" in result.output
    assert "> Form A text" in result.output


def test_show_max_depth_truncates(tmp_path: Path) -> None:
    data = _setup_data_dir(tmp_path)
    result = runner.invoke(app, ["show", "1", "--max-depth", "1", "--data-dir", str(data)])
    assert result.exit_code == 0, result.output
    assert "Preliminary" in result.output
    assert "Short title" not in result.output
    assert "(1 more child)" in result.output


def test_show_unknown_statute(tmp_path: Path) -> None:
    data = _setup_data_dir(tmp_path)
    result = runner.invoke(app, ["show", "99", "--data-dir", str(data)])
    assert result.exit_code == 1
    assert "Statute 99 not found." in result.output


def test_validate_ok(tmp_path: Path) -> None:
    data = _setup_data_dir(tmp_path)
    result = runner.invoke(app, ["validate", "1", "--data-dir", str(data)])
    assert result.exit_code == 0, result.output
    assert "OK: 15 nodes, depth 5" in result.output


def test_validate_reports_unnamed_nodes(tmp_path: Path) -> None:
    data = _setup_data_dir(tmp_path)
    conn = connect(data / "statutes.db")
    conn.execute("""UPDATE "section" SET name = '' WHERE id = 2""")
    conn.commit()
    conn.close()

    result = runner.invoke(app, ["validate", "1", "--data-dir", str(data)])
    assert result.exit_code == 1
    assert "1 problems:" in result.output
    assert "Name is required" in result.output


def test_export_writes_tree_json(tmp_path: Path) -> None:
    data = _setup_data_dir(tmp_path)
    out = tmp_path / "tree.json"
    result = runner.invoke(app, ["export", "1", "-o", str(out), "--data-dir", str(data)])
    assert result.exit_code == 0, result.output
    tree = json.loads(out.read_text())
    assert tree["type"] == "statute"
    assert [c["type"] for c in tree["children"]] == ["part", "part", "sch_part"]


def test_import_saves_edited_tree(tmp_path: Path) -> None:
    data = _setup_data_dir(tmp_path)
    out = tmp_path / "tree.json"
    runner.invoke(app, ["export", "1", "-o", str(out), "--data-dir", str(data)])

    tree = json.loads(out.read_text())
    tree["children"][1]["name"] = "Formation"
    tree["children"][1]["children"].append(
        {"id": -1, "type": "chapter", "name": "Registration", "chapter_no": "1", "children": []}
    )
    out.write_text(json.dumps(tree))

    result = runner.invoke(app, ["import", "1", str(out), "--data-dir", str(data)])
    assert result.exit_code == 0, result.output
    assert "1 created" in result.output
    assert "0 deleted" in result.output

    result = runner.invoke(app, ["show", "1", "--data-dir", str(data)])
    assert "2. Formation" in result.output
    assert "1. Registration" in result.output


def test_import_rejects_invalid_tree(tmp_path: Path) -> None:
    data = _setup_data_dir(tmp_path)
    source = tmp_path / "bad.json"
    tree = json.loads(json.dumps(SAMPLE_TREE))
    tree["children"][1]["children"].append(
        {"id": -1, "type": "section", "name": "Misplaced", "section_no": "1", "children": []}
    )
    source.write_text(json.dumps(tree))

    result = runner.invoke(app, ["import", "1", str(source), "--data-dir", str(data)])
    assert result.exit_code == 1
    assert "Save failed" in result.output


def test_import_unreadable_file(tmp_path: Path) -> None:
    data = _setup_data_dir(tmp_path)
    result = runner.invoke(
        app, ["import", "1", str(tmp_path / "missing.json"), "--data-dir", str(data)]
    )
    assert result.exit_code == 1
    assert "Cannot read" in result.output


def test_log_lists_activity(tmp_path: Path) -> None:
    data = tmp_path / "data"
    runner.invoke(app, ["init", "--data-dir", str(data)])
    runner.invoke(app, ["create", "Banking Act", "--data-dir", str(data)])

    result = runner.invoke(app, ["log", "--data-dir", str(data)])
    assert result.exit_code == 0, result.output
    assert "1 entries (page 1 of 1)" in result.output
    assert "CREATE" in result.output
    assert "statute 1" in result.output


def test_serve_passes_server_url() -> None:
    with patch("statute_editor.mcp.server.run_mcp_server") as run:
        result = runner.invoke(app, ["serve", "--server-url", "http://editor.test"])
    assert result.exit_code == 0, result.output
    run.assert_called_once_with(server_url="http://editor.test")

    with patch("statute_editor.mcp.server.run_mcp_server") as run:
        result = runner.invoke(app, ["serve"])
    assert result.exit_code == 0, result.output
    run.assert_called_once_with(server_url=None)

"""Tests for the 'project' CLI command group."""

import json

import pytest
from typer.testing import CliRunner

from convograph.db import get_connection, init_db
from convograph.db.projects import create_project, get_project
from cli.context import CliContext, load_context, save_context
from cli.commands.project import project_app

runner = CliRunner()


@pytest.fixture
def clean_db(tmp_path, monkeypatch):
    """Provide a fresh DB and context directory for each test."""
    monkeypatch.setattr("convograph.config.settings.workspace_dir", tmp_path)
    monkeypatch.setattr("cli.context.settings.cli_config_dir", tmp_path / ".convograph_cli")
    return tmp_path


def _seed(*titles: str):
    conn = get_connection()
    init_db(conn)
    try:
        return [create_project(conn, t) for t in titles]
    finally:
        conn.close()


def test_project_new(clean_db):
    result = runner.invoke(project_app, ["new", "Test Project"])
    assert result.exit_code == 0
    assert "✅ Project created" in result.stdout

    ctx = load_context()
    assert ctx.active_project_name == "Test Project"

    conn = get_connection()
    snapshot = get_project(conn, ctx.active_project_id)
    conn.close()
    assert snapshot is not None
    assert snapshot.title == "Test Project"


def test_project_list(clean_db):
    _seed("P1", "P2")
    result = runner.invoke(project_app, ["list"])
    assert result.exit_code == 0
    assert "P1" in result.stdout
    assert "P2" in result.stdout


def test_project_list_marks_active(clean_db):
    (p,) = _seed("Active One")
    save_context(CliContext(active_project_id=p.id, active_project_name=p.title))
    result = runner.invoke(project_app, ["list"])
    assert "* Active One" in result.stdout


def test_project_list_empty(clean_db):
    result = runner.invoke(project_app, ["list"])
    assert result.exit_code == 0
    assert "No projects found." in result.stdout


def test_project_switch_by_name(clean_db):
    (p,) = _seed("Target Project")
    result = runner.invoke(project_app, ["switch", "Target Project"])
    assert result.exit_code == 0
    assert "📂 Switched to project" in result.stdout
    assert load_context().active_project_id == p.id


def test_project_switch_by_id(clean_db):
    (p,) = _seed("By Id")
    result = runner.invoke(project_app, ["switch", p.id])
    assert result.exit_code == 0
    assert load_context().active_project_name == "By Id"


def test_project_switch_not_found(clean_db):
    result = runner.invoke(project_app, ["switch", "Nope"])
    assert result.exit_code == 1
    assert "❌ Project 'Nope' not found." in result.stdout


def test_project_export_markdown(clean_db, tmp_path):
    (p,) = _seed("Exported")
    save_context(CliContext(active_project_id=p.id, active_project_name=p.title))
    out = tmp_path / "out.md"
    result = runner.invoke(project_app, ["export", "--output", str(out)])
    assert result.exit_code == 0
    assert "✅ Exported to" in result.stdout
    assert out.read_text(encoding="utf-8").startswith("# Exported")


def test_project_export_json(clean_db, tmp_path):
    (p,) = _seed("Exported")
    save_context(CliContext(active_project_id=p.id, active_project_name=p.title))
    out = tmp_path / "out.json"
    result = runner.invoke(project_app, ["export", "--format", "json", "--output", str(out)])
    assert result.exit_code == 0
    assert json.loads(out.read_text(encoding="utf-8"))["id"] == p.id


def test_project_export_bad_format(clean_db):
    (p,) = _seed("Exported")
    save_context(CliContext(active_project_id=p.id, active_project_name=p.title))
    result = runner.invoke(project_app, ["export", "--format", "pdf"])
    assert result.exit_code == 1


def test_project_export_requires_context(clean_db):
    result = runner.invoke(project_app, ["export"])
    assert result.exit_code == 1
    assert "No active project selected" in result.stdout


def test_project_delete_clears_active(clean_db):
    (p,) = _seed("Doomed")
    save_context(CliContext(active_project_id=p.id, active_project_name=p.title))
    result = runner.invoke(project_app, ["delete", "Doomed", "--yes"])
    assert result.exit_code == 0
    assert "Deleted project: Doomed" in result.stdout
    assert load_context().active_project_id is None

    conn = get_connection()
    assert get_project(conn, p.id) is None
    conn.close()


def test_project_delete_prompts(clean_db):
    (p,) = _seed("Kept")
    result = runner.invoke(project_app, ["delete", "Kept"], input="n\n")
    assert result.exit_code == 1
    conn = get_connection()
    assert get_project(conn, p.id) is not None
    conn.close()

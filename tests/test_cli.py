"""CLI smoke tests against a throwaway project."""
import json

import click
import pytest
from click.testing import CliRunner

from trackdown.cli import cli
from trackdown.config import load_layout
from trackdown.index import IndexStore


def _record(path, header):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("---\n" + header + "---\nBody\n")


@pytest.fixture
def project(tmp_path, monkeypatch):
    monkeypatch.delenv("TRACKDOWN_PROJECT_DIR", raising=False)
    monkeypatch.delenv("TRACKDOWN_TASKS_DIR", raising=False)
    tasks = tmp_path / "tasks"
    _record(tasks / "epics" / "EP-0001.md", "epic_id: EP-0001\ntitle: Epic\nstatus: active\npriority: high\n")
    _record(tasks / "issues" / "ISS-0001.md",
            "issue_id: ISS-0001\nepic_id: EP-0001\ntitle: One\nstatus: completed\npriority: medium\n")
    _record(tasks / "issues" / "ISS-0002-second.md",
            "issue_id: ISS-0002\ntitle: Two\nstatus: active\npriority: low\n")
    IndexStore(load_layout(tmp_path)).rebuild_index()
    return tmp_path


def _invoke(project, *args):
    return CliRunner().invoke(cli, ["-C", str(project), *args])


def test_cli_is_group():
    assert isinstance(cli, click.Group)


def test_cli_help_exits_zero():
    result = CliRunner().invoke(cli, ["--help"])
    assert result.exit_code == 0


def test_cli_expected_commands():
    assert {"index", "list", "show", "overview"} <= set(cli.commands)
    assert set(cli.commands["index"].commands) == {"rebuild", "status", "validate", "update", "remove"}


def test_index_rebuild(project):
    result = _invoke(project, "index", "rebuild")
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["status"] == "rebuilt"
    assert data["stats"]["totalIssues"] == 2
    assert (project / "tasks" / ".ai-trackdown-index").exists()


def test_list_filters(project):
    result = _invoke(project, "list", "--type", "issue", "--status", "active")
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["count"] == 1
    assert data["items"][0]["id"] == "ISS-0002"
    assert data["items"][0]["type"] == "issue"


def test_list_all(project):
    data = json.loads(_invoke(project, "list").output)
    assert [i["id"] for i in data["items"]] == ["EP-0001", "ISS-0001", "ISS-0002"]


def test_show(project):
    result = _invoke(project, "show", "epic", "EP-0001")
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["issueIds"] == ["ISS-0001"]


def test_show_missing_exits_one(project):
    result = _invoke(project, "show", "epic", "EP-0404")
    assert result.exit_code == 1


def test_overview(project):
    data = json.loads(_invoke(project, "overview").output)
    assert data["totalItems"] == 3
    assert data["completionRate"] == 33


def test_index_update_and_remove(project):
    _invoke(project, "index", "rebuild")
    _record(project / "tasks" / "issues" / "ISS-0003.md",
            "issue_id: ISS-0003\nepic_id: EP-0001\ntitle: Three\nstatus: planning\npriority: low\n")
    result = _invoke(project, "index", "update", "issue", "ISS-0003")
    assert json.loads(result.output)["status"] == "updated"
    assert json.loads(_invoke(project, "show", "epic", "EP-0001").output)["issueIds"] == ["ISS-0001", "ISS-0003"]

    result = _invoke(project, "index", "remove", "issue", "ISS-0003")
    assert json.loads(result.output)["status"] == "removed"


def test_index_validate_repair(project):
    _invoke(project, "index", "rebuild")
    (project / "tasks" / ".ai-trackdown-index").write_text("garbage")
    assert json.loads(_invoke(project, "index", "validate").output)["valid"] is False
    data = json.loads(_invoke(project, "index", "validate", "--repair").output)
    assert data["repaired"] is True


def test_human_output(project):
    result = _invoke(project, "--human", "index", "status")
    assert result.exit_code == 0, result.output
    assert "healthy: True" in result.output


def test_human_list_one_line_per_item(project):
    result = _invoke(project, "--human", "list", "--type", "issue")
    assert result.exit_code == 0, result.output
    lines = [ln for ln in result.output.splitlines() if "ISS-" in ln]
    assert len(lines) == 2
    assert "[completed/medium]" in lines[0]

"""CLI: end-to-end scenario, exit codes, confirmation and output modes."""

import json

import pytest
from typer.testing import CliRunner

from taskman.cli import app
from taskman.engine import TaskStore

runner = CliRunner()


def invoke(*args, input=None):
    return runner.invoke(app, list(args), input=input)


def stored_tasks(db_path):
    with TaskStore(db_path) as store:
        store.initialize()
        return list(store.read_all(include_completed=True))


def test_end_to_end_scenario(db_path):
    """Scenario: add, add, done, list, list-all, edit, delete, list-all."""
    result = invoke("add", "Buy milk")
    assert result.exit_code == 0
    assert "[1]" in result.stdout

    result = invoke("add", "Walk dog")
    assert result.exit_code == 0
    assert "[2]" in result.stdout

    assert invoke("done", "1").exit_code == 0

    listed = invoke("list")
    assert listed.exit_code == 0
    assert "Walk dog" in listed.stdout
    assert "Buy milk" not in listed.stdout

    listed_all = invoke("list-all")
    assert "[1] [x] Buy milk" in listed_all.stdout
    assert "[2] [ ] Walk dog" in listed_all.stdout

    before_edit = {t.id: t for t in stored_tasks(db_path)}[2]
    result = invoke("edit", "2", "Walk the dog twice")
    assert result.exit_code == 0
    after_edit = {t.id: t for t in stored_tasks(db_path)}[2]
    assert after_edit.description == "Walk the dog twice"
    assert after_edit.updated_at > before_edit.updated_at

    result = invoke("delete", "1", input="y\n")
    assert result.exit_code == 0
    assert "Deleted: 1" in result.stdout

    final = invoke("list-all")
    assert "Buy milk" not in final.stdout
    assert "[2] [ ] Walk the dog twice" in final.stdout
    assert [t.id for t in stored_tasks(db_path)] == [2]


def test_add_joins_words():
    result = invoke("add", "Buy", "oat", "milk")
    assert result.exit_code == 0
    assert "Buy oat milk" in result.stdout


@pytest.mark.parametrize("description", ["", "   "])
def test_add_blank_fails_with_validation_error(db_path, description):
    result = invoke("add", description)

    assert result.exit_code == 1
    assert "Invalid input" in result.output
    assert stored_tasks(db_path) == []


@pytest.mark.parametrize(
    "args",
    [("done", "999"), ("edit", "999", "x"), ("delete", "999", "--yes"), ("show", "999")],
)
def test_missing_id_fails_with_not_found(db_path, args):
    """Boundary: unknown ids exit 3 and leave the database unchanged."""
    invoke("add", "Buy milk")
    before = stored_tasks(db_path)

    result = invoke(*args)

    assert result.exit_code == 3
    assert "Task 999 not found" in result.output
    assert stored_tasks(db_path) == before


def test_delete_missing_prompts_then_fails():
    result = invoke("delete", "999", input="y\n")
    assert "Delete task 999?" in result.output
    assert result.exit_code == 3


def test_delete_declined_is_cancelled(db_path):
    """Contract: answering no cancels successfully and keeps the task."""
    invoke("add", "Buy milk")

    result = invoke("delete", "1", input="n\n")

    assert result.exit_code == 0
    assert "Cancelled" in result.stdout
    assert len(stored_tasks(db_path)) == 1


def test_delete_without_input_is_declined(db_path):
    invoke("add", "Buy milk")

    result = invoke("delete", "1", input="")

    assert result.exit_code == 0
    assert len(stored_tasks(db_path)) == 1


def test_delete_yes_flag_skips_prompt(db_path):
    invoke("add", "Buy milk")

    result = invoke("delete", "1", "--yes")

    assert result.exit_code == 0
    assert "Delete task" not in result.output
    assert stored_tasks(db_path) == []


def test_done_twice_succeeds():
    invoke("add", "Buy milk")
    assert invoke("done", "1").exit_code == 0
    result = invoke("done", "1")
    assert result.exit_code == 0
    assert "[x]" in result.stdout


def test_invalid_id_is_validation_error():
    result = invoke("done", "0")
    assert result.exit_code == 1


def test_non_numeric_id_is_usage_error():
    result = invoke("done", "abc")
    assert result.exit_code == 2


def test_unknown_command_exits_nonzero_with_usage():
    result = invoke("invalid_command")
    assert result.exit_code == 2
    assert "Usage" in result.output


def test_help_does_not_touch_database(workdir):
    result = invoke("help")

    assert result.exit_code == 0
    for command in ("add", "list-all", "done", "edit", "delete"):
        assert command in result.stdout
    assert not (workdir / "tasks.db").exists()


def test_no_command_shows_help(workdir):
    result = invoke()
    assert result.exit_code == 0
    assert "Usage" in result.stdout
    assert not (workdir / "tasks.db").exists()


def test_list_empty():
    result = invoke("list")
    assert result.exit_code == 0
    assert "No tasks" in result.stdout


def test_show_details():
    invoke("add", "Buy milk")
    result = invoke("show", "1")
    assert result.exit_code == 0
    assert "ID: 1" in result.stdout
    assert "Status: open" in result.stdout
    assert "Buy milk" in result.stdout


def test_json_output():
    added = json.loads(invoke("--json", "add", "Buy milk").stdout)
    assert added["id"] == 1
    assert added["completed"] is False

    listed = json.loads(invoke("-j", "list-all").stdout)
    assert [t["description"] for t in listed] == ["Buy milk"]

    deleted = json.loads(invoke("--json", "delete", "1", "--yes").stdout)
    assert deleted == {"id": 1, "result": "deleted"}


def test_json_delete_prompts_on_stderr():
    """Contract: the confirmation prompt never lands in the JSON document."""
    invoke("add", "Buy milk")

    result = invoke("--json", "delete", "1", input="y\n")

    assert result.exit_code == 0
    assert "Delete task 1?" in result.stderr
    assert "Delete task 1?" not in result.stdout
    # The test runner echoes typed input to stdout; the document follows it.
    document = result.stdout[result.stdout.index("{") :]
    assert json.loads(document) == {"id": 1, "result": "deleted"}


def test_quiet_suppresses_confirmation_messages():
    result = invoke("--quiet", "add", "Buy milk")
    assert result.exit_code == 0
    assert result.stdout == ""


def test_db_option_selects_file(workdir):
    target = workdir / "other.db"

    invoke("--db", str(target), "add", "Elsewhere")

    assert [t.description for t in stored_tasks(target)] == ["Elsewhere"]
    assert not (workdir / "tasks.db").exists()


def test_env_selects_file(workdir, monkeypatch):
    monkeypatch.setenv("TASKMAN_DB", "env.db")

    invoke("add", "From env")

    assert (workdir / "env.db").exists()


def test_check_reports_ok():
    invoke("add", "Buy milk")
    result = invoke("check")
    assert result.exit_code == 0
    assert "ok (1 tasks)" in result.stdout


def test_corrupt_database_exits_with_integrity_code(db_path):
    """Boundary: a corrupt file is reported distinctly from not-found/validation."""
    db_path.write_bytes(b"not a database" * 500)

    result = invoke("list")

    assert result.exit_code == 5
    assert "Database corrupt" in result.output


def test_invalid_config_reported(workdir):
    (workdir / "taskman.yaml").write_text("lock_timeout: -3\n")

    result = invoke("list")

    assert result.exit_code == 1
    assert "lock_timeout" in result.output

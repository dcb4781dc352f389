import pytest

from taskman import config
from taskman.engine import TaskStore
from taskman.service import TaskService


@pytest.fixture(autouse=True)
def workdir(monkeypatch, tmp_path):
    """Isolated working directory per test.

    tasks.db and taskman.yaml resolve against the cwd, so each test gets its
    own. Environment overrides and the cached config are cleared on both ends.
    """
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("TASKMAN_DB", raising=False)
    monkeypatch.delenv("TASKMAN_LOCK_TIMEOUT", raising=False)
    config._clear_cache()

    yield tmp_path

    config._clear_cache()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "tasks.db"


@pytest.fixture
def task_store(db_path):
    """Initialized store on a fresh database file."""
    store = TaskStore(db_path, lock_timeout=2.0).initialize()
    yield store
    store.close()


class ScriptedConfirm:
    """confirm collaborator that answers from a fixed script and records questions."""

    def __init__(self, *answers: bool):
        self.answers = list(answers)
        self.asked: list[str] = []

    def __call__(self, action: str) -> bool:
        self.asked.append(action)
        return self.answers.pop(0) if self.answers else False


@pytest.fixture
def scripted_confirm():
    return ScriptedConfirm


@pytest.fixture
def service(task_store):
    """Service whose confirmation always approves."""
    return TaskService(task_store, confirm=lambda _action: True)

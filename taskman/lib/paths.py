from pathlib import Path


def workdir() -> Path:
    return Path.cwd()


def config_file() -> Path:
    return workdir() / "taskman.yaml"


def db_path(db_file: str) -> Path:
    path = Path(db_file).expanduser()
    if path.is_absolute():
        return path
    return workdir() / path

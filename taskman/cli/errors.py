"""CLI error handling: wrap commands to report errors instead of silent failures."""

from functools import wraps

import typer
from typer import Exit

from taskman.errors import (
    IntegrityError,
    LockTimeoutError,
    NotFoundError,
    TaskmanError,
    ValidationError,
)

_LABELS = {
    ValidationError: "Invalid input",
    NotFoundError: "Not found",
    LockTimeoutError: "Busy",
    IntegrityError: "Database corrupt",
}


def error_feedback(f):
    """Wrap command to report errors on stderr and exit non-zero.

    Domain errors exit with their own exit_code so callers can tell a missing
    task from a lock timeout or a corrupt database.
    """

    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except (SystemExit, Exit):
            raise
        except TaskmanError as e:
            label = _LABELS.get(type(e), "Error")
            typer.echo(f"{label}: {e}", err=True)
            raise typer.Exit(e.exit_code) from e
        except (ValueError, KeyError, TypeError) as e:
            typer.echo(f"Invalid input: {e}", err=True)
            raise typer.Exit(1) from e
        except OSError as e:
            typer.echo(f"File error: {e}", err=True)
            raise typer.Exit(1) from e
        except Exception as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from e

    return wrapper

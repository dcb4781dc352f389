"""Per-invocation CLI state: output mode and resolved settings."""

import json as json_lib
from dataclasses import dataclass

import typer

from taskman import config


@dataclass
class CliState:
    json_output: bool = False
    quiet_output: bool = False
    db: str | None = None
    _settings: config.Settings | None = None

    @property
    def settings(self) -> config.Settings:
        """Settings for this invocation, resolved once. Raises ValueError on bad config."""
        if self._settings is None:
            self._settings = config.get_settings(self.db)
        return self._settings


def init_context(
    ctx: typer.Context,
    json_output: bool = False,
    quiet_output: bool = False,
    db: str | None = None,
) -> CliState:
    ctx.obj = CliState(json_output=json_output, quiet_output=quiet_output, db=db)
    return ctx.obj


def state(ctx: typer.Context) -> CliState:
    """CliState of the root command; subcommand contexts share it."""
    obj = ctx.find_object(CliState)
    return obj if obj is not None else CliState()


def settings(ctx: typer.Context) -> config.Settings:
    return state(ctx).settings


def echo_json(data, ctx: typer.Context) -> bool:
    """Print data as indented JSON in --json mode. Returns True if printed."""
    if state(ctx).json_output:
        typer.echo(json_lib.dumps(data, indent=2))
        return True
    return False


def echo_text(msg: str, ctx: typer.Context) -> None:
    """Print a confirmation line unless --quiet."""
    if not state(ctx).quiet_output:
        typer.echo(msg)

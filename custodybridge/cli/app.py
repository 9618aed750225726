"""Main Typer application — imports and registers all CLI commands.

Entry point: ``custodybridge`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer

from custodybridge.cli.commands.demo import demo_cmd
from custodybridge.cli.commands.guard_cmd import guard_cmd
from custodybridge.cli.commands.hash_cmd import hash_cmd
from custodybridge.cli.commands.options_cmd import options_app
from custodybridge.cli.commands.sign_cmd import sign_cmd
from custodybridge.config import config

app = typer.Typer(
    name="custodybridge",
    help="custodybridge: signed transfers between a margin ledger and a collateral ledger.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@app.callback()
def main_callback(
    log_level: str = typer.Option(config.log_level, "--log-level", help="Logging level."),
) -> None:
    level = log_level.upper()
    if level not in _LOG_LEVELS:
        raise typer.BadParameter(
            f"{log_level!r} is not one of {', '.join(_LOG_LEVELS).lower()}",
            param_hint="--log-level",
        )
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Register subcommands
app.command(name="hash", help="Compute the EIP-712 hashes of a transfer.")(hash_cmd)
app.command(name="sign", help="Sign a transfer hash as the account holder.")(sign_cmd)
app.command(name="guard", help="Show the replay status of a transfer hash.")(guard_cmd)
app.command(name="demo", help="Run sample transfers against in-memory ledgers.")(demo_cmd)
app.add_typer(options_app, name="options")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()

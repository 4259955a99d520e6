"""Shared helpers for the taxokey CLI: consoles, exit codes, logging setup."""

import logging

from rich.console import Console
from rich.markup import escape

__all__ = [
    "EXIT_CONFIG_ERROR",
    "EXIT_ERROR",
    "EXIT_SUCCESS",
    "console",
    "err_console",
    "_error",
    "_info",
    "_setup_logging",
    "_success",
    "_warning",
]

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2

# Project JSON goes to stdout, messages to stderr so output can be piped
console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def _setup_logging(verbose: bool = False, level: str = "WARNING") -> None:
    """Configure root logging for a CLI run.

    Args:
        verbose: Force DEBUG level.
        level: Level name used when not verbose.

    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.WARNING),
        format=_LOG_FORMAT,
        force=True,
    )


def _error(message: str) -> None:
    err_console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)


def _warning(message: str) -> None:
    err_console.print(f"[yellow]Warning:[/yellow] {escape(message)}", highlight=False)


def _info(message: str) -> None:
    err_console.print(escape(message), highlight=False)


def _success(message: str) -> None:
    err_console.print(f"[green]OK[/green] {escape(message)}", highlight=False)

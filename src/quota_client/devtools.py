"""Developer tooling entrypoints.

Each function is exposed as a console script so checks run the same way
locally and in CI, e.g. `quota-client-check`.
"""

from __future__ import annotations

import subprocess
import sys
import time
from collections.abc import Sequence

from rich import print as rprint

_SOURCES = ("src", "tests")
_COVERAGE_THRESHOLD = 85


def _coverage_args() -> list[str]:
    return [
        "pytest",
        "--cov=quota_client",
        "--cov-report=term-missing",
        f"--cov-fail-under={_COVERAGE_THRESHOLD}",
    ]


def _check_steps() -> list[tuple[str, list[str]]]:
    return [
        ("format", ["ruff", "format", "--check", *_SOURCES]),
        ("lint", ["ruff", "check", *_SOURCES]),
        ("typecheck", ["pyright"]),
        ("coverage", _coverage_args()),
    ]


def _run(args: Sequence[str]) -> int:
    return subprocess.run(args, check=False).returncode


def _run_or_exit(args: Sequence[str]) -> None:
    raise SystemExit(_run(args))


def _extra_args() -> list[str]:
    return sys.argv[1:]


def _emit(message: str) -> None:
    rprint(message)


def lint() -> None:
    _run_or_exit(["ruff", "check", *_SOURCES, *_extra_args()])


def format_code() -> None:
    _run_or_exit(["ruff", "format", *_SOURCES, *_extra_args()])


def typecheck() -> None:
    _run_or_exit(["pyright", *_extra_args()])


def test() -> None:
    _run_or_exit(["pytest", *_extra_args()])


def coverage() -> None:
    _run_or_exit([*_coverage_args(), *_extra_args()])


def check() -> None:
    """Run every check in order, stopping at the first failure."""
    for name, args in _check_steps():
        _emit(f"[bold cyan]→ {name}[/bold cyan] [dim]{' '.join(args)}[/dim]")
        start = time.perf_counter()
        code = _run(args)
        duration = time.perf_counter() - start
        if code != 0:
            _emit(
                f"[bold red]✗ {name} failed[/bold red] [dim]({duration:.2f}s, exit {code})[/dim]"
            )
            raise SystemExit(code)
        _emit(f"[green]✓ {name}[/green] [dim]({duration:.2f}s)[/dim]")

    _emit("[bold green]✓ All checks passed[/bold green]")
    raise SystemExit(0)

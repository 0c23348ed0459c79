"""Unified command line interface for the crop schedule scripts.

Usage::

    python -m scripts.cli <command> [args]
    python -m scripts.cli --list

Commands are the modules of the ``scripts`` package that define ``main``.
"""

from __future__ import annotations

import argparse
import ast
import pkgutil
import runpy
import sys
from pathlib import Path


def _summary(path: Path) -> str:
    doc = ast.get_docstring(ast.parse(path.read_text(encoding="utf-8"))) or ""
    return doc.strip().splitlines()[0] if doc.strip() else ""


def _discover_commands() -> dict[str, tuple[str, str]]:
    """Return mapping of command names to ``(module path, summary)``."""
    package_dir = Path(__file__).resolve().parent
    commands: dict[str, tuple[str, str]] = {}
    for mod in pkgutil.iter_modules([str(package_dir)]):
        if mod.ispkg or mod.name in {"cli", "__init__"}:
            continue
        summary = _summary(package_dir / f"{mod.name}.py")
        commands[mod.name.replace("_", "-")] = (f"scripts.{mod.name}", summary)
    return commands


def main(argv: list[str] | None = None) -> None:
    commands = _discover_commands()
    parser = argparse.ArgumentParser(description="Crop schedule utilities")
    parser.add_argument("--list", action="store_true", help="List available commands")
    parser.add_argument("command", nargs="?", choices=sorted(commands))
    parser.add_argument("args", nargs=argparse.REMAINDER)
    ns = parser.parse_args(argv)

    if ns.list or not ns.command:
        for name in sorted(commands):
            print(f"{name:24} {commands[name][1]}")
        return

    module_name = commands[ns.command][0]
    sys.argv = [module_name] + ns.args
    runpy.run_module(module_name, run_name="__main__", alter_sys=True)


if __name__ == "__main__":  # pragma: no cover - manual execution
    main()

"""Destination cleanup.

Removes the destination root before a build.  Failures are fatal: the
caller must not start any transform when :func:`clean_destination` raises.
"""

from __future__ import annotations

import asyncio
import os
import shutil
import stat
import sys
import time
from collections.abc import Callable
from pathlib import Path

from assetflow.config import Config
from assetflow.exceptions import CleanError
from assetflow.utils import console, format_duration, relative_to_cwd


def _force_writable(
    func: Callable[[str], object],
    path: str,
    _exc: BaseException | tuple[object, ...],
) -> None:
    """Retry a failed removal after clearing the read-only bit.

    ``_exc`` is the exception under ``onexc`` and ``sys.exc_info()`` under
    ``onerror``.
    """
    parent = os.path.dirname(path)
    if parent:
        os.chmod(parent, os.stat(parent).st_mode | stat.S_IWRITE | stat.S_IEXEC)
    os.chmod(path, stat.S_IWRITE | stat.S_IREAD | stat.S_IEXEC)
    func(path)


def remove_tree(root: Path) -> list[Path]:
    """Delete *root* recursively and return every path that was removed.

    A missing *root* is a no-op.  Read-only entries are made writable and
    removed.  Raises :class:`CleanError` on any other failure.
    """
    if not root.exists() and not root.is_symlink():
        return []

    if root.is_symlink() or root.is_file():
        removed = [root]
        try:
            root.unlink()
        except OSError as exc:
            raise CleanError(root, str(exc)) from exc
        return removed

    removed = sorted(root.rglob("*"), reverse=True) + [root]
    try:
        if sys.version_info >= (3, 12):
            shutil.rmtree(root, onexc=_force_writable)
        else:
            shutil.rmtree(root, onerror=_force_writable)
    except OSError as exc:
        raise CleanError(root, str(exc)) from exc
    return removed


def _check_safe(config: Config) -> None:
    target = config.destination_root
    project = config.project_root.resolve()
    if target == project or target in project.parents:
        raise CleanError(target, "refusing to delete the project root or one of its parents")
    if target == config.source_root or target in config.source_root.parents:
        raise CleanError(target, "refusing to delete the source tree")


async def clean_destination(config: Config) -> list[Path]:
    """Remove ``config.destination_root`` and return the deleted paths."""
    start = time.monotonic()
    _check_safe(config)
    removed = await asyncio.to_thread(remove_tree, config.destination_root)

    if removed:
        console.print("  Files and directories deleted:")
        for path in removed:
            console.print(f"    [dim]{relative_to_cwd(path)}[/dim]")
    else:
        console.print(f"  Nothing to delete at {relative_to_cwd(config.destination_root)}")
    console.print(f"  clean: done in {format_duration(time.monotonic() - start)}")
    return removed

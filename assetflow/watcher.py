"""Watch coordinator: rerun a category's transform when its sources change.

Filesystem events come from watchfiles.  Each batch of changes is mapped to
the categories whose watch globs match, and every affected category is
triggered once.  Reruns are serialised per category by an ``asyncio.Lock``
and debounced on the trailing edge: a trigger arriving while the category is
already running or settling is folded into a single follow-up run.  Errors
from a step or from the reload callback are printed and never stop the
coordinator.
"""

from __future__ import annotations

import asyncio
import traceback
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from watchfiles import Change, awatch

from assetflow.config import AssetCategory, WatchConfig
from assetflow.steps.base import StepResult, TransformStep
from assetflow.utils import console, print_error, print_warning, relative_to_cwd

ReloadCallback = Callable[[], Awaitable[object]]


@dataclass
class _CategoryState:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    pending: bool = False
    runs: int = 0


class WatchCoordinator:
    """Maps source changes to step reruns.

    Args:
        steps: One transform step per category.
        settings: Debounce settings.
        on_rebuilt: Awaited after every completed rerun (typically
            :meth:`assetflow.server.DevServer.reload`).
    """

    def __init__(
        self,
        steps: dict[AssetCategory, TransformStep],
        settings: WatchConfig | None = None,
        on_rebuilt: ReloadCallback | None = None,
    ) -> None:
        self.steps = steps
        self.settings = settings or WatchConfig()
        self.on_rebuilt = on_rebuilt
        self._states = {category: _CategoryState() for category in steps}
        self._tasks: set[asyncio.Task] = set()
        self._stop_event = asyncio.Event()

    # -- Introspection ---------------------------------------------------

    @property
    def run_counts(self) -> dict[AssetCategory, int]:
        """Completed reruns per category."""
        return {category: state.runs for category, state in self._states.items()}

    def watch_paths(self) -> list[Path]:
        """Existing directories to watch, without nested duplicates.

        A category whose directory does not exist yet is covered by watching
        the source root instead, so creating the directory later still
        triggers its step.
        """
        candidates: set[Path] = set()
        for step in self.steps.values():
            if step.watch_dir.is_dir():
                candidates.add(step.watch_dir.resolve())
            elif step.config.source_root.is_dir():
                candidates.add(step.config.source_root)
        existing = sorted(candidates)
        roots: list[Path] = []
        for path in existing:
            if not any(root == path or root in path.parents for root in roots):
                roots.append(path)
        return roots

    def categories_for(self, path: Path) -> list[AssetCategory]:
        """Categories whose watch glob matches *path*."""
        return [category for category, step in self.steps.items() if step.watches(path)]

    # -- Dispatch --------------------------------------------------------

    def dispatch(self, changes: Iterable[tuple[Change, str]]) -> list[AssetCategory]:
        """Schedule one trigger per affected category.  Returns the categories."""
        affected: list[AssetCategory] = []
        for change, raw_path in changes:
            for category in self.categories_for(Path(raw_path)):
                if category not in affected:
                    affected.append(category)
                    console.print(
                        f"  [dim]{change.name}[/dim] {relative_to_cwd(Path(raw_path))} "
                        f"-> [bold]{category.value}[/bold]"
                    )

        for category in affected:
            task = asyncio.create_task(self.trigger(category))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        return affected

    async def trigger(self, category: AssetCategory) -> None:
        """Rerun *category*, coalescing with any run already in progress."""
        state = self._states[category]
        state.pending = True
        if state.lock.locked():
            return

        async with state.lock:
            while state.pending:
                if self.settings.settle_seconds:
                    await asyncio.sleep(self.settings.settle_seconds)
                state.pending = False
                await self._run_once(category)
                state.runs += 1

    async def _run_once(self, category: AssetCategory) -> StepResult | None:
        step = self.steps[category]
        try:
            result = await step.run()
        except Exception as exc:
            print_error(f"  [{category.value}] rebuild failed: {exc}")
            console.print(f"[dim]{traceback.format_exc()}[/dim]")
            return None

        if self.on_rebuilt is not None:
            try:
                await self.on_rebuilt()
            except Exception as exc:
                print_warning(f"  Reload after {category.value} failed: {exc}")
        return result

    # -- Watch loop ------------------------------------------------------

    async def watch(self) -> None:
        """Watch source directories until :meth:`stop` is called."""
        paths = self.watch_paths()
        if not paths:
            print_warning("  No source directories exist -- nothing to watch.")
            await self._stop_event.wait()
            return

        for path in paths:
            console.print(f"  Watching [bold]{relative_to_cwd(path)}[/bold]")

        async for changes in awatch(
            *paths,
            stop_event=self._stop_event,
            debounce=self.settings.debounce_ms,
            recursive=True,
        ):
            self.dispatch(changes)

    async def stop(self) -> None:
        """Stop watching and wait for in-flight reruns."""
        self._stop_event.set()
        await self.drain()

    async def drain(self) -> None:
        """Wait until every scheduled rerun has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

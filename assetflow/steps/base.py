"""Common machinery for transform steps.

A :class:`TransformStep` collects the files matched by its glob, hands them
to :meth:`TransformStep.transform` (a pure function over in-memory file
sets) in a worker thread, then writes the outputs to its destination
directory.  Per-file failures end up in :attr:`StepResult.errors`; only a
step that cannot read its sources or write its outputs raises
:class:`~assetflow.exceptions.StepError`.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path

from assetflow.config import AssetCategory, Config
from assetflow.exceptions import StepError
from assetflow.files import AssetGlob, OutputFile, SourceFile, collect_sources, write_outputs
from assetflow.utils import console, format_duration, print_warning


@dataclass
class TransformResult:
    """Outputs and per-file errors produced by a pure transform."""

    outputs: list[OutputFile] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class StepResult:
    """Structured result of one step run."""

    name: str
    category: AssetCategory | None = None
    sources: int = 0
    written: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return not self.errors

    def summary(self) -> str:
        """Return a one-line Rich-markup summary."""
        status = "[green]ok[/green]" if self.success else f"[red]{len(self.errors)} error(s)[/red]"
        return (
            f"  {self.name}: {len(self.written)} file(s) from {self.sources} source(s) "
            f"in {format_duration(self.duration_seconds)} -- {status}"
        )


class TransformStep:
    """Base class for the five per-category transform steps.

    Subclasses set :attr:`category` and :attr:`pattern` and implement
    :meth:`transform`.  :attr:`watch_pattern` defaults to :attr:`pattern`
    and selects which changed files retrigger the step.
    """

    category: AssetCategory
    pattern: AssetGlob
    watch_pattern: AssetGlob | None = None

    def __init__(self, config: Config) -> None:
        self.config = config

    @property
    def name(self) -> str:
        return self.category.value

    @property
    def source_dir(self) -> Path:
        """Directory the build glob is evaluated against."""
        return self.config.source_dir(self.category)

    @property
    def watch_dir(self) -> Path:
        """Directory whose changes retrigger this step."""
        return self.config.source_dir(self.category)

    @property
    def destination_dir(self) -> Path:
        return self.config.destination_dir(self.category)

    def watches(self, path: Path) -> bool:
        """Return ``True`` if a change to *path* should rerun this step."""
        try:
            relative = path.resolve().relative_to(self.watch_dir.resolve())
        except ValueError:
            return False
        return (self.watch_pattern or self.pattern).matches(relative.as_posix())

    # -- Hooks -----------------------------------------------------------

    def transform(self, sources: list[SourceFile]) -> TransformResult:
        raise NotImplementedError

    async def after_write(self, written: list[Path], errors: list[str]) -> None:
        """Post-process written files.  Append per-file problems to *errors*."""

    # -- Run -------------------------------------------------------------

    async def run(self) -> StepResult:
        """Collect, transform and write.  Returns the step result."""
        start = time.monotonic()
        try:
            sources = await asyncio.to_thread(collect_sources, self.source_dir, self.pattern)
        except OSError as exc:
            raise StepError(self.name, f"cannot read {self.source_dir}: {exc}") from exc

        transformed = await asyncio.to_thread(self.transform, sources)

        try:
            written = await asyncio.to_thread(
                write_outputs, self.destination_dir, transformed.outputs
            )
        except OSError as exc:
            raise StepError(self.name, f"cannot write to {self.destination_dir}: {exc}") from exc

        errors = list(transformed.errors)
        await self.after_write(written, errors)

        for error in errors:
            print_warning(f"  [{self.name}] {error}")

        result = StepResult(
            name=self.name,
            category=self.category,
            sources=len(sources),
            written=written,
            errors=errors,
            duration_seconds=time.monotonic() - start,
        )
        console.print(result.summary())
        return result

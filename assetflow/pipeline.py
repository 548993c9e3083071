"""assetflow task composer.

Implements the three entry points:

clean -- remove the destination tree.
build -- clean, then run all five transforms concurrently with production
         settings (HTML minified), and report.
dev   -- clean, run all five transforms concurrently, start the dev server,
         then watch sources and rerun the affected transform (followed by a
         browser reload) on every change.  Runs until interrupted.

Usage::

    python -m assetflow dev
    python -m assetflow build --root ./site
    python -m assetflow clean
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
import traceback
from pathlib import Path

from rich.panel import Panel

from assetflow.config import Config
from assetflow.exceptions import AssetflowError
from assetflow.server import DevServer
from assetflow.steps import StepResult, clean_destination, create_steps
from assetflow.utils import (
    console,
    format_duration,
    print_error,
    print_step_header,
    print_success,
    print_summary_table,
    print_warning,
    wait_for_health,
)
from assetflow.watcher import WatchCoordinator


class AssetPipeline:
    """Sequences the clean step, the transforms, the dev server and the watcher.

    Attributes:
        config: Immutable configuration shared by every step.
        server: The dev server, once :meth:`dev` has started it.
        coordinator: The watch coordinator, once :meth:`dev` is watching.
    """

    def __init__(self, config: Config) -> None:
        self.config = config
        self.server: DevServer | None = None
        self.coordinator: WatchCoordinator | None = None

    # ------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------

    async def clean(self) -> list[Path]:
        """Remove the destination root.  Raises ``CleanError`` on failure."""
        print_step_header("clean")
        return await clean_destination(self.config)

    async def run_transforms(self, config: Config | None = None) -> list[StepResult]:
        """Run all five transforms concurrently and wait for every one.

        A step that raises is converted into a failed ``StepResult`` so the
        others still complete.
        """
        steps = create_steps(config or self.config)
        print_step_header("transforms")
        outcomes = await asyncio.gather(
            *(step.run() for step in steps.values()), return_exceptions=True
        )

        results: list[StepResult] = []
        for (category, _step), outcome in zip(steps.items(), outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                print_error(f"  [{category.value}] {outcome}")
                results.append(StepResult(name=category.value, category=category, errors=[str(outcome)]))
            else:
                results.append(outcome)
        return results

    def _print_results(self, results: list[StepResult], elapsed: float) -> None:
        rows = [
            (
                result.name,
                str(result.sources),
                str(len(result.written)),
                str(len(result.errors)),
                format_duration(result.duration_seconds),
            )
            for result in results
        ]
        print_summary_table(
            rows,
            headers=("Step", "Sources", "Written", "Errors", "Duration"),
            title=f"Built in {format_duration(elapsed)}",
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def build(self) -> bool:
        """Clean and run every transform with production settings.

        Returns:
            ``True`` if every step succeeded.
        """
        start = time.monotonic()
        console.print(
            Panel(
                f"[bold bright_cyan]assetflow build[/bold bright_cyan]\n"
                f"Sources     : {self.config.source_root}\n"
                f"Destination : {self.config.destination_root}",
                border_style="bright_cyan",
            )
        )
        await self.clean()
        production = self.config.with_overrides(templates={"minify": True})
        results = await self.run_transforms(production)
        self._print_results(results, time.monotonic() - start)

        failed = [result.name for result in results if not result.success]
        if failed:
            print_error(f"Build finished with errors in: {', '.join(failed)}")
            return False
        print_success("Build completed successfully")
        return True

    async def dev(self) -> None:
        """Clean, build, serve and watch.  Returns only when cancelled or stopped."""
        start = time.monotonic()
        console.print(
            Panel(
                f"[bold bright_cyan]assetflow dev[/bold bright_cyan]\n"
                f"Sources     : {self.config.source_root}\n"
                f"Destination : {self.config.destination_root}",
                border_style="bright_cyan",
            )
        )
        await self.clean()
        results = await self.run_transforms()
        self._print_results(results, time.monotonic() - start)

        print_step_header("server")
        self.server = DevServer(self.config.destination_root, self.config.server)
        url = await self.server.start()
        if not await wait_for_health(url):
            print_warning(f"  Dev server at {url} is not answering yet.")

        print_step_header("watch")
        self.coordinator = WatchCoordinator(
            create_steps(self.config),
            settings=self.config.watch,
            on_rebuilt=self.server.reload,
        )
        try:
            await self.coordinator.watch()
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """Stop the watcher and the dev server if they are running."""
        if self.coordinator is not None:
            await self.coordinator.stop()
        if self.server is not None:
            await self.server.stop()


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_config(args: argparse.Namespace) -> Config:
    """Create the configuration from a saved file or the environment, then CLI flags."""
    if args.config:
        config = Config.load(Path(args.config))
    else:
        config = Config.from_env()

    if args.root:
        config = config.with_overrides(project_root=Path(args.root))
    server: dict[str, object] = {}
    if args.host:
        server["host"] = args.host
    if args.port is not None:
        server["port"] = args.port
    if server:
        config = config.with_overrides(server=server)
    return config


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``python -m assetflow``."""
    parser = argparse.ArgumentParser(
        prog="assetflow",
        description="assetflow -- static site asset pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m assetflow dev\n"
            "  python -m assetflow dev --port 0\n"
            "  python -m assetflow build --root ./site\n"
        ),
    )
    parser.add_argument("task", choices=("dev", "build", "clean"), help="Task to run")
    parser.add_argument("--root", default=None, help="Project root (default: current directory)")
    parser.add_argument("--config", default=None, help="JSON configuration file")
    parser.add_argument("--host", default=None, help="Dev server host (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=None, help="Dev server port (0 = any free port)")

    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except (OSError, ValueError) as exc:
        console.print(f"[bold red]Error:[/bold red] Invalid configuration: {exc}")
        return 1

    pipeline = AssetPipeline(config)
    try:
        if args.task == "clean":
            asyncio.run(pipeline.clean())
            return 0
        if args.task == "build":
            return 0 if asyncio.run(pipeline.build()) else 1
        asyncio.run(pipeline.dev())
        return 0
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted -- stopped.[/dim]")
        return 0
    except AssetflowError as exc:
        print_error(str(exc))
        return 1
    except Exception as exc:
        print_error(f"Unexpected failure: {exc}")
        console.print(f"[dim]{traceback.format_exc()}[/dim]")
        return 1


if __name__ == "__main__":
    sys.exit(main())

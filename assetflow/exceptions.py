"""Exception hierarchy for assetflow."""

from __future__ import annotations


class AssetflowError(Exception):
    """Base class for every error raised by assetflow."""


class CleanError(AssetflowError):
    """Raised when the destination tree cannot be removed.

    Fatal: the pipeline stops before any transform writes output, so stale
    and fresh files are never mixed.
    """

    def __init__(self, path: object, message: str) -> None:
        self.path = path
        super().__init__(f"Cannot clean {path}: {message}")


class StepError(AssetflowError):
    """Raised when a transform step cannot run at all.

    Per-file failures are not raised; they are recorded on the step result.
    """

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        super().__init__(f"Step {step}: {message}")

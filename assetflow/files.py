"""In-memory file sets and the disk adapter around them.

Every transform step is a function from a list of :class:`SourceFile` to a
list of :class:`OutputFile`.  Reading sources from disk and writing outputs
back happens only here, so transforms can be exercised against in-memory
file sets.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath


@dataclass(frozen=True)
class SourceFile:
    """A matched source file.

    Attributes:
        relative: Path relative to the category's source directory.
        data: Raw file bytes.
        origin: Absolute location on disk, when the file came from disk.
    """

    relative: PurePosixPath
    data: bytes
    origin: Path | None = None

    @property
    def name(self) -> str:
        return self.relative.name

    def text(self) -> str:
        return self.data.decode("utf-8")


@dataclass(frozen=True)
class OutputFile:
    """A file to be written relative to a destination directory."""

    relative: PurePosixPath
    data: bytes

    @classmethod
    def from_text(cls, relative: str | PurePosixPath, text: str) -> "OutputFile":
        return cls(PurePosixPath(relative), text.encode("utf-8"))


@dataclass(frozen=True)
class AssetGlob:
    """Selects source files by extension and depth.

    An empty *extensions* set matches every file.  Non-recursive globs only
    match files directly inside the source directory.  Hidden files never
    match.
    """

    extensions: frozenset[str] = field(default_factory=frozenset)
    recursive: bool = True
    exclude_prefixes: tuple[str, ...] = ()

    def matches(self, relative: PurePosixPath | str) -> bool:
        path = PurePosixPath(relative)
        if not path.parts or any(part.startswith(".") for part in path.parts):
            return False
        if not self.recursive and len(path.parts) != 1:
            return False
        if self.exclude_prefixes and path.name.startswith(self.exclude_prefixes):
            return False
        if self.extensions and path.suffix.lower() not in self.extensions:
            return False
        return True

    def describe(self) -> str:
        """Render the glob in shell notation, e.g. ``**/*.{png,jpg}``."""
        prefix = "**/" if self.recursive else ""
        if not self.extensions:
            return f"{prefix}*"
        exts = sorted(ext.lstrip(".") for ext in self.extensions)
        if len(exts) == 1:
            return f"{prefix}*.{exts[0]}"
        return f"{prefix}*.{{{','.join(exts)}}}"


def glob(*extensions: str, recursive: bool = True, exclude_prefixes: tuple[str, ...] = ()) -> AssetGlob:
    """Shorthand for building an :class:`AssetGlob`."""
    normalised = frozenset(
        ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions
    )
    return AssetGlob(normalised, recursive, exclude_prefixes)


def iter_matching(root: Path, pattern: AssetGlob) -> list[Path]:
    """Return the sorted absolute paths under *root* matched by *pattern*.

    A missing *root* yields an empty list.
    """
    if not root.is_dir():
        return []
    candidates = root.rglob("*") if pattern.recursive else root.iterdir()
    matched = [
        path
        for path in candidates
        if path.is_file() and pattern.matches(path.relative_to(root).as_posix())
    ]
    return sorted(matched)


def collect_sources(root: Path, pattern: AssetGlob) -> list[SourceFile]:
    """Read every file under *root* matched by *pattern* into memory."""
    return [
        SourceFile(
            relative=PurePosixPath(path.relative_to(root).as_posix()),
            data=path.read_bytes(),
            origin=path,
        )
        for path in iter_matching(root, pattern)
    ]


def write_outputs(destination: Path, outputs: list[OutputFile]) -> list[Path]:
    """Write *outputs* under *destination*, creating directories as needed.

    Returns:
        The absolute paths written, in order.
    """
    written: list[Path] = []
    for output in outputs:
        target = destination.joinpath(*output.relative.parts)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(output.data)
        written.append(target)
    return written

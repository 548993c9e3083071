"""assetflow configuration.

Typed, immutable configuration for the asset pipeline.  All settings use
Pydantic v2 models so they are validated at construction time and can be
serialised to/from JSON or environment variables.  A ``Config`` is built once
at startup and passed explicitly to every step; use :meth:`Config.with_overrides`
to derive a variant instead of mutating it.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AssetCategory(str, Enum):
    """The five asset categories handled by the pipeline."""

    STYLES = "styles"
    SCRIPTS = "scripts"
    TEMPLATES = "templates"
    IMAGES = "images"
    FONTS = "fonts"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class CategoryPaths(_Frozen):
    """Source and destination subpaths for one asset category.

    ``source`` is relative to ``PathConfig.source_root`` and ``destination``
    is relative to ``PathConfig.destination_root``.  An empty destination
    means the destination root itself.
    """

    source: str
    destination: str = ""


class PathConfig(_Frozen):
    """Static mapping from asset categories to source/destination directories."""

    source_root: Path = Field(default=Path("src"))
    destination_root: Path = Field(default=Path("dist"))
    styles: CategoryPaths = Field(default=CategoryPaths(source="scss", destination="css"))
    scripts: CategoryPaths = Field(default=CategoryPaths(source="js", destination="js"))
    templates: CategoryPaths = Field(default=CategoryPaths(source="html", destination=""))
    images: CategoryPaths = Field(
        default=CategoryPaths(source="images", destination="assets/images")
    )
    fonts: CategoryPaths = Field(
        default=CategoryPaths(source="fonts", destination="assets/fonts")
    )

    def for_category(self, category: AssetCategory | str) -> CategoryPaths:
        """Return the ``CategoryPaths`` entry for *category*."""
        return getattr(self, AssetCategory(category).value)


class StyleConfig(_Frozen):
    """Stylesheet compilation settings."""

    autoprefix: bool = True
    minify: bool = True
    source_maps: bool = True
    include_paths: list[str] = Field(default_factory=list)
    precision: int = Field(default=5, ge=0, le=10)


class ScriptConfig(_Frozen):
    """Script minification settings."""

    source_maps: bool = True
    obfuscate: bool = Field(default=False, description="Shorten local identifiers")


class TemplateConfig(_Frozen):
    """Template rendering settings."""

    pages_dir: str = Field(
        default="pages",
        description="Subdirectory of the templates source holding renderable pages",
    )
    extensions: list[str] = Field(default_factory=lambda: [".njk"])
    minify: bool = Field(default=False, description="Collapse whitespace in rendered HTML")


class ImageConfig(_Frozen):
    """Image optimisation settings."""

    jpeg_quality: int = Field(default=75, ge=1, le=100)
    jpeg_progressive: bool = True
    png_optimization_level: int = Field(default=5, ge=0, le=7)
    svg_remove_viewbox: bool = True
    svg_keep_ids: bool = True


class ServerConfig(_Frozen):
    """Development server settings.  Port ``0`` picks an ephemeral port."""

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3000, ge=0, le=65535)
    open_browser: bool = Field(default=False)


class WatchConfig(_Frozen):
    """File watching settings."""

    debounce_ms: int = Field(
        default=200, ge=0, description="Window in which filesystem events are batched"
    )
    settle_seconds: float = Field(
        default=0.1, ge=0.0, description="Trailing-edge delay before a category reruns"
    )


class Config(_Frozen):
    """Global assetflow configuration.

    Holds every tuneable parameter used by the pipeline.  Relative paths are
    resolved against ``project_root``.
    """

    project_root: Path = Field(default=Path("."))
    paths: PathConfig = Field(default_factory=PathConfig)
    styles: StyleConfig = Field(default_factory=StyleConfig)
    scripts: ScriptConfig = Field(default_factory=ScriptConfig)
    templates: TemplateConfig = Field(default_factory=TemplateConfig)
    images: ImageConfig = Field(default_factory=ImageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def source_root(self) -> Path:
        """Absolute source root."""
        return (self.project_root / self.paths.source_root).resolve()

    @property
    def destination_root(self) -> Path:
        """Absolute destination root (deleted by the clean step)."""
        return (self.project_root / self.paths.destination_root).resolve()

    def source_dir(self, category: AssetCategory | str) -> Path:
        """Absolute source directory for *category*."""
        return self.source_root / self.paths.for_category(category).source

    def destination_dir(self, category: AssetCategory | str) -> Path:
        """Absolute destination directory for *category*."""
        destination = self.paths.for_category(category).destination
        if not destination:
            return self.destination_root
        return self.destination_root / destination

    @property
    def pages_dir(self) -> Path:
        """Directory holding the renderable template pages."""
        templates = self.source_dir(AssetCategory.TEMPLATES)
        if self.templates.pages_dir:
            return templates / self.templates.pages_dir
        return templates

    @property
    def template_search_paths(self) -> list[Path]:
        """Loader search paths: templates first, then images for inline assets."""
        return [
            self.source_dir(AssetCategory.TEMPLATES),
            self.source_dir(AssetCategory.IMAGES),
        ]

    def public_url(self, category: AssetCategory | str) -> str:
        """URL prefix under which *category* is served from the destination root."""
        destination = self.paths.for_category(category).destination.strip("/")
        return f"/{destination}" if destination else ""

    # ------------------------------------------------------------------
    # Derivation and serialisation helpers
    # ------------------------------------------------------------------

    def with_overrides(self, **sections: Any) -> "Config":
        """Return a copy with the given top-level fields or section fields replaced.

        Section values may be dicts, which are merged into the existing
        section::

            config.with_overrides(templates={"minify": True})
        """
        update: dict[str, Any] = {}
        for key, value in sections.items():
            current = getattr(self, key)
            if isinstance(value, dict) and isinstance(current, BaseModel):
                update[key] = current.model_copy(update=value)
            else:
                update[key] = value
        return self.model_copy(update=update)

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file and return its path."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls, **defaults: Any) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            ASSETFLOW_ROOT, ASSETFLOW_HOST, ASSETFLOW_PORT,
            ASSETFLOW_DEBOUNCE_MS, ASSETFLOW_MINIFY_HTML.
        """
        kwargs: dict[str, Any] = dict(defaults)
        if os.environ.get("ASSETFLOW_ROOT"):
            kwargs["project_root"] = Path(os.environ["ASSETFLOW_ROOT"])

        server_kwargs: dict[str, Any] = {}
        if os.environ.get("ASSETFLOW_HOST"):
            server_kwargs["host"] = os.environ["ASSETFLOW_HOST"]
        if os.environ.get("ASSETFLOW_PORT"):
            server_kwargs["port"] = int(os.environ["ASSETFLOW_PORT"])
        if server_kwargs:
            kwargs["server"] = ServerConfig(**server_kwargs)

        if os.environ.get("ASSETFLOW_DEBOUNCE_MS"):
            kwargs["watch"] = WatchConfig(debounce_ms=int(os.environ["ASSETFLOW_DEBOUNCE_MS"]))

        minify_html = os.environ.get("ASSETFLOW_MINIFY_HTML")
        if minify_html:
            kwargs["templates"] = TemplateConfig(
                minify=minify_html.strip().lower() in ("1", "true", "yes", "on")
            )

        return cls(**kwargs)

"""Stylesheet transform: Sass -> vendor prefixing -> minification.

Every non-partial ``.scss`` file under the styles source is compiled with
libsass, emitting a source map.  Outputs are flattened into the css
destination directory: ``scss/pages/home.scss`` becomes ``css/home.css``
plus ``css/home.css.map``.
"""

from __future__ import annotations

import json
from pathlib import Path, PurePosixPath

import rcssmin
import sass

from assetflow.config import AssetCategory
from assetflow.files import OutputFile, SourceFile, glob
from assetflow.prefixer import prefix_css
from assetflow.steps.base import TransformResult, TransformStep


class StylesheetStep(TransformStep):
    """Compile, prefix and minify stylesheets."""

    category = AssetCategory.STYLES
    pattern = glob("scss", exclude_prefixes=("_",))
    # Partials do not produce output but editing one must rebuild its importers.
    watch_pattern = glob("scss")

    def include_paths(self, source: SourceFile) -> list[str]:
        paths = [str(self.source_dir)]
        if source.origin is not None:
            paths.insert(0, str(source.origin.parent))
        paths.extend(
            str((self.config.project_root / extra).resolve())
            for extra in self.config.styles.include_paths
        )
        return paths

    def compile(self, source: SourceFile) -> tuple[str, str | None]:
        """Compile one entry file; returns ``(css, source_map_json)``.

        Raises ``sass.CompileError`` on invalid input.
        """
        settings = self.config.styles
        stem = PurePosixPath(source.name).stem
        css_path = self.destination_dir / f"{stem}.css"
        map_path = self.destination_dir / f"{stem}.css.map"

        if source.origin is None:
            css = sass.compile(
                string=source.text(),
                include_paths=self.include_paths(source),
                output_style="expanded",
                precision=settings.precision,
            )
            return css, None

        if not settings.source_maps:
            css = sass.compile(
                filename=str(source.origin),
                include_paths=self.include_paths(source),
                output_style="expanded",
                precision=settings.precision,
            )
            return css, None

        css, source_map = sass.compile(
            filename=str(source.origin),
            include_paths=self.include_paths(source),
            output_style="expanded",
            precision=settings.precision,
            source_map_filename=str(map_path),
            output_filename_hint=str(css_path),
            omit_source_map_url=True,
            source_map_contents=True,
        )
        return css, source_map

    def postprocess(self, css: str) -> str:
        """Vendor prefixing, then minification."""
        if self.config.styles.autoprefix:
            css = prefix_css(css)
        if self.config.styles.minify:
            css = rcssmin.cssmin(css)
        return css

    def transform(self, sources: list[SourceFile]) -> TransformResult:
        result = TransformResult()
        produced: dict[str, PurePosixPath] = {}

        for source in sources:
            stem = PurePosixPath(source.name).stem
            try:
                css, source_map = self.compile(source)
            except sass.CompileError as exc:
                result.errors.append(f"{source.relative}: {_first_line(exc)}")
                continue
            except UnicodeDecodeError as exc:
                result.errors.append(f"{source.relative}: not valid UTF-8 ({exc.reason})")
                continue

            try:
                css = self.postprocess(css)
            except Exception as exc:
                result.errors.append(f"{source.relative}: {exc.__class__.__name__}: {exc}")
                continue

            if stem in produced:
                result.errors.append(
                    f"{source.relative}: overwrites {stem}.css from {produced[stem]}"
                )
                result.outputs = [
                    output for output in result.outputs
                    if output.relative.name not in (f"{stem}.css", f"{stem}.css.map")
                ]
            produced[stem] = source.relative

            if source_map is not None:
                css = f"{css.rstrip()}\n/*# sourceMappingURL={stem}.css.map */\n"
                result.outputs.append(
                    OutputFile.from_text(f"{stem}.css.map", _normalise_map(source_map, stem))
                )
            result.outputs.append(OutputFile.from_text(f"{stem}.css", css))

        return result


def _normalise_map(source_map: str, stem: str) -> str:
    data = json.loads(source_map)
    data["file"] = f"{stem}.css"
    return json.dumps(data, separators=(",", ":"))


def _first_line(exc: Exception) -> str:
    text = str(exc).strip()
    return text.splitlines()[0] if text else exc.__class__.__name__

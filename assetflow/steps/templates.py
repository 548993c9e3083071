"""Template transform: render Jinja2 pages to HTML.

Pages are the top-level template files of ``<templates source>/<pages_dir>``.
The loader searches the templates source first and the images source second,
so pages can ``{% include %}`` partials and inline SVG files.  Each page is
written as ``<stem>.html`` in the destination root.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Any

import minify_html
from jinja2 import BaseLoader, Environment, FileSystemLoader

from assetflow.config import AssetCategory, Config
from assetflow.files import OutputFile, SourceFile, glob
from assetflow.steps.base import TransformResult, TransformStep


def create_environment(loader: BaseLoader) -> Environment:
    """Jinja2 environment used for page rendering."""
    return Environment(
        loader=loader,
        autoescape=False,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_pages(
    pages: list[SourceFile],
    env: Environment,
    context: dict[str, Any] | None = None,
    minify: bool = False,
) -> TransformResult:
    """Render *pages* with *env*.  A failing page does not stop the others."""
    result = TransformResult()
    for page in pages:
        output_name = f"{PurePosixPath(page.name).stem}.html"
        try:
            template = env.from_string(page.text())
            html = template.render(**(context or {}), page=output_name)
            if minify:
                html = minify_html.minify(html, minify_css=True, minify_js=True)
        except UnicodeDecodeError as exc:
            result.errors.append(f"{page.relative}: not valid UTF-8 ({exc.reason})")
            continue
        except Exception as exc:
            # TemplateError, plus whatever template expressions raise at render time
            result.errors.append(f"{page.relative}: {exc.__class__.__name__}: {exc}")
            continue
        result.outputs.append(OutputFile.from_text(output_name, html))
    return result


class TemplateStep(TransformStep):
    """Render pages with Jinja2 and optionally minify the HTML."""

    category = AssetCategory.TEMPLATES
    watch_pattern = glob("html", "njk")

    def __init__(self, config: Config) -> None:
        super().__init__(config)
        self.pattern = glob(*config.templates.extensions, recursive=False)

    @property
    def source_dir(self) -> Path:
        return self.config.pages_dir

    def context(self) -> dict[str, Any]:
        return {
            "css_url": self.config.public_url(AssetCategory.STYLES),
            "js_url": self.config.public_url(AssetCategory.SCRIPTS),
            "images_url": self.config.public_url(AssetCategory.IMAGES),
            "fonts_url": self.config.public_url(AssetCategory.FONTS),
        }

    def transform(self, sources: list[SourceFile]) -> TransformResult:
        loader = FileSystemLoader([str(path) for path in self.config.template_search_paths])
        return render_pages(
            sources,
            create_environment(loader),
            context=self.context(),
            minify=self.config.templates.minify,
        )

"""Image transform: recompress JPEG/PNG with Pillow and clean up SVG markup.

Outputs keep their relative placement under the images destination.  An
optimised file never grows: when re-encoding produces more bytes than the
source, the source bytes are written unchanged.  PNG outputs get a second
pass through ``optipng`` when the executable is on ``PATH``.
"""

from __future__ import annotations

import io
import re
import shutil
import xml.etree.ElementTree as ET
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from assetflow.config import AssetCategory, ImageConfig
from assetflow.files import OutputFile, SourceFile, glob
from assetflow.steps.base import TransformResult, TransformStep
from assetflow.utils import run_command

SVG_NAMESPACE = "http://www.w3.org/2000/svg"
XLINK_NAMESPACE = "http://www.w3.org/1999/xlink"

_ID_REFERENCE = re.compile(r"#([A-Za-z_][\w.:-]*)")
_RESERVED_PREFIX = re.compile(r"ns\d+$")


class ImageError(ValueError):
    """Raised for an image that cannot be decoded."""


def optimize_jpeg(data: bytes, settings: ImageConfig) -> bytes:
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        if image.mode not in ("RGB", "L", "CMYK"):
            image = image.convert("RGB")
        buffer = io.BytesIO()
        image.save(
            buffer,
            format="JPEG",
            quality=settings.jpeg_quality,
            progressive=settings.jpeg_progressive,
            optimize=True,
        )
    return buffer.getvalue()


def optimize_png(data: bytes, settings: ImageConfig) -> bytes:
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        buffer = io.BytesIO()
        save_kwargs = {"format": "PNG", "optimize": True}
        if "transparency" in image.info:
            save_kwargs["transparency"] = image.info["transparency"]
        image.save(buffer, **save_kwargs)
    return buffer.getvalue()


def _register_namespaces(data: bytes) -> None:
    """Keep the document's own prefixes instead of ``ns0:`` on output."""
    for _event, (prefix, uri) in ET.iterparse(io.BytesIO(data), events=("start-ns",)):
        if not prefix or uri == SVG_NAMESPACE or _RESERVED_PREFIX.match(prefix):
            continue
        ET.register_namespace(prefix, uri)


def _strip_whitespace(element: ET.Element) -> None:
    if element.text is not None and not element.text.strip():
        element.text = None
    for child in element:
        if child.tail is not None and not child.tail.strip():
            child.tail = None
        _strip_whitespace(child)


def _remove_unreferenced_ids(root: ET.Element, document: str) -> None:
    referenced = set(_ID_REFERENCE.findall(document))
    for element in root.iter():
        element_id = element.get("id")
        if element_id is not None and element_id not in referenced:
            del element.attrib["id"]


def optimize_svg(data: bytes, settings: ImageConfig) -> bytes:
    """Remove comments and whitespace-only text; drop ``viewBox`` when configured."""
    try:
        _register_namespaces(data)
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise ImageError(f"invalid SVG: {exc}") from exc

    if settings.svg_remove_viewbox:
        root.attrib.pop("viewBox", None)
    if not settings.svg_keep_ids:
        _remove_unreferenced_ids(root, data.decode("utf-8", errors="replace"))
    _strip_whitespace(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=False)


ET.register_namespace("", SVG_NAMESPACE)
ET.register_namespace("xlink", XLINK_NAMESPACE)


_OPTIMIZERS = {
    ".jpg": optimize_jpeg,
    ".jpeg": optimize_jpeg,
    ".png": optimize_png,
    ".svg": optimize_svg,
}


def optimize_image(source: SourceFile, settings: ImageConfig) -> bytes:
    """Return the optimised bytes for *source*, never larger than the original.

    Raises:
        ImageError: The file cannot be decoded or has an unsupported type.
    """
    optimizer = _OPTIMIZERS.get(source.relative.suffix.lower())
    if optimizer is None:
        raise ImageError(f"unsupported image type {source.relative.suffix!r}")
    try:
        optimized = optimizer(source.data, settings)
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise ImageError(f"cannot decode image: {exc}") from exc
    except Image.DecompressionBombError as exc:
        raise ImageError(f"refusing oversized image: {exc}") from exc
    except Exception as exc:
        raise ImageError(f"cannot re-encode image: {exc.__class__.__name__}: {exc}") from exc
    if len(optimized) >= len(source.data):
        return source.data
    return optimized


class ImageStep(TransformStep):
    """Optimise PNG, JPEG and SVG files."""

    category = AssetCategory.IMAGES
    pattern = glob("png", "jpg", "jpeg", "svg")

    def transform(self, sources: list[SourceFile]) -> TransformResult:
        result = TransformResult()
        for source in sources:
            try:
                data = optimize_image(source, self.config.images)
            except ImageError as exc:
                result.errors.append(f"{source.relative}: skipped, {exc}")
                continue
            result.outputs.append(OutputFile(source.relative, data))
        return result

    async def after_write(self, written: list[Path], errors: list[str]) -> None:
        optipng = shutil.which("optipng")
        if optipng is None:
            return
        level = self.config.images.png_optimization_level
        for path in written:
            if path.suffix.lower() != ".png":
                continue
            returncode, _stdout, stderr = await run_command(
                [optipng, f"-o{level}", "-quiet", str(path)]
            )
            if returncode != 0:
                errors.append(f"{path.name}: optipng failed ({stderr or returncode})")

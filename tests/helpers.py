"""Test helpers shared across the assetflow suite."""

from __future__ import annotations

import io
import textwrap
from pathlib import Path

from PIL import Image


def make_png(size: int = 64, compress_level: int = 0) -> bytes:
    """A compressible gradient PNG, stored without compression by default."""
    image = Image.new("RGB", (size, size))
    image.putdata([(x * 4 % 256, y * 4 % 256, 128) for y in range(size) for x in range(size)])
    buffer = io.BytesIO()
    image.save(buffer, format="PNG", compress_level=compress_level)
    return buffer.getvalue()


def make_jpeg(size: int = 64, quality: int = 100) -> bytes:
    image = Image.new("RGB", (size, size))
    image.putdata([(x * 4 % 256, y * 4 % 256, (x + y) % 256) for y in range(size) for x in range(size)])
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


SAMPLE_SVG = textwrap.dedent("""\
    <?xml version="1.0" encoding="UTF-8"?>
    <svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 10 10" width="10" height="10">
      <!-- exported by an editor -->
      <g id="layer">
        <rect id="box" width="10" height="10" fill="#ff0000"/>
      </g>
    </svg>
""").encode("utf-8")


def write(path: Path, content: str | bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path

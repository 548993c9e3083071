"""Shared pytest fixtures for the assetflow test suite.

Provides reusable fixtures for:
- Configurations rooted at a temporary project directory
- A complete sample site (scss, js, templates, images, fonts)
"""

from __future__ import annotations

from pathlib import Path

import pytest

from assetflow.config import Config, ServerConfig, WatchConfig
from tests.helpers import SAMPLE_SVG, make_jpeg, make_png, write


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Config rooted at tmp_path with an ephemeral server port and no settle delay."""
    return Config(
        project_root=tmp_path,
        server=ServerConfig(port=0),
        watch=WatchConfig(debounce_ms=50, settle_seconds=0.0),
    )


# ---------------------------------------------------------------------------
# Sample site
# ---------------------------------------------------------------------------

@pytest.fixture
def site(tmp_path: Path) -> Path:
    """A complete sample project under tmp_path.  Returns the project root."""
    src = tmp_path / "src"

    write(src / "scss" / "_vars.scss", "$primary: #ff0000;\n")
    write(
        src / "scss" / "main.scss",
        '@import "vars";\n\n.box {\n  color: $primary;\n  user-select: none;\n}\n',
    )
    write(src / "scss" / "pages" / "home.scss", ".home {\n  .title { margin: 0; }\n}\n")

    write(src / "js" / "app.js", "function add(first, second) {\n  return first + second;\n}\n")
    write(src / "js" / "vendor" / "lib.js", "var ignored = true;\n")

    write(
        src / "html" / "layouts" / "base.njk",
        "<!DOCTYPE html>\n<html>\n<head>\n"
        '  <link rel="stylesheet" href="{{ css_url }}/main.css">\n'
        "</head>\n<body>\n{% block content %}{% endblock %}\n</body>\n</html>\n",
    )
    write(
        src / "html" / "pages" / "index.njk",
        '{% extends "layouts/base.njk" %}\n'
        "{% block content %}\n"
        "<h1>Home</h1>\n"
        '{% include "logo.svg" %}\n'
        "{% endblock %}\n",
    )
    write(src / "html" / "pages" / "about.njk", "<p>About   us</p>\n")

    write(src / "images" / "logo.svg", SAMPLE_SVG)
    write(src / "images" / "photos" / "hero.jpg", make_jpeg())
    write(src / "images" / "icons" / "dot.png", make_png())

    write(src / "fonts" / "inter" / "Inter.woff2", bytes(range(256)) * 4)
    write(src / "fonts" / "LICENSE.txt", "OFL\n")

    return tmp_path


@pytest.fixture
def site_config(site: Path) -> Config:
    return Config(
        project_root=site,
        server=ServerConfig(port=0),
        watch=WatchConfig(debounce_ms=50, settle_seconds=0.0),
    )

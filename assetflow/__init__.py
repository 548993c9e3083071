"""assetflow -- static site asset pipeline.

Compiles Sass, minifies JavaScript, renders Jinja2 pages, optimises images
and copies fonts from ``src/`` into ``dist/``, with a live-reloading dev
server and per-category file watching.

Quick usage::

    from assetflow import AssetPipeline, Config

    pipeline = AssetPipeline(Config(project_root=Path("./site")))
    ok = await pipeline.build()
"""

from assetflow.config import AssetCategory, Config
from assetflow.exceptions import AssetflowError, CleanError, StepError
from assetflow.pipeline import AssetPipeline

__version__ = "0.1.0"

__all__ = [
    "AssetCategory",
    "AssetPipeline",
    "AssetflowError",
    "CleanError",
    "Config",
    "StepError",
    "__version__",
]

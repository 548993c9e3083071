"""assetflow steps -- the clean step and the five per-category transforms.

Quick usage::

    from assetflow.config import Config
    from assetflow.steps import create_steps

    steps = create_steps(Config())
    results = await asyncio.gather(*(step.run() for step in steps.values()))
"""

from assetflow.config import AssetCategory, Config
from assetflow.steps.base import StepResult, TransformResult, TransformStep
from assetflow.steps.clean import clean_destination, remove_tree
from assetflow.steps.fonts import FontStep
from assetflow.steps.images import ImageStep
from assetflow.steps.scripts import ScriptStep
from assetflow.steps.styles import StylesheetStep
from assetflow.steps.templates import TemplateStep

STEP_CLASSES: dict[AssetCategory, type[TransformStep]] = {
    AssetCategory.STYLES: StylesheetStep,
    AssetCategory.SCRIPTS: ScriptStep,
    AssetCategory.TEMPLATES: TemplateStep,
    AssetCategory.IMAGES: ImageStep,
    AssetCategory.FONTS: FontStep,
}


def create_steps(config: Config) -> dict[AssetCategory, TransformStep]:
    """Instantiate one step per asset category, in category order."""
    return {category: cls(config) for category, cls in STEP_CLASSES.items()}


__all__ = [
    "FontStep",
    "ImageStep",
    "STEP_CLASSES",
    "ScriptStep",
    "StepResult",
    "StylesheetStep",
    "TemplateStep",
    "TransformResult",
    "TransformStep",
    "clean_destination",
    "create_steps",
    "remove_tree",
]

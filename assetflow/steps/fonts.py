"""Font transform: mirror the fonts source into the fonts destination."""

from __future__ import annotations

from assetflow.config import AssetCategory
from assetflow.files import OutputFile, SourceFile, glob
from assetflow.steps.base import TransformResult, TransformStep


class FontStep(TransformStep):
    """Copy every font file byte for byte, keeping directory structure."""

    category = AssetCategory.FONTS
    pattern = glob()

    def transform(self, sources: list[SourceFile]) -> TransformResult:
        return TransformResult(
            outputs=[OutputFile(source.relative, source.data) for source in sources]
        )

"""Script transform: minify top-level JavaScript files with source maps.

Parsing and minification are delegated to calmjs.parse (ES5 grammar).  A
file the parser rejects is reported and skipped; its siblings still build.
"""

from __future__ import annotations

import io
import json
from pathlib import PurePosixPath

from calmjs.parse import es5
from calmjs.parse.exceptions import ECMASyntaxError
from calmjs.parse.sourcemap import encode_sourcemap, write
from calmjs.parse.unparsers.es5 import minify_printer

from assetflow.config import AssetCategory
from assetflow.files import OutputFile, SourceFile, glob
from assetflow.steps.base import TransformResult, TransformStep


class ScriptStep(TransformStep):
    """Minify scripts and emit ``<name>.js.map`` next to each output."""

    category = AssetCategory.SCRIPTS
    pattern = glob("js", recursive=False)

    def minify(self, source: SourceFile) -> tuple[str, dict | None]:
        """Return ``(minified_code, source_map)``.

        Raises ``ECMASyntaxError`` when the parser rejects the input.
        """
        settings = self.config.scripts
        text = source.text()
        program = es5(text)
        printer = minify_printer(
            obfuscate=settings.obfuscate,
            obfuscate_globals=False,
        )

        stream = io.StringIO()
        mappings, sources, names = write(printer(program), stream)
        code = stream.getvalue()
        if not settings.source_maps:
            return code, None

        source_map = encode_sourcemap(f"{source.name}", mappings, sources, names)
        source_map["sources"] = [source.name]
        source_map["sourcesContent"] = [text]
        return code, source_map

    def transform(self, sources: list[SourceFile]) -> TransformResult:
        result = TransformResult()
        for source in sources:
            try:
                code, source_map = self.minify(source)
            except ECMASyntaxError as exc:
                result.errors.append(f"{source.relative}: {str(exc).strip()}")
                continue
            except UnicodeDecodeError as exc:
                result.errors.append(f"{source.relative}: not valid UTF-8 ({exc.reason})")
                continue
            except RecursionError:
                result.errors.append(f"{source.relative}: nesting too deep to minify")
                continue
            except Exception as exc:
                result.errors.append(f"{source.relative}: {exc.__class__.__name__}: {exc}")
                continue

            name = PurePosixPath(source.name).name
            if source_map is not None:
                code = f"{code.rstrip()}\n//# sourceMappingURL={name}.map\n"
                result.outputs.append(
                    OutputFile.from_text(f"{name}.map", json.dumps(source_map, separators=(",", ":")))
                )
            result.outputs.append(OutputFile.from_text(name, code))
        return result

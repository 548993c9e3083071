"""Vendor prefixing for compiled CSS.

Parses the stylesheet with tinycss2 and inserts vendor-prefixed copies of
declarations that still need them in current browsers, ahead of the
unprefixed declaration.  Declarations whose prefixed form is already present
in the same block are left alone.
"""

from __future__ import annotations

import tinycss2
import tinycss2.ast

# property -> prefixes to add
PROPERTY_PREFIXES: dict[str, tuple[str, ...]] = {
    "appearance": ("-webkit-", "-moz-"),
    "backdrop-filter": ("-webkit-",),
    "box-decoration-break": ("-webkit-",),
    "hyphens": ("-webkit-",),
    "mask": ("-webkit-",),
    "mask-image": ("-webkit-",),
    "mask-position": ("-webkit-",),
    "mask-repeat": ("-webkit-",),
    "mask-size": ("-webkit-",),
    "tab-size": ("-moz-",),
    "text-size-adjust": ("-webkit-", "-moz-"),
    "user-select": ("-webkit-",),
}

# property -> values that require a prefixed property
CONDITIONAL_PROPERTIES: dict[str, dict[str, tuple[str, ...]]] = {
    "background-clip": {"text": ("-webkit-",)},
}

# property -> value -> prefixed values to add
VALUE_PREFIXES: dict[str, dict[str, tuple[str, ...]]] = {
    "position": {"sticky": ("-webkit-sticky",)},
}

# At-rules whose block holds declarations rather than rules.
_DECLARATION_AT_RULES = frozenset(
    {"font-face", "page", "property", "counter-style", "font-palette-values", "viewport"}
)


def prefix_css(css: str) -> str:
    """Return *css* with vendor-prefixed declarations added."""
    rules = tinycss2.parse_stylesheet(css, skip_comments=False, skip_whitespace=True)
    return _serialize_rules(rules)


def _serialize_rules(rules: list) -> str:
    parts: list[str] = []
    for rule in rules:
        if rule.type == "qualified-rule":
            prelude = tinycss2.serialize(rule.prelude).strip()
            parts.append(f"{prelude}{{{_serialize_block(rule.content)}}}")
        elif rule.type == "at-rule":
            parts.append(_serialize_at_rule(rule))
        elif rule.type == "comment":
            parts.append(rule.serialize())
    return "\n".join(parts)


def _serialize_at_rule(rule: tinycss2.ast.AtRule) -> str:
    prelude = tinycss2.serialize(rule.prelude).strip()
    head = f"@{rule.at_keyword}" + (f" {prelude}" if prelude else "")
    if rule.content is None:
        return f"{head};"
    if rule.lower_at_keyword in _DECLARATION_AT_RULES:
        return f"{head}{{{_serialize_block(rule.content)}}}"
    inner = tinycss2.parse_rule_list(rule.content, skip_comments=False, skip_whitespace=True)
    return f"{head}{{{_serialize_rules(inner)}}}"


def _serialize_block(content: list) -> str:
    """Serialise a declaration block, adding prefixes.  Nested rules are kept."""
    items = tinycss2.parse_blocks_contents(content, skip_comments=True, skip_whitespace=True)
    present = {item.lower_name for item in items if item.type == "declaration"}

    declarations: list[str] = []
    nested: list[str] = []
    for item in items:
        if item.type == "declaration":
            declarations.extend(_expand(item, present))
        elif item.type == "qualified-rule":
            nested.append(_serialize_rules([item]))
        elif item.type == "at-rule":
            nested.append(_serialize_at_rule(item))
    return ";".join(declarations) + "".join(nested)


def _format(name: str, value: str, important: bool) -> str:
    return f"{name}:{value}{' !important' if important else ''}"


def _expand(declaration: tinycss2.ast.Declaration, present: set[str]) -> list[str]:
    name = declaration.lower_name
    value = tinycss2.serialize(declaration.value).strip()
    keyword = value.lower()
    important = declaration.important

    prefixes = PROPERTY_PREFIXES.get(name, ())
    if not prefixes:
        prefixes = CONDITIONAL_PROPERTIES.get(name, {}).get(keyword, ())

    expanded = [
        _format(f"{prefix}{name}", value, important)
        for prefix in prefixes
        if f"{prefix}{name}" not in present
    ]
    expanded.extend(
        _format(name, prefixed_value, important)
        for prefixed_value in VALUE_PREFIXES.get(name, {}).get(keyword, ())
    )
    expanded.append(_format(declaration.name, value, important))
    return expanded

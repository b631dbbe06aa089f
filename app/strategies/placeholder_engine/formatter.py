"""Message template rendering against an augmented article.

Tokens look like `{{title}}`, `{{custom::short}}` or `{{external::image}}`.
A token may list fallbacks separated by `||`; the first non-empty value
wins, and `text::...` supplies a literal:

    {{custom::summary||description||text::No summary}}
"""

import re
from collections.abc import Mapping

TOKEN_PATTERN = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")
FALLBACK_SEPARATOR = "||"
LITERAL_PREFIX = "text::"


def resolve_token(expression: str, article: Mapping[str, str | None]) -> str:
    """Resolve one token expression, honoring fallbacks."""
    for candidate in expression.split(FALLBACK_SEPARATOR):
        candidate = candidate.strip()
        if candidate.startswith(LITERAL_PREFIX):
            return candidate[len(LITERAL_PREFIX):]
        value = article.get(candidate)
        if value:
            return value
    return ""


def render_placeholders(template: str, article: Mapping[str, str | None]) -> str:
    """Substitute every token in `template`; unknown keys render empty."""
    return TOKEN_PATTERN.sub(lambda m: resolve_token(m.group(1), article), template)


def referenced_keys(template: str) -> set[str]:
    """Article keys a template refers to, literals excluded."""
    keys: set[str] = set()
    for match in TOKEN_PATTERN.finditer(template):
        for candidate in match.group(1).split(FALLBACK_SEPARATOR):
            candidate = candidate.strip()
            if candidate and not candidate.startswith(LITERAL_PREFIX):
                keys.add(candidate)
    return keys

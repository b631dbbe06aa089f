"""Regex search-and-replace step.

Patterns are authored in the connection editor with JavaScript regex
conventions, so flag letters, named groups and replacement templates are
translated to their Python equivalents before use.
"""

import logging
import re
from collections.abc import Callable
from functools import lru_cache
from typing import Any

from app.core.exceptions import InvalidPatternError
from app.interfaces.step import BaseStepTransformer

logger = logging.getLogger(__name__)

# JavaScript flag letters and their Python counterparts.
# "g" is implied (every replacement is global), "u" is the default for str patterns.
_FLAG_MAP: dict[str, re.RegexFlag] = {
    "g": re.RegexFlag(0),
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "u": re.RegexFlag(0),
}

_JS_NAMED_GROUP = re.compile(r"(?<!\\)\(\?<(?![=!])([A-Za-z_][A-Za-z0-9_]*)>")
_JS_NAMED_BACKREF = re.compile(r"\\k<([A-Za-z_][A-Za-z0-9_]*)>")
_JS_ANY_CHAR_CLASS = "[^]"

_DIGITS = "0123456789"

# Replacement template tokens
_Token = tuple[str, Any]


def parse_flags(flags: str) -> re.RegexFlag:
    """Translate a JavaScript flag string into Python regex flags.

    Raises:
        InvalidPatternError: For unknown or repeated flags.
    """
    result = re.RegexFlag(0)
    seen: set[str] = set()
    for letter in flags:
        if letter not in _FLAG_MAP:
            raise InvalidPatternError("", flags, f"unsupported flag '{letter}'")
        if letter in seen:
            raise InvalidPatternError("", flags, f"flag '{letter}' given more than once")
        seen.add(letter)
        result |= _FLAG_MAP[letter]
    return result


def _anchor_end(pattern: str) -> str:
    """Replace each bare `$` with `\\Z`.

    Python's `$` also matches before a trailing newline; without the `m`
    flag a JavaScript `$` matches only at the very end of the input.
    """
    out: list[str] = []
    in_class = False
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\":
            out.append(pattern[i : i + 2])
            i += 2
            continue
        if in_class:
            if char == "]":
                in_class = False
        elif char == "[":
            in_class = True
            # "[]" and "[^]" close immediately in JavaScript
            end = i + 2 if pattern.startswith("^", i + 1) else i + 1
            if pattern.startswith("]", end):
                out.append(pattern[i : end + 1])
                in_class = False
                i = end + 1
                continue
        elif char == "$":
            char = r"\Z"
        out.append(char)
        i += 1
    return "".join(out)


def translate_pattern(pattern: str, multiline: bool = False) -> str:
    """Rewrite JavaScript-only regex syntax into Python syntax.

    `\\d`, `\\w` and `\\b` keep Python's Unicode meaning; in JavaScript they
    are ASCII-only, so they also match digits and letters from other scripts.
    """
    translated = pattern if multiline else _anchor_end(pattern)
    translated = _JS_NAMED_GROUP.sub(r"(?P<\1>", translated)
    translated = _JS_NAMED_BACKREF.sub(r"(?P=\1)", translated)
    return translated.replace(_JS_ANY_CHAR_CLASS, r"[\s\S]")


@lru_cache(maxsize=512)
def compile_js_regex(pattern: str, flags: str) -> re.Pattern[str]:
    """Compile a JavaScript-style pattern.

    Args:
        pattern: The stored `regexSearch` value.
        flags: The stored `regexSearchFlags` value.

    Returns:
        The compiled pattern.

    Raises:
        InvalidPatternError: If the flags are unsupported or the pattern does not compile.
    """
    try:
        py_flags = parse_flags(flags)
    except InvalidPatternError as e:
        raise InvalidPatternError(pattern, flags, e.reason) from e

    try:
        return re.compile(translate_pattern(pattern, multiline=bool(py_flags & re.MULTILINE)), py_flags)
    except (re.error, OverflowError, RecursionError) as e:
        raise InvalidPatternError(pattern, flags, str(e)) from e


def _parse_replacement(template: str, group_count: int, has_named_groups: bool) -> list[_Token]:
    """Split a JavaScript replacement template into literal and group tokens."""
    tokens: list[_Token] = []
    literal: list[str] = []

    def flush() -> None:
        if literal:
            tokens.append(("literal", "".join(literal)))
            literal.clear()

    i = 0
    length = len(template)
    while i < length:
        char = template[i]
        if char != "$" or i + 1 >= length:
            literal.append(char)
            i += 1
            continue

        nxt = template[i + 1]
        if nxt == "$":
            literal.append("$")
            i += 2
        elif nxt == "&":
            flush()
            tokens.append(("match", None))
            i += 2
        elif nxt == "`":
            flush()
            tokens.append(("before", None))
            i += 2
        elif nxt == "'":
            flush()
            tokens.append(("after", None))
            i += 2
        elif nxt in _DIGITS:
            two = template[i + 1 : i + 3]
            if len(two) == 2 and two[1] in _DIGITS and 1 <= int(two) <= group_count:
                flush()
                tokens.append(("group", int(two)))
                i += 3
            elif 1 <= int(nxt) <= group_count:
                flush()
                tokens.append(("group", int(nxt)))
                i += 2
            else:
                literal.append("$")
                i += 1
        elif nxt == "<" and has_named_groups and template.find(">", i + 2) != -1:
            close = template.find(">", i + 2)
            flush()
            tokens.append(("named", template[i + 2 : close]))
            i = close + 1
        else:
            literal.append("$")
            i += 1

    flush()
    return tokens


@lru_cache(maxsize=512)
def build_replacer(template: str, compiled: re.Pattern[str]) -> Callable[[re.Match[str]], str]:
    """Build a `re.sub` callback that expands a JavaScript replacement template."""
    tokens = _parse_replacement(template, compiled.groups, bool(compiled.groupindex))
    names = compiled.groupindex

    def replace(match: re.Match[str]) -> str:
        out: list[str] = []
        for kind, value in tokens:
            match kind:
                case "literal":
                    out.append(value)
                case "match":
                    out.append(match.group(0))
                case "before":
                    out.append(match.string[: match.start()])
                case "after":
                    out.append(match.string[match.end() :])
                case "group":
                    out.append(match.group(value) or "")
                case "named":
                    out.append((match.group(value) or "") if value in names else "")
        return "".join(out)

    return replace


class RegexStepTransformer(BaseStepTransformer):
    """Replaces every non-overlapping match, leftmost first."""

    step_type = "REGEX"

    def apply(self, value: str, step: Any) -> str:
        compiled = compile_js_regex(step.regex_search, step.regex_search_flags)
        return compiled.sub(build_replacer(step.replacement_string or "", compiled), value)

    def validate(self, step: Any) -> None:
        if not step.regex_search:
            raise InvalidPatternError("", step.regex_search_flags, "pattern must not be empty")
        compile_js_regex(step.regex_search, step.regex_search_flags)

"""Placeholder detection and substitution for prompt templates.

A placeholder is ``{name}`` where ``name`` is any run of characters other than
``}``. There is no escaping and no nesting: the first closing brace ends the
name, so ``{a{b}}`` yields the name ``a{b``.
"""
from __future__ import annotations
import re
from typing import Dict, Iterable, List, Mapping

PLACEHOLDER_RE = re.compile(r"\{([^}]+)\}")


def detect_placeholders(text: str) -> List[str]:
    """Names in order of first appearance, de-duplicated."""
    names: List[str] = []
    if not text:
        return names
    for match in PLACEHOLDER_RE.finditer(text):
        name = match.group(1)
        if name not in names:
            names.append(name)
    return names


def detect_all(*texts: str) -> List[str]:
    names: List[str] = []
    for text in texts:
        for name in detect_placeholders(text):
            if name not in names:
                names.append(name)
    return names


def resolve(text: str, variables: Mapping[str, str]) -> str:
    if not text:
        return text

    def _sub(match: "re.Match[str]") -> str:
        return variables.get(match.group(1)) or ""

    # Single pass: substituted values are never re-scanned
    return PLACEHOLDER_RE.sub(_sub, text)


def build_variables(templates: Iterable[str], given: Mapping[str, str]) -> Dict[str, str]:
    """Mapping with exactly the names the templates use; unset names map to ''."""
    return {name: given.get(name) or "" for name in detect_all(*templates)}

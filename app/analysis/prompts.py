"""
Prompt templating for analysis requests.
"""

from __future__ import annotations

from typing import Any


class _PromptValues(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def render_prompt(template: str, **values: Any) -> str:
    """
    Fill ``{name}`` placeholders, leaving unknown ones untouched.
    """

    return template.format_map(_PromptValues(values))

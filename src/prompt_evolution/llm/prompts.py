from __future__ import annotations

import logging
import re
from typing import Any, Mapping

logger = logging.getLogger(__name__)

MISSING_VALUE = "[Not provided]"
_PLACEHOLDER = re.compile(r"\{\{[A-Z0-9_]+\}\}")

SYSTEM_PROMPT = (
    "You are a document author. Follow the instructions in the user message exactly "
    "and respond with the finished document in markdown, without commentary."
)


def placeholder_name(field: str) -> str:
    """``problemStatement`` and ``problem_statement`` both become ``PROBLEM_STATEMENT``."""
    snake = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", field)
    return re.sub(r"[^A-Za-z0-9]+", "_", snake).strip("_").upper()


def _format_value(value: Any) -> str:
    if value is None or value == "" or value == []:
        return MISSING_VALUE
    if isinstance(value, (list, tuple)):
        return "\n".join(f"- {item}" for item in value)
    return str(value)


def render_template(template: str, fields: Mapping[str, Any]) -> str:
    """Substitute ``{{FIELD_NAME}}`` placeholders; strip any left unfilled."""
    result = template
    for key, value in fields.items():
        result = result.replace("{{" + placeholder_name(key) + "}}", _format_value(value))

    remaining = _PLACEHOLDER.findall(result)
    if remaining:
        logger.warning("Unsubstituted placeholders removed: %s", sorted(set(remaining)))
        result = _PLACEHOLDER.sub("", result)
    return result

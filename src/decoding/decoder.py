import json
import re
from typing import Any

from loguru import logger

# name(payload);  -- any bare identifier, optional trailing semicolon
CALLBACK_PATTERN = re.compile(
    r"^\s*[A-Za-z_$][\w$.]*\s*\(([\s\S]*)\)\s*;?\s*$"
)


class DecodeError(Exception):
    """Raised when a body is neither JSON nor a callback-wrapped JSON payload."""

    pass


def decode(text: str) -> Any:
    """Parses a response body that may be bare JSON or JSONP.

    The callback name is not checked; upstream has used several.
    """
    if text is None or not text.strip():
        raise DecodeError("Empty response body")

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    match = CALLBACK_PATTERN.match(text)
    if not match:
        raise DecodeError(
            f"Body is neither JSON nor callback-wrapped JSON (starts with {text[:40]!r})"
        )

    try:
        value = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        raise DecodeError(f"Callback payload is not valid JSON: {e}") from e
    logger.debug("Decoded callback-wrapped payload.")
    return value


def wrap(callback: str, payload: str) -> str:
    """Builds the ``callback(payload);`` form served by the upstream API."""
    return f"{callback}({payload});"

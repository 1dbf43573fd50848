"""
Tolerant parsing of structured model output.

Models sometimes wrap JSON in prose or markdown fences. Extraction is a chain:
1. parse the whole (fence-stripped) reply,
2. parse the first balanced {...} block,
3. give up and let the caller use its default.
"""

import json
import logging
from typing import Any, Dict, Iterator, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`").strip()
        if cleaned.lower().startswith("json"):
            cleaned = cleaned[4:]
    return cleaned.strip()


def first_balanced_object(text: str) -> Optional[str]:
    """Return the first complete {...} span, ignoring braces inside JSON strings."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for pos in range(start, len(text)):
            char = text[pos]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:pos + 1]
        # Unterminated object; try the next opening brace
        start = text.find("{", start + 1)
    return None


def _candidates(text: str) -> Iterator[str]:
    cleaned = strip_code_fences(text)
    yield cleaned
    block = first_balanced_object(cleaned)
    if block is not None and block != cleaned:
        yield block


def _load_object(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def extract_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    if not text:
        return None
    for candidate in _candidates(text):
        data = _load_object(candidate)
        if data is not None:
            return data
    return None


def parse_model_output(text: Optional[str], model: Type[T], default: T) -> T:
    """
    Coerce a model reply into `model`, falling back to a copy of `default`.
    Never raises: malformed output is not a user-visible error.
    """
    data = extract_json_object(text)
    if data is None:
        logger.warning(f"No JSON object found in model reply for {model.__name__}; using default")
        return default.model_copy(deep=True)

    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Model reply did not match {model.__name__} ({e.error_count()} errors); using default")
        logger.debug(f"Raw reply: {text}")
        return default.model_copy(deep=True)

"""
JSON extraction utilities for parsing LLM responses.

Models frequently wrap their JSON answer in a markdown code block or add a
sentence around it; these helpers recover the first JSON object either way.
"""
import json
import logging
import re
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_CODE_BLOCK_PATTERN = re.compile(r'```(?:json)?\s*(.*?)```', re.DOTALL | re.IGNORECASE)
_OBJECT_PATTERN = re.compile(r'\{.*\}', re.DOTALL)


def extract_text_content(content: Any) -> str:
    """
    Normalize LLM message content to a plain text string.

    Some providers return content as a list of `{"type": "text", "text": ...}`
    blocks instead of a plain string.
    """
    if isinstance(content, list):
        return "".join(
            part.get("text", "") if isinstance(part, dict) else str(part)
            for part in content
        )
    if content is None:
        return ""
    return str(content)


def extract_json_from_text(text: str) -> Optional[Dict[str, Any]]:
    """
    Extract and parse the first JSON object from text.

    Handles, in order:
    - JSON within markdown code blocks (```json ... ``` or ``` ... ```)
    - the outermost `{ ... }` span of mixed text
    - the entire text

    Returns:
        Parsed JSON dictionary or None if no valid JSON found
    """
    if not text or not isinstance(text, str):
        return None

    for match in _CODE_BLOCK_PATTERN.findall(text):
        parsed = _try_parse_json(match)
        if parsed is not None:
            return parsed

    match = _OBJECT_PATTERN.search(text)
    if match:
        parsed = _try_parse_json(match.group(0))
        if parsed is not None:
            return parsed

    parsed = _try_parse_json(text)
    if parsed is None:
        logger.warning("No valid JSON found in text: %s", text[:100] + "..." if len(text) > 100 else text)
    return parsed


def _try_parse_json(json_str: str) -> Optional[Dict[str, Any]]:
    if not json_str or not json_str.strip():
        return None
    try:
        parsed = json.loads(json_str.strip())
    except ValueError as e:
        logger.debug("JSON parsing failed: %s", str(e))
        return None
    return parsed if isinstance(parsed, dict) else None

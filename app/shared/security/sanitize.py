"""
Input sanitization against query-operator injection.

A key is prohibited when it starts with ``$`` (query operators such as
``$where`` or ``$gt``) or contains ``.`` (nested-field paths). Dots can
be allowed explicitly. Prohibited keys are removed, recursively, from
the parsed JSON body and from the query string before any router runs.
"""

import json
import logging
import re
from typing import Any
from urllib.parse import unquote_plus

from app.shared.pipeline.stage import RequestContext, Stage, StageOutcome

logger = logging.getLogger(__name__)

OPERATOR_PREFIX = "$"
_BRACKET_SEGMENT = re.compile(r"\[([^\]]*)\]")


def is_prohibited_key(key: str, allow_dots: bool = False) -> bool:
    """Return True when ``key`` looks like a query operator or field path."""
    if key.startswith(OPERATOR_PREFIX):
        return True
    return not allow_dots and "." in key


def strip_operator_keys(
    payload: Any, allow_dots: bool = False, _path: str = ""
) -> list[str]:
    """Remove prohibited keys from ``payload`` in place.

    Args:
        payload: A parsed JSON value; dicts and lists are walked recursively.
        allow_dots: Keep keys containing dots.

    Returns:
        The dotted paths of every removed key, in discovery order.
    """
    removed: list[str] = []
    if isinstance(payload, dict):
        for key in list(payload):
            key_path = f"{_path}.{key}" if _path else str(key)
            if is_prohibited_key(str(key), allow_dots):
                del payload[key]
                removed.append(key_path)
            else:
                removed.extend(strip_operator_keys(payload[key], allow_dots, key_path))
    elif isinstance(payload, list):
        for index, item in enumerate(payload):
            item_path = f"{_path}[{index}]"
            removed.extend(strip_operator_keys(item, allow_dots, item_path))
    return removed


def _query_key_segments(key: str) -> list[str]:
    head = key.split("[", 1)[0]
    return [head, *_BRACKET_SEGMENT.findall(key)]


def sanitize_query_string(
    query_string: str, allow_dots: bool = False
) -> tuple[str, list[str]]:
    """Drop query parameters whose key, or any bracketed segment, is prohibited.

    Args:
        query_string: The raw (percent-encoded) query string.
        allow_dots: Keep keys containing dots.

    Returns:
        The rebuilt query string and the removed keys.
    """
    if not query_string:
        return query_string, []
    kept: list[str] = []
    removed: list[str] = []
    # Surviving parameters keep their original bytes
    for segment in query_string.split("&"):
        key = unquote_plus(segment.split("=", 1)[0])
        if any(is_prohibited_key(s, allow_dots) for s in _query_key_segments(key)):
            removed.append(key)
        else:
            kept.append(segment)
    if not removed:
        return query_string, []
    return "&".join(kept), removed


class SanitizeStage(Stage):
    """Strips prohibited keys from the parsed body and the query string."""

    name = "sanitize"

    def __init__(self, allow_dots: bool = False) -> None:
        self._allow_dots = allow_dots

    async def process(self, ctx: RequestContext) -> StageOutcome:
        raw_query = ctx.scope.get("query_string", b"").decode("latin-1")
        query, removed_query = sanitize_query_string(raw_query, self._allow_dots)
        if removed_query:
            ctx.scope["query_string"] = query.encode("latin-1")
            logger.warning(
                "Removed query keys %s from %s %s", removed_query, ctx.method, ctx.path
            )

        if isinstance(ctx.body, (dict, list)):
            removed_body = strip_operator_keys(ctx.body, self._allow_dots)
            if removed_body:
                ctx.replay_body(json.dumps(ctx.body).encode("utf-8"))
                logger.warning(
                    "Removed body keys %s from %s %s",
                    removed_body,
                    ctx.method,
                    ctx.path,
                )
        return StageOutcome.proceed()

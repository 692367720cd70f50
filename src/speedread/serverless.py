"""
Short-lived request handler for function-as-a-service hosts.

The host hands over an event dict and expects a response dict back::

    {"httpMethod": "POST", "body": "{\\"url\\": \\"https://...\\"}", "isBase64Encoded": false}
    -> {"statusCode": 200, "headers": {...}, "body": "{\\"title\\": ..., \\"text\\": ...}"}

Only failures are logged here; successful extractions stay quiet.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Callable, Mapping

from .api import handle_readability_request
from .config import ServerConfig
from .extraction import ArticleExtractor
from .web import build_extractor

__all__ = ["create_handler", "event_body", "event_method"]

logger = logging.getLogger(__name__)

Handler = Callable[[Mapping[str, Any], Any], dict[str, Any]]


def event_method(event: Mapping[str, Any]) -> str:
    method = event.get("httpMethod") or event.get("method")
    if not method:
        context = event.get("requestContext")
        if isinstance(context, Mapping):
            http = context.get("http")
            if isinstance(http, Mapping):
                method = http.get("method")
    return str(method or "GET").upper()


def event_body(event: Mapping[str, Any]) -> object:
    body = event.get("body")
    if isinstance(body, str) and event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError):
            return body
    return body


def create_handler(
    extractor: ArticleExtractor | None = None,
    config: ServerConfig | None = None,
) -> Handler:
    """Build the handler once at cold start; the extractor lives in the closure."""
    if extractor is None:
        extractor = build_extractor(config or ServerConfig.from_env())

    def handler(event: Mapping[str, Any], context: Any = None) -> dict[str, Any]:
        response = handle_readability_request(
            event_method(event),
            event_body(event),
            extractor,
            logger=logger,
            log_success=False,
        )
        headers = dict(response.headers)
        if response.payload is not None:
            headers["Content-Type"] = "application/json; charset=utf-8"
        return {
            "statusCode": response.status_code,
            "headers": headers,
            "body": response.body_bytes().decode("utf-8"),
        }

    return handler

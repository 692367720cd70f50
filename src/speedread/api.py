from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Mapping

from .errors import FETCH_FAILED_MESSAGE, URL_REQUIRED_MESSAGE, ExtractionError, InvalidInput
from .extraction import ArticleExtractor

__all__ = [
    "ALLOWED_METHODS",
    "CORS_HEADERS",
    "INVALID_BODY_MESSAGE",
    "METHOD_NOT_ALLOWED_MESSAGE",
    "ApiResponse",
    "handle_readability_request",
    "parse_json_body",
]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}
ALLOWED_METHODS = ("POST", "OPTIONS")
METHOD_NOT_ALLOWED_MESSAGE = "Method not allowed."
INVALID_BODY_MESSAGE = "Invalid JSON body."


@dataclass(frozen=True)
class ApiResponse:
    status_code: int
    payload: dict[str, object] | None = None
    headers: dict[str, str] = field(default_factory=lambda: dict(CORS_HEADERS))

    def body_bytes(self) -> bytes:
        if self.payload is None:
            return b""
        return json.dumps(self.payload, ensure_ascii=False).encode("utf-8")


def _message(status_code: int, message: str) -> ApiResponse:
    return ApiResponse(status_code=status_code, payload={"message": message})


def _read_stream(body: object) -> bytes:
    read = getattr(body, "read", None)
    if callable(read):
        data = read()
    else:
        data = b"".join(bytes(part) for part in body)  # type: ignore[union-attr]
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def parse_json_body(body: object) -> dict[str, object]:
    """
    Normalize a request body to a JSON object.

    Accepts an already-parsed mapping, a raw ``str``/``bytes`` document or a
    readable byte stream. Empty bodies become ``{}``; anything that is not a
    JSON object raises :class:`InvalidInput`.
    """
    if body is None:
        return {}
    if isinstance(body, Mapping):
        return dict(body)
    if not isinstance(body, (str, bytes, bytearray)):
        try:
            body = _read_stream(body)
        except (TypeError, ValueError, OSError) as exc:
            raise InvalidInput(INVALID_BODY_MESSAGE) from exc
    if isinstance(body, (bytes, bytearray)):
        try:
            body = bytes(body).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidInput(INVALID_BODY_MESSAGE) from exc
    if not body.strip():
        return {}
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError as exc:
        raise InvalidInput(INVALID_BODY_MESSAGE) from exc
    if not isinstance(parsed, dict):
        raise InvalidInput(INVALID_BODY_MESSAGE)
    return parsed


def handle_readability_request(
    method: str,
    body: object,
    extractor: ArticleExtractor,
    *,
    logger: logging.Logger | None = None,
    log_success: bool = True,
) -> ApiResponse:
    """Serve one ``/api/readability`` call independent of the HTTP stack."""
    verb = (method or "").upper()
    if verb == "OPTIONS":
        return ApiResponse(status_code=204)
    if verb != "POST":
        return _message(405, METHOD_NOT_ALLOWED_MESSAGE)

    try:
        payload = parse_json_body(body)
    except InvalidInput as exc:
        return _message(exc.status_code, exc.message)

    url = payload.get("url")
    if not url or not isinstance(url, str):
        return _message(400, URL_REQUIRED_MESSAGE)

    try:
        result = extractor.extract(url)
    except ExtractionError as exc:
        if logger is not None:
            logger.warning("Extraction failed for %s (%s): %s", url, exc.status_code, exc.message)
        return _message(exc.status_code, exc.message)
    except Exception as exc:
        if logger is not None:
            logger.exception("Unexpected error while extracting %s", url)
        return _message(500, str(exc) or FETCH_FAILED_MESSAGE)

    if logger is not None and log_success:
        logger.info("Extracted %d characters from %s", len(result.text), url)
    return ApiResponse(status_code=200, payload=result.to_dict())

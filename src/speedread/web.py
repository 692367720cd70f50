from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from .api import ApiResponse, handle_readability_request
from .capability import load_readability
from .config import ServerConfig
from .extraction import ArticleExtractor
from .fetching import RequestsFetcher

logger = logging.getLogger(__name__)

_ROUTED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


def build_extractor(config: ServerConfig) -> ArticleExtractor:
    fetcher = RequestsFetcher(user_agent=config.user_agent, timeout=config.fetch_timeout)
    return ArticleExtractor(load_readability(), fetcher)


def _to_http_response(response: ApiResponse) -> Response:
    if response.payload is None:
        return Response(status_code=response.status_code, headers=response.headers)
    return JSONResponse(
        response.payload,
        status_code=response.status_code,
        headers=response.headers,
    )


def create_app(
    config: ServerConfig | None = None,
    *,
    extractor: ArticleExtractor | None = None,
) -> FastAPI:
    config = config or ServerConfig()
    app = FastAPI(title="speedread")
    app.state.config = config
    app.state.extractor = extractor or build_extractor(config)

    @app.api_route("/api/readability", methods=_ROUTED_METHODS)
    async def api_readability(request: Request) -> Response:
        body = await request.body() if request.method.upper() == "POST" else None
        loop = asyncio.get_running_loop()

        def work() -> ApiResponse:
            return handle_readability_request(
                request.method,
                body,
                app.state.extractor,
                logger=logger,
            )

        response = await loop.run_in_executor(None, work)
        return _to_http_response(response)

    @app.get("/api/health")
    def api_health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    return app

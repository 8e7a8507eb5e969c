"""HTTP boundary: a single stateless chat endpoint.

The endpoint keeps no conversation memory between requests. Clients that want
multi-turn answers send the prior turns of their thread as ``history``.
"""

from __future__ import annotations

import asyncio
from typing import Any, Literal

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import config
from .errors import ConfigurationError, FaqbotError, InvalidQuery
from .models import ConversationTurn
from .query_engine import QueryEngine
from .services import build_query_engine

logger = config.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


class HistoryMessage(BaseModel):
    role: Literal["user", "assistant"]
    text: str


class ChatRequest(BaseModel):
    query: str | None = None
    history: list[HistoryMessage] = Field(default_factory=list)


def error_body(error: str, details: str, kind: str) -> dict[str, str]:
    return {"error": error, "details": details, "type": kind}


def get_query_engine(request: Request) -> QueryEngine:
    """Return the app's QueryEngine, building it on first use.

    Raises:
        ConfigurationError: If the configuration is invalid.
    """
    engine = getattr(request.app.state, "query_engine", None)
    if engine is None:
        engine = build_query_engine()
        request.app.state.query_engine = engine
    return engine


@router.post("/chat")
async def chat(
    payload: ChatRequest,
    engine: QueryEngine = Depends(get_query_engine),  # noqa: B008
) -> dict[str, Any]:
    """Answer one query against the FAQ index."""
    if payload.query is None or not payload.query.strip():
        msg = "Query is required"
        raise InvalidQuery(msg)

    history = [
        ConversationTurn(role=message.role, text=message.text)
        for message in payload.history
    ]
    answer = await engine.answer(payload.query, history)
    logger.info("Successfully processed query")
    return {
        "response": {
            "text": answer.text,
            "sources": [source.to_dict() for source in answer.sources],
        }
    }


@router.get("/health")
async def health(
    engine: QueryEngine = Depends(get_query_engine),  # noqa: B008
) -> dict[str, Any]:
    """Report index statistics."""
    stats = await asyncio.to_thread(engine.vector_index.stats)
    return {"status": "ok", "index": stats}


async def invalid_query_handler(_request: Request, exc: InvalidQuery) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=error_body("Query is required", exc.message, exc.kind),
    )


async def configuration_error_handler(
    _request: Request, exc: ConfigurationError
) -> JSONResponse:
    logger.error("Configuration error: %s", exc.message)
    return JSONResponse(
        status_code=500,
        content=error_body("Configuration Error", exc.message, exc.kind),
    )


async def faqbot_error_handler(_request: Request, exc: FaqbotError) -> JSONResponse:
    logger.error("Error processing request: %s (%s)", exc.message, exc.kind)
    return JSONResponse(
        status_code=500,
        content=error_body("Failed to process query", exc.message, exc.kind),
    )


async def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=error_body(
            "Invalid request body", str(exc.errors()), "invalid_request"
        ),
    )


async def http_error_handler(
    _request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    error = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(error, str(exc.detail), "http_error"),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content=error_body(
            "Failed to process query", "Internal server error", type(exc).__name__
        ),
    )


def create_app(query_engine: QueryEngine | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        query_engine: Engine to serve. If None, one is built from configuration
            on the first request.

    Returns:
        The configured application.
    """
    app = FastAPI(title="faqbot", version="0.1.0")
    app.state.query_engine = query_engine
    app.include_router(router)

    app.add_exception_handler(InvalidQuery, invalid_query_handler)
    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(FaqbotError, faqbot_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
    return app

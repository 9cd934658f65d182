# pyright: reportAny=false
"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from sink.config import SinkConfig
from sink.exceptions import RepositoryNotFoundError
from sink.node import SinkNode

from ._api import router as api_router
from ._ws import router as ws_router


async def _repository_not_found(request: Request, exc: Exception) -> JSONResponse:  # noqa: ARG001
    return JSONResponse(status_code=404, content={"error": str(exc) or "Repo not found"})


async def _http_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: ARG001
    if isinstance(exc, HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})
    return JSONResponse(status_code=500, content={"error": str(exc)})


async def _invalid_request(request: Request, exc: Exception) -> JSONResponse:  # noqa: ARG001
    errors = exc.errors() if isinstance(exc, RequestValidationError) else []
    message = errors[0]["msg"] if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


def create_app(config: SinkConfig | None = None, *, node: SinkNode | None = None) -> FastAPI:
    """Create the HTTP application of a node.

    The node's components run for the lifetime of the application.

    Args:
        config: Node configuration. Ignored when ``node`` is given.
        node: A pre-built node, e.g. one with a fake discovery transport.

    Returns:
        The application.
    """
    sink_node = node or SinkNode(config or SinkConfig())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:  # noqa: ARG001
        async with sink_node.running():
            yield

    app = FastAPI(title="Sink", docs_url=None, redoc_url="/api-docs", lifespan=lifespan)
    app.state.node = sink_node
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RepositoryNotFoundError, _repository_not_found)
    app.add_exception_handler(HTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _invalid_request)
    app.include_router(router=api_router)
    app.include_router(router=ws_router)
    return app

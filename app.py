"""
FastAPI application for the FAQ Chat Widget API.

Routes chat, history, seed and health requests under /api and serves the
widget's static assets for every other path. Serverless-compatible: startup
problems are logged and the app starts in degraded mode instead of crashing.
"""

import os
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

# Only load .env file in development (not on Vercel)
if os.getenv("VERCEL") != "1":
    from dotenv import load_dotenv
    load_dotenv(override=True)

from fastapi import FastAPI, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError

from config import AppConfig, load_config, validate_config_on_startup
from connection import Connections
from models import ChatRequest, ErrorResponse, HistoryResponse, SeedResponse
from orchestrator import ChatOrchestrator, InvalidMessageError
from seed import SeedError, seed_faq_index
from tools import (
    GenerationClient, RetrievalTool, SessionStore,
    build_generation_client, build_session_store
)
from logger import get_logger

logger = get_logger(__name__)

BASE_DIR = Path(__file__).resolve().parent

# Check if running in serverless environment
IS_SERVERLESS = os.getenv("VERCEL") == "1" or os.getenv("AWS_LAMBDA_FUNCTION_NAME") is not None

# OPTIONS is answered by the request middleware for every path
ROUTE_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"]


class CachedStaticFiles(StaticFiles):
    """StaticFiles that marks successful responses as long-lived and immutable."""

    def __init__(self, *args, cache_control: str, **kwargs):
        super().__init__(*args, **kwargs)
        self.cache_control = cache_control

    async def get_response(self, path: str, scope) -> Response:
        response = await super().get_response(path, scope)
        if 200 <= response.status_code < 300:
            response.headers["Cache-Control"] = self.cache_control
            response.headers["X-Content-Type-Options"] = "nosniff"
        return response


def json_error(message: str, status_code: int) -> JSONResponse:
    """Structured client error payload."""
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    config: Optional[AppConfig] = None,
    *,
    connections: Optional[Connections] = None,
    session_store: Optional[SessionStore] = None,
    retrieval_tool: Optional[RetrievalTool] = None,
    generation_client: Optional[GenerationClient] = None
) -> FastAPI:
    """
    Build the application.

    Every collaborator can be injected; anything omitted is built from the
    configuration. Network clients are created lazily on first use.
    """
    config = config or load_config()
    connections = connections or Connections(config)
    if retrieval_tool is None:
        retrieval_tool = RetrievalTool(
            connections,
            collection_name=config.qdrant_collection_name,
            embedding_model=config.embedding_model,
            top_k=config.retrieval_top_k
        )
    if session_store is None:
        session_store = build_session_store(config, connections)
    if generation_client is None:
        generation_client = build_generation_client(config, connections)

    orchestrator = ChatOrchestrator(config, session_store, retrieval_tool, generation_client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Validate configuration and the FAQ index without failing hard."""
        logger.info("=" * 60)
        logger.info(f"Starting FAQ Chat Widget API (Serverless: {IS_SERVERLESS})")
        logger.info("=" * 60)

        startup_status = {"config_valid": False, "index": None}
        try:
            validate_config_on_startup()
            startup_status["config_valid"] = True
        except ValueError as e:
            logger.error(f"Configuration validation failed: {e}")
            logger.warning("[STARTUP] Starting in DEGRADED MODE")

        if startup_status["config_valid"]:
            index_status = await run_in_threadpool(connections.test_qdrant_connection)
            startup_status["index"] = index_status
            if not index_status.get("success"):
                logger.warning("[STARTUP] FAQ index unreachable - answers will have no FAQ context")
            elif not index_status.get("points_count"):
                logger.warning(
                    f"[STARTUP] Collection '{config.qdrant_collection_name}' is empty - call POST /api/seed"
                )

        app.state.startup_status = startup_status
        logger.info(f"[STARTUP] Final status: {startup_status}")

        yield

        logger.info("Shutting down")
        connections.close()

    app = FastAPI(
        title="FAQ Chat Widget API",
        description="Streaming RAG chat backend for an embeddable support widget",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.config = config
    app.state.orchestrator = orchestrator
    app.state.retrieval_tool = retrieval_tool

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=config.cors_allow_methods,
        allow_headers=config.cors_allow_headers,
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle all uncaught exceptions."""
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {exc}",
            path=request.url.path,
            method=request.method
        )
        error = ErrorResponse(
            error="Internal server error",
            detail=str(exc) if config.debug else None,
            status_code=500
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error.model_dump()
        )

    def preflight_response(request: Request) -> Response:
        """Permissive CORS preflight, whatever method or headers were asked for."""
        origin = request.headers.get("origin", "")
        if "*" in config.cors_origins:
            allow_origin = "*"
        elif origin in config.cors_origins:
            allow_origin = origin
        else:
            allow_origin = config.cors_origins[0]
        return Response(
            status_code=status.HTTP_200_OK,
            headers={
                "Access-Control-Allow-Origin": allow_origin,
                "Access-Control-Allow-Methods": ",".join(config.cors_allow_methods),
                "Access-Control-Allow-Headers": ",".join(config.cors_allow_headers),
            }
        )

    # registered after CORSMiddleware, so OPTIONS never reaches it
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all HTTP requests with timing; answer OPTIONS directly."""
        start_time = time.time()
        request_id = str(uuid.uuid4())[:8]

        try:
            if request.method == "OPTIONS":
                response = preflight_response(request)
            else:
                response = await call_next(request)
        except Exception as e:
            logger.error(
                f"Request failed: {e}",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                duration_ms=round((time.time() - start_time) * 1000, 2)
            )
            raise

        logger.request(
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=(time.time() - start_time) * 1000,
            request_id=request_id
        )
        return response

    @app.api_route("/api/chat", methods=ROUTE_METHODS)
    async def chat(request: Request):
        """
        Stream an assistant reply for one user message.

        The response body is the generation service's event stream, forwarded
        unchanged. New sessions receive the session cookie.
        """
        if request.method != "POST":
            return PlainTextResponse("Method not allowed", status_code=status.HTTP_405_METHOD_NOT_ALLOWED)

        try:
            payload = await request.json()
        except ValueError:
            logger.warning("Malformed JSON body on /api/chat")
            return json_error("Invalid JSON body", status.HTTP_400_BAD_REQUEST)

        try:
            chat_request = ChatRequest.model_validate(payload)
        except ValidationError:
            logger.warning("Chat body without a string message")
            return json_error("Message required", status.HTTP_400_BAD_REQUEST)

        try:
            chat_stream = await run_in_threadpool(
                orchestrator.start_chat,
                chat_request.message,
                request.cookies.get(config.session_cookie_name)
            )
        except InvalidMessageError:
            logger.warning("Empty message received")
            return json_error("Message required", status.HTTP_400_BAD_REQUEST)

        response = StreamingResponse(
            chat_stream.body,
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache"}
        )
        if chat_stream.is_new_session:
            response.set_cookie(
                key=config.session_cookie_name,
                value=chat_stream.session_id,
                max_age=config.session_ttl_seconds,
                path="/",
                httponly=True,
                samesite="lax"
            )
        return response

    @app.api_route("/api/history", methods=ROUTE_METHODS)
    async def history(request: Request):
        """Conversation history for the caller's session cookie."""
        turns = await run_in_threadpool(
            orchestrator.get_history,
            request.cookies.get(config.session_cookie_name)
        )
        return HistoryResponse(messages=turns)

    @app.api_route("/api/seed", methods=ROUTE_METHODS)
    async def seed(request: Request):
        """Populate the FAQ vector index from the embedded dataset."""
        if request.method != "POST":
            return PlainTextResponse("Method not allowed", status_code=status.HTTP_405_METHOD_NOT_ALLOWED)

        try:
            count = await run_in_threadpool(seed_faq_index, retrieval_tool)
        except SeedError as e:
            logger.error(f"Seed failed: {e}")
            return json_error("Seed failed", status.HTTP_500_INTERNAL_SERVER_ERROR)

        return SeedResponse(count=count)

    @app.api_route("/api/health", methods=ROUTE_METHODS)
    async def health():
        """Liveness check."""
        return {"status": "ok"}

    static_dir = BASE_DIR / config.static_directory
    if static_dir.is_dir():
        app.mount(
            "/",
            CachedStaticFiles(
                directory=str(static_dir),
                html=True,
                cache_control=config.static_cache_control
            ),
            name="static"
        )
    else:
        logger.warning(f"Static directory '{static_dir}' not found - asset requests will 404")

        @app.api_route("/{full_path:path}", methods=ROUTE_METHODS)
        async def not_found(full_path: str):
            return json_error("Not found", status.HTTP_404_NOT_FOUND)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    config = load_config()
    uvicorn.run(
        "app:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )

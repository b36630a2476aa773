"""
FastAPI Application Module

Backend for the EdSkill Hub mobile app. The chat relay endpoint forwards one
user message per call to the completion API under a category-specific
system prompt and records the exchange; the remaining routes cover the
conversation bookkeeping the app screens need.

Key Features:
- Bearer authentication against Supabase auth on every route
- Fixed permissive CORS headers on every response, including errors
- Uniform `{"error": ...}` payloads for failures
- Structured logging, Prometheus metrics and OpenTelemetry tracing
"""

from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

import httpx
from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from prometheus_client import generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException
from structlog import get_logger

from ..config import get_settings
from ..domain.errors import ChatError
from ..domain.models import (
    Category,
    ChatReply,
    ChatRequest,
    Conversation,
    ConversationCreate,
    ErrorReply,
    Message,
    RatingUpdate,
    UserIdentity,
)
from ..repositories.base import Repository
from ..repositories.memory import InMemoryRepository
from ..repositories.supabase import SupabaseRepository
from ..services.auth import AuthService, extract_bearer_token
from ..services.chat import ChatRelay
from ..services.conversations import ConversationService
from ..services.llm import CompletionClient
from ..telemetry import CHAT_ERRORS, CHAT_REQUESTS, CUSTOM_REGISTRY, configure_logging

logger = get_logger()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def error_response(
    message: str, status_code: int, headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(
        ErrorReply(error=message).model_dump(),
        status_code=status_code,
        headers={**(headers or {}), **CORS_HEADERS},
    )


@lru_cache
def get_http_client() -> httpx.AsyncClient:
    """Returns the shared outbound HTTP client"""
    return httpx.AsyncClient()


@lru_cache
def get_repository() -> Repository:
    """Returns the storage backend selected by configuration"""
    settings = get_settings()
    if settings.STORAGE_BACKEND == "memory":
        return InMemoryRepository()
    return SupabaseRepository(settings, get_http_client())


@lru_cache
def get_auth_service() -> AuthService:
    """Returns the token verification service"""
    return AuthService(get_settings(), get_http_client())


@lru_cache
def get_completion_client() -> CompletionClient:
    """Returns the completion API client"""
    return CompletionClient(get_settings(), get_http_client())


def get_chat_relay(
    auth: AuthService = Depends(get_auth_service),
    completions: CompletionClient = Depends(get_completion_client),
    repository: Repository = Depends(get_repository),
) -> ChatRelay:
    return ChatRelay(auth, completions, repository)


def get_conversation_service(
    repository: Repository = Depends(get_repository),
) -> ConversationService:
    return ConversationService(repository)


async def get_caller(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
) -> Tuple[str, UserIdentity]:
    """Authenticates the request, yielding the bearer token and its identity"""
    token = extract_bearer_token(request.headers.get("Authorization"))
    return token, await auth.verify(token)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles app startup/shutdown and resource management"""
    configure_logging(get_settings().LOG_LEVEL)
    logger.info("application_startup_complete")

    yield

    if get_http_client.cache_info().currsize:
        await get_http_client().aclose()
        get_http_client.cache_clear()
    logger.info("application_shutdown_complete")


app = FastAPI(
    title="EdSkill Chat API",
    description="Chat relay and conversation API for the EdSkill Hub app",
    version="0.1.0",
    lifespan=lifespan,
)

# Set up request tracing
FastAPIInstrumentor.instrument_app(app)


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    return error_response(exc.message, exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(str(exc), 422)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(str(exc.detail), exc.status_code, exc.headers)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return error_response(str(exc), 500)


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """Tracks requests and encodes unhandled faults as error payloads"""
    logger.info("request_started", method=request.method, path=request.url.path)
    try:
        return await call_next(request)
    except Exception as e:
        logger.error("request_failed", path=request.url.path, error=str(e))
        return error_response(str(e), 500)


@app.post("/chat-ai", response_model=ChatReply)
async def chat(request: Request, relay: ChatRelay = Depends(get_chat_relay)) -> JSONResponse:
    """
    Relays a user message to the completion API and returns the reply.
    The body is read only once the caller is authenticated.
    """
    CHAT_REQUESTS.inc()
    try:
        token, user = await relay.authenticate(request.headers.get("Authorization"))
        payload = ChatRequest.model_validate(await request.json())
        reply = await relay.relay(token, user, payload)
    except ChatError as e:
        CHAT_ERRORS.labels(kind=type(e).__name__).inc()
        raise
    except Exception as e:
        CHAT_ERRORS.labels(kind="unexpected").inc()
        logger.error("chat_unexpected_error", error=str(e))
        raise ChatError(str(e), status_code=500)

    return JSONResponse(ChatReply(message=reply).model_dump(), headers=CORS_HEADERS)


@app.get("/categories", response_model=List[Category])
async def list_categories(
    caller: Tuple[str, UserIdentity] = Depends(get_caller),
    service: ConversationService = Depends(get_conversation_service),
) -> JSONResponse:
    """Lists advice categories in display order"""
    token, _ = caller
    categories = await service.list_categories(token)
    return JSONResponse(
        [c.model_dump(mode="json") for c in categories], headers=CORS_HEADERS
    )


@app.post("/conversations", response_model=Conversation)
async def create_conversation(
    body: ConversationCreate,
    caller: Tuple[str, UserIdentity] = Depends(get_caller),
    service: ConversationService = Depends(get_conversation_service),
) -> JSONResponse:
    """Starts a new conversation in the chosen category"""
    token, user = caller
    conversation = await service.start_conversation(token, user, body.category_id)
    return JSONResponse(conversation.model_dump(mode="json"), headers=CORS_HEADERS)


@app.get("/conversations/{conversation_id}/messages", response_model=List[Message])
async def get_messages(
    conversation_id: str,
    caller: Tuple[str, UserIdentity] = Depends(get_caller),
    service: ConversationService = Depends(get_conversation_service),
) -> JSONResponse:
    """Gets the message history of a conversation"""
    token, user = caller
    messages = await service.get_messages(token, user, conversation_id)
    return JSONResponse(
        [m.model_dump(mode="json") for m in messages], headers=CORS_HEADERS
    )


@app.put("/messages/{message_id}/rating", response_model=Message)
async def rate_message(
    message_id: str,
    body: RatingUpdate,
    caller: Tuple[str, UserIdentity] = Depends(get_caller),
    service: ConversationService = Depends(get_conversation_service),
) -> JSONResponse:
    """Records the caller's one-time rating of a message"""
    token, user = caller
    message = await service.rate_message(token, user, message_id, body.rating)
    return JSONResponse(message.model_dump(mode="json"), headers=CORS_HEADERS)


@app.get("/metrics")
async def metrics():
    """Provides Prometheus metrics for system monitoring"""
    return Response(generate_latest(CUSTOM_REGISTRY), media_type="text/plain")


async def preflight() -> Response:
    """Answers CORS pre-flight with headers only"""
    return Response(status_code=200, headers=CORS_HEADERS)


# Registered after the routes above so a wrong method reports their verbs in Allow
for _path in (
    "/chat-ai",
    "/categories",
    "/conversations",
    "/conversations/{conversation_id}/messages",
    "/messages/{message_id}/rating",
):
    app.add_api_route(_path, preflight, methods=["OPTIONS"], include_in_schema=False)

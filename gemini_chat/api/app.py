"""Gemini Chat API application.

Builds the FastAPI app: chat and upload routers, permissive CORS for the
separately served UI, and a health check.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gemini_chat import __version__
from gemini_chat.agent.config import api_key_from_env, get_chat_config
from gemini_chat.api.chat import router as chat_router
from gemini_chat.api.routes import router as upload_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Log the effective configuration on startup.

    A missing API key is only a warning here; each turn reports it to the
    user as an error notice.
    """
    config = get_chat_config()
    logger.info(
        f"Gemini Chat API starting: default model {config.default_model.value}, "
        f"CSV relay {config.proxy_url}, CSV limit {config.max_chars} chars"
    )
    if not api_key_from_env().strip():
        logger.warning("No API key configured; set GEMINI_API_KEY or API_KEY in .env")
    yield
    logger.info("Gemini Chat API stopped")


def create_app() -> FastAPI:
    """Build the API application with its routers and middleware."""
    application = FastAPI(
        title="Gemini Chat API",
        description=(
            "Chat with a hosted Gemini model. Answers free-form questions in a "
            "persistent session, describes attached images, and answers questions "
            "grounded in an uploaded CSV dataset. Replies stream as Server-Sent Events."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["*"],
    )

    for router in (chat_router, upload_router):
        application.include_router(router)

    @application.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "healthy", "service": "gemini-chat"}

    return application


app = create_app()

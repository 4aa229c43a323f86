from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional
from dotenv import load_dotenv
import logging
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from ..config import Settings
from ..observability.metrics import metrics_middleware_factory
from ..services.completion import CompletionClient
from ..services.diagram_renderer import DiagramRenderer, EngineHandle, initialize_engine
from ..services.presenter import ArtifactPresenter
from .routers.chat import router as chat_router
from .routers.feedback import router as feedback_router
from .routers.personas import router as personas_router
from .routers.render import router as render_router

logger = logging.getLogger("polymind.api")

VERSION = "0.1.0"


def create_app(settings: Optional[Settings] = None, engine: Optional[EngineHandle] = None) -> FastAPI:
    """Build the API; a missing LLM credential stops the process here."""
    load_dotenv()  # Load environment variables from .env if present (GROQ_API_KEY, etc.)
    settings = settings or Settings.from_env()
    settings.require_credentials()

    app = FastAPI(title="Polymind API", version=VERSION)

    handle = engine or initialize_engine(settings)
    renderer = DiagramRenderer.from_settings(settings, handle)
    app.state.settings = settings
    app.state.presenter = ArtifactPresenter(renderer)
    app.state.completion = CompletionClient(settings)

    # Observability: request latency histogram
    app.middleware("http")(metrics_middleware_factory())

    for router in (personas_router, chat_router, render_router, feedback_router):
        app.include_router(router)
        # Same routers under /api for the browser client
        app.include_router(router, prefix="/api")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root():
        return {"name": "Polymind API", "version": VERSION}

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "components": {
                "api": "ok",
                "llm_provider": settings.llm_provider,
                "render_engine": settings.render_engine,
            },
        }

    @app.get("/metrics")
    def metrics() -> Response:
        data = generate_latest(REGISTRY)
        return Response(content=data, media_type=CONTENT_TYPE_LATEST)

    logger.info("Polymind API ready provider=%s engine=%s", settings.llm_provider, settings.render_engine)
    return app


app = create_app()

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.database import Database

from ai_client import GeminiClient
from database import ensure_indexes, get_database, get_db
from digest import DigestService
from email_service import EmailConfig, EmailService
from enrichment import ContentEnricher
from errors import register_exception_handlers
from ingestion import TOPICS, NewsIngestionPipeline
from logging_config import setup_logging
from news_client import NewsApiClient
from rewriter import ContentRewriter
from routers import ALL_ROUTERS
from scheduler import IngestionScheduler
from seed import initialize_app
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


def build_services(app: FastAPI, settings: Settings) -> None:
    """Wire collaborators onto app.state; anything already set (e.g. by tests) is kept."""
    state = app.state
    db = state.db

    if getattr(state, "news_client", None) is None:
        state.news_client = NewsApiClient(
            settings.news_api_key,
            settings.news_api_url,
            settings.news_api_timeout,
            topics=TOPICS,
        )
    if getattr(state, "ai", None) is None:
        state.ai = GeminiClient(settings.gemini_api_key, settings.gemini_model)
    if getattr(state, "enricher", None) is None:
        state.enricher = ContentEnricher(state.ai, db, [t.name for t in TOPICS])
    if getattr(state, "pipeline", None) is None:
        state.pipeline = NewsIngestionPipeline(
            db,
            state.news_client,
            ContentRewriter(state.ai),
            page_size=settings.ingestion_page_size,
            topic_delay=settings.ingestion_topic_delay_seconds,
        )
    if getattr(state, "email", None) is None:
        state.email = EmailService(EmailConfig.from_settings(settings))
    if getattr(state, "digest", None) is None:
        state.digest = DigestService(db, state.email, settings.digest_max_posts)
    if getattr(state, "scheduler", None) is None:
        state.scheduler = IngestionScheduler(
            state.pipeline,
            settings.ingestion_interval_minutes,
            digest_service=state.digest if settings.digest_enabled else None,
            digest_hour=settings.digest_hour,
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        app.state.settings = settings
        if getattr(app.state, "db", None) is None:
            app.state.db = get_database(settings)
        ensure_indexes(app.state.db)
        initialize_app(app.state.db, settings)
        build_services(app, settings)

        scheduler = app.state.scheduler
        if settings.ingestion_enabled:
            scheduler.start()
            logger.info("News ingestion scheduler started")
        else:
            logger.info("News ingestion scheduler disabled")
        logger.info(f"{settings.project_name} started ({settings.environment})")
        yield
        await scheduler.stop()
        logger.info(f"{settings.project_name} stopped")

    app = FastAPI(
        title=settings.project_name,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    for router in ALL_ROUTERS:
        app.include_router(router, prefix="/api")

    # -----------------------------
    # Health and root
    # -----------------------------
    @app.get("/")
    def read_root():
        return {"message": f"{settings.project_name} running"}

    @app.get("/api/health")
    def health(db: Database = Depends(get_db)):
        response = {
            "status": "success",
            "message": "Intelixir API is running",
            "data": {"environment": settings.environment, "database": "Not Connected", "collections": []},
        }
        try:
            response["data"]["collections"] = db.list_collection_names()[:10]
            response["data"]["database"] = "Connected"
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            response["data"]["database"] = f"Error: {str(e)[:80]}"
        return response

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)

"""
FastAPI app entrypoint.

Feed session API over the client-side feed cache. One store per feed lives for the process.
"""
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from the project root before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from squibfeed.api.routes import feed
from squibfeed.config import settings
from squibfeed.db.session import SessionLocal, init_db
from squibfeed.services.feed_cache import build_feed_stores
from squibfeed.services.feeds import ReportedLocationProvider, build_feed_controllers
from squibfeed.services.squibs import SquibsClient

logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    client = SquibsClient()
    location = ReportedLocationProvider()
    stores = build_feed_stores()
    app.state.location = location
    app.state.controllers = build_feed_controllers(
        stores,
        client,
        location,
        SessionLocal,
        page_size=settings.page_size,
        background_refresh=settings.background_refresh,
    )
    logger.info("Feed session API ready (backend %s)", client.config.base_url)
    yield
    await app.state.controllers.aclose()
    await client.aclose()


app = FastAPI(title="Squibs Feed", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS (comma-separated) for the UI shell
_cors_origins = [
    "http://localhost:8081",
    "http://127.0.0.1:8081",
    "http://localhost:19006",
    "http://127.0.0.1:19006",
]
_cors_extra = settings.cors_origins or os.getenv("CORS_ORIGINS", "")
if _cors_extra:
    _cors_origins.extend(o.strip() for o in _cors_extra.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(feed.router, tags=["feed"])


@app.get("/", include_in_schema=False)
def root():
    """Root: point to API docs and health."""
    return {"message": "Squibs Feed API", "docs": "/docs", "health": "/health"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}

"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS,
request metrics), registers the error handlers and includes all API routers.
It serves as the root of the web server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tourbnt import __version__
from tourbnt.core.database import init_db
from tourbnt.core.logging_config import get_logger, setup_logging
from tourbnt.core.monitoring import initialize_logfire

from .api.v1 import (
    auth,
    bookings,
    catalog,
    comments,
    facts,
    faqs,
    gallery,
    health,
    monitoring,
    notifications,
    posts,
    reviews,
    subscribers,
    tours,
    users,
)
from .core.config import API_V1_STR, PROJECT_NAME, settings
from .exception_handlers import setup_exception_handlers
from .middleware import MetricsMiddleware

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Creates missing tables on startup. A failing database is logged rather than
    aborting startup so the health endpoints stay reachable.
    """
    # Startup
    try:
        logger.info(f"Starting up {PROJECT_NAME} ({settings.environment})...")
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    yield

    # Shutdown
    logger.info(f"Shutting down {PROJECT_NAME}...")


app = FastAPI(
    title=PROJECT_NAME,
    description="""
    TourBNT API

    Backend of the TourBNT tour marketplace: accounts and seller onboarding,
    tours with reviews and facts, blog posts and comments, FAQs, the destination
    and category catalog, bookings, notifications, media galleries and
    operational monitoring.
    """,
    version=__version__,
    openapi_url=f"{API_V1_STR}/openapi.json",
    docs_url=f"{API_V1_STR}/docs",
    redoc_url=f"{API_V1_STR}/redoc",
    lifespan=lifespan,
)

cors = settings.cors
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors.origins,
    allow_credentials=cors.allow_credentials,
    allow_methods=cors.allow_methods,
    allow_headers=cors.allow_headers,
)
app.add_middleware(MetricsMiddleware)

setup_exception_handlers(app)
initialize_logfire(app)


app.include_router(health.router, tags=["health"])
app.include_router(auth.router, prefix=f"{API_V1_STR}/auth")
app.include_router(users.router, prefix=f"{API_V1_STR}/users")
app.include_router(comments.post_router, prefix=f"{API_V1_STR}/posts")
app.include_router(posts.router, prefix=f"{API_V1_STR}/posts")
app.include_router(comments.router, prefix=f"{API_V1_STR}/comments")
app.include_router(faqs.router, prefix=f"{API_V1_STR}/faqs")
app.include_router(subscribers.router, prefix=f"{API_V1_STR}/subscribers")
app.include_router(catalog.destinations_router, prefix=f"{API_V1_STR}/global/destinations")
app.include_router(catalog.categories_router, prefix=f"{API_V1_STR}/global/categories")
app.include_router(reviews.tour_router, prefix=f"{API_V1_STR}/tours")
app.include_router(tours.router, prefix=f"{API_V1_STR}/tours")
app.include_router(reviews.router, prefix=f"{API_V1_STR}/reviews")
app.include_router(facts.router, prefix=f"{API_V1_STR}/facts")
app.include_router(bookings.router, prefix=f"{API_V1_STR}/bookings")
app.include_router(notifications.router, prefix=f"{API_V1_STR}/notifications")
app.include_router(gallery.router, prefix=f"{API_V1_STR}/gallery")
app.include_router(monitoring.router, prefix=f"{API_V1_STR}/monitoring")

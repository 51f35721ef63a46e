from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import asyncpg
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.errors import register_exception_handlers
from app.api.routes import configuration, ping, tickets, uploads, users
from app.configuration.service import CategoryService, SettingsService, SlaService
from app.core.config import Settings, get_settings
from app.core.logging import configure_logging, init_tracer, shutdown_tracer
from app.db.memory import InMemoryDocumentStore
from app.db.postgres import PostgresDocumentStore, create_pool
from app.db.store import DocumentStore, DocumentStoreError
from app.notifications.dispatcher import NotificationDispatcher
from app.notifications.sender import ResendEmailSender
from app.storage.uploads import CloudinaryObjectStore
from app.tickets.service import TicketService
from app.users.service import UserService

logger = logging.getLogger(__name__)


def install_services(app: FastAPI, store: DocumentStore, dispatcher: NotificationDispatcher) -> None:
    """Bind the domain services for ``store`` onto the application state."""

    users_service = UserService(store)
    app.state.store = store
    app.state.dispatcher = dispatcher
    app.state.user_service = users_service
    app.state.ticket_service = TicketService(store, dispatcher, users=users_service)
    app.state.category_service = CategoryService(store)
    app.state.sla_service = SlaService(store)
    app.state.settings_service = SettingsService(store)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    app_logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)
    app.state.logger = app_logger
    app.state.tracer_provider = tracer_provider

    sender = ResendEmailSender(
        api_key=settings.resend_api_key,
        from_address=settings.email_from,
        reply_to=settings.email_reply_to,
        api_url=settings.resend_api_url,
        timeout=settings.email_timeout,
    )
    if not sender.configured:
        app_logger.warning("RESEND_API_KEY is not set; email notifications will fail and be logged")
    dispatcher = NotificationDispatcher(sender, max_concurrency=settings.notification_concurrency)
    object_store = CloudinaryObjectStore(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
        timeout=settings.upload_timeout,
    )
    app.state.dispatcher = dispatcher
    app.state.object_store = object_store

    pool: asyncpg.Pool | None = None
    try:
        if settings.document_store == "memory":
            store: DocumentStore = InMemoryDocumentStore()
        else:
            pool = await create_pool(
                settings.postgres_dsn,
                min_size=settings.postgres_pool_min_size,
                max_size=settings.postgres_pool_max_size,
            )
            postgres_store = PostgresDocumentStore(pool)
            await postgres_store.ensure_schema()
            store = postgres_store
        install_services(app, store, dispatcher)
        app_logger.info("Using %s document store", settings.document_store)
    except (DocumentStoreError, asyncpg.PostgresError, OSError):
        # Data routes answer 503 until the store is reachable after a restart.
        app_logger.exception("Document store initialisation failed")
        if pool is not None:
            await pool.close()
            pool = None

    try:
        yield
    finally:
        await dispatcher.drain()
        if pool is not None:
            await pool.close()
        await sender.aclose()
        await object_store.aclose()
        shutdown_tracer(tracer_provider)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(ping.router)
    app.include_router(users.router)
    app.include_router(tickets.router)
    app.include_router(configuration.router)
    app.include_router(uploads.router)
    return app


app = create_app()

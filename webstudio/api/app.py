"""
FastAPI application for the webstudio console.

This is the HTTP surface the editor front end talks to: translation rows
per source list, saving a translation, deleting content items, and the
load / integrity maintenance actions.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from webstudio.config import Settings, get_settings
from webstudio.config_loader import load_seed
from webstudio.core.events import EventBus
from webstudio.core.models import EntityKind
from webstudio.i18n.languages import get_language_name
from webstudio.integrations.sentry import init_sentry, set_tag
from webstudio.services.loader import ContentLoader
from webstudio.services.outbox import OutboxWorker
from webstudio.services.reconciler import TranslationReconciler
from webstudio.services.state import StateError, StudioState
from webstudio.storage import StorageProvider, create_local_storage

logger = logging.getLogger(__name__)


# =============================================================================
# App State
# =============================================================================


class AppState:
    """Application state - initialized at startup."""

    settings: Settings
    storage: StorageProvider
    studio: StudioState
    reconciler: TranslationReconciler
    worker: OutboxWorker
    worker_task: asyncio.Task | None = None


# URL segment -> entity kind for DELETE /{kind}/{item_id}
DELETABLE_KINDS: dict[str, EntityKind] = {
    "news": EntityKind.NEWS,
    "events": EntityKind.EVENTS,
    "documents": EntityKind.DOCUMENTS,
    "container-items": EntityKind.CONTAINER_ITEMS,
    "contacts": EntityKind.CONTACTS,
    "slider-items": EntityKind.SLIDER_ITEMS,
}


# =============================================================================
# Lifespan
# =============================================================================


async def startup(ctx: AppState) -> None:
    """Build storage, state and the outbox worker, then load content."""
    settings = ctx.settings

    if init_sentry(settings):
        logger.info("Sentry error tracking enabled")
        set_tag("storage_backend", settings.storage_backend)

    if settings.seed_dir:
        await load_seed(ctx.storage.lists, settings.seed_dir)

    ctx.studio = StudioState(ctx.storage, bus=EventBus(), settings=settings)
    ctx.reconciler = TranslationReconciler(ctx.studio)
    ctx.worker = OutboxWorker(
        ctx.storage.lists,
        ctx.storage.queue,
        queue_name=settings.outbox_queue,
        max_attempts=settings.outbox_max_attempts,
        backoff_min=settings.outbox_backoff_min,
        backoff_max=settings.outbox_backoff_max,
    )

    await ContentLoader(ctx.studio).load()

    if settings.outbox_poll_interval > 0:
        ctx.worker_task = asyncio.create_task(ctx.worker.run_forever(settings.outbox_poll_interval))

    logger.info(f"webstudio API starting in {settings.environment} mode")


async def shutdown(ctx: AppState) -> None:
    if ctx.worker_task is not None:
        ctx.worker.stop()
        await ctx.worker_task
        ctx.worker_task = None
    logger.info("webstudio API shutting down")


# =============================================================================
# Dependencies
# =============================================================================


def get_ctx(request: Request) -> AppState:
    return request.app.state.ctx


def get_studio(request: Request) -> StudioState:
    return request.app.state.ctx.studio


def get_reconciler(request: Request) -> TranslationReconciler:
    return request.app.state.ctx.reconciler


# =============================================================================
# Request/Response Models
# =============================================================================


class SaveTranslationRequest(BaseModel):
    values: dict[str, str]


class SourcesRequest(BaseModel):
    sources: list[str]


# =============================================================================
# Routes
# =============================================================================


router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "webstudio-api"}


@router.get("/pages")
async def list_pages(studio: StudioState = Depends(get_studio)):
    """Pages with their containers, in load order."""
    return [page.model_dump(mode="json", by_alias=True) for page in studio.pages]


# -----------------------------------------------------------------------------
# Translations
# -----------------------------------------------------------------------------


@router.get("/translations/sources")
async def list_sources(
    studio: StudioState = Depends(get_studio),
    ctx: AppState = Depends(get_ctx),
):
    return {
        "sources": studio.translation_sources,
        "languages": [
            {"code": code, "name": get_language_name(code)}
            for code in ctx.settings.languages_list
        ],
    }


@router.put("/translations/sources")
async def set_sources(
    request: SourcesRequest,
    studio: StudioState = Depends(get_studio),
):
    await studio.set_translation_sources(request.sources)
    return {"sources": studio.translation_sources}


@router.post("/translations/sync")
async def sync_translations(studio: StudioState = Depends(get_studio)):
    """Queue every dictionary entry for writing to the backing list."""
    count = await studio.sync_translations()
    return {"queued": count}


@router.get("/translations/{source}")
async def list_translation_rows(
    source: str,
    q: str = "",
    reconciler: TranslationReconciler = Depends(get_reconciler),
):
    """Merged rows for one source list, optionally filtered by ``q``."""
    rows = reconciler.rows(source, q)
    return {"source": source, "rows": [row.to_dict() for row in rows]}


@router.get("/translations/{source}/{item_id}/{lang}")
async def get_translation_form(
    source: str,
    item_id: str,
    lang: str,
    reconciler: TranslationReconciler = Depends(get_reconciler),
):
    """Original and current translation of every editable field of a row."""
    row = reconciler.find_row(source, item_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Row not found")
    return {"row": row.to_dict(), "fields": reconciler.edit_form(row, lang)}


@router.put("/translations/{source}/{item_id}/{lang}")
async def save_translation(
    source: str,
    item_id: str,
    lang: str,
    request: SaveTranslationRequest,
    reconciler: TranslationReconciler = Depends(get_reconciler),
    ctx: AppState = Depends(get_ctx),
):
    if lang not in ctx.settings.languages_list:
        raise HTTPException(status_code=400, detail=f"Unsupported language: {lang}")
    if not request.values:
        raise HTTPException(status_code=400, detail="No values given")

    row = reconciler.find_row(source, item_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Row not found")

    await reconciler.save_translation(row, lang, request.values)
    return reconciler.find_row(source, item_id).to_dict()


# -----------------------------------------------------------------------------
# Maintenance
# -----------------------------------------------------------------------------


@router.post("/load")
async def load_content(studio: StudioState = Depends(get_studio)):
    """Reload everything from the backing lists, then run the integrity sweep."""
    report = await ContentLoader(studio).load()
    return report.to_dict()


@router.post("/integrity/validate")
async def validate_integrity(studio: StudioState = Depends(get_studio)):
    cleaned = await studio.integrity.validate_container_tagged_items()
    return {
        "cleaned": len(cleaned),
        "containers": [
            {"page_id": c.page_id, "container_id": c.container.id, "removed": list(c.removed)}
            for c in cleaned
        ],
    }


@router.post("/outbox/drain")
async def drain_outbox(ctx: AppState = Depends(get_ctx)):
    """Apply queued writes now instead of waiting for the worker."""
    report = await ctx.worker.drain()
    return {"applied": report.applied, "failed": report.failed}


# -----------------------------------------------------------------------------
# Content items
# -----------------------------------------------------------------------------


@router.delete("/{kind}/{item_id}")
async def delete_item(
    kind: str,
    item_id: str,
    studio: StudioState = Depends(get_studio),
):
    """Delete a content item; containers tagging it are cleaned in the same step."""
    entity_kind = DELETABLE_KINDS.get(kind)
    if entity_kind is None:
        raise HTTPException(status_code=404, detail=f"Unknown item kind: {kind}")
    await studio.delete_entity(entity_kind, item_id)
    return {"deleted": item_id, "kind": kind}


# =============================================================================
# App Setup
# =============================================================================


async def _state_error_handler(request: Request, exc: StateError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


def create_app(
    settings: Settings | None = None,
    storage: StorageProvider | None = None,
) -> FastAPI:
    """Build the API. ``storage`` defaults to the backend named in settings."""
    settings = settings or get_settings()
    ctx = AppState()
    ctx.settings = settings
    ctx.storage = storage or create_local_storage(settings.storage_backend, settings.data_dir)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize and cleanup app resources."""
        await startup(ctx)
        yield
        await shutdown(ctx)

    app = FastAPI(
        title="webstudio API",
        description="Translation reconciliation and content integrity for the webstudio console",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.ctx = ctx

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StateError, _state_error_handler)
    app.include_router(router)
    return app


def run_app(settings: Settings | None = None) -> None:
    """Serve the API with uvicorn."""
    settings = settings or get_settings()
    uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port)

"""Services - the state manager and the operations that run against it."""

from webstudio.services.outbox import Outbox, OutboxWorker
from webstudio.services.integrity import ReferentialIntegrity, sweep_pages
from webstudio.services.state import StateError, StudioState
from webstudio.services.reconciler import TranslationReconciler, build_rows
from webstudio.services.loader import ContentLoader

__all__ = [
    "Outbox",
    "OutboxWorker",
    "ReferentialIntegrity",
    "sweep_pages",
    "StateError",
    "StudioState",
    "TranslationReconciler",
    "build_rows",
    "ContentLoader",
]

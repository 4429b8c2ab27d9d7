"""Engine — registry, kind handlers and the reconciler loop."""

from macsetup.core.engine.handlers import HANDLERS, ReconcileContext, ResourceHandler
from macsetup.core.engine.reconciler import Reconciler
from macsetup.core.engine.registry import ResourceRegistry

__all__ = [
    "HANDLERS",
    "ReconcileContext",
    "Reconciler",
    "ResourceHandler",
    "ResourceRegistry",
]

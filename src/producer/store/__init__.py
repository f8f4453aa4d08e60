"""Scene store and the commands it accepts."""

from .commands import (
    CreateEmpty,
    Delete,
    EventKind,
    Reorder,
    SetStatus,
    StoreEvent,
    ToggleCompositionLock,
    UpdateComposition,
    UpdateParameters,
    UpdateStyle,
)
from .scene_store import SceneStore

__all__ = [
    "CreateEmpty",
    "Delete",
    "EventKind",
    "Reorder",
    "SetStatus",
    "StoreEvent",
    "ToggleCompositionLock",
    "UpdateComposition",
    "UpdateParameters",
    "UpdateStyle",
    "SceneStore",
]

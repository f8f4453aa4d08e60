"""Commands and events exchanged with the scene store."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from ..models import Scene, SceneStatus


@dataclass(frozen=True)
class UpdateParameters:
    scene_id: str
    partial: Mapping[str, Any]


@dataclass(frozen=True)
class UpdateComposition:
    scene_id: str
    partial: Mapping[str, Any]


@dataclass(frozen=True)
class UpdateStyle:
    scene_id: str
    partial: Mapping[str, Any]


@dataclass(frozen=True)
class ToggleCompositionLock:
    scene_id: str


@dataclass(frozen=True)
class SetStatus:
    scene_id: str
    status: SceneStatus
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Reorder:
    from_index: int
    to_index: int


@dataclass(frozen=True)
class CreateEmpty:
    pass


@dataclass(frozen=True)
class Delete:
    scene_id: str


class EventKind(str, Enum):
    """What changed in the store."""
    RECONCILED = "reconciled"
    PARAMETERS_UPDATED = "parameters_updated"
    LOCK_TOGGLED = "lock_toggled"
    STATUS_CHANGED = "status_changed"
    PROMPT_UPDATED = "prompt_updated"
    REORDERED = "reordered"
    CREATED = "created"
    DELETED = "deleted"


@dataclass(frozen=True)
class StoreEvent:
    """Notification sent to store observers after every accepted change."""

    kind: EventKind
    scene_id: Optional[str]
    scenes: Tuple[Scene, ...]

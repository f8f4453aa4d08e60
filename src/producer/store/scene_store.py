"""Authoritative, observable collection of scenes."""

import logging
import random
import threading
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ..exceptions import InvalidTransitionError
from ..models import Scene, SceneStatus
from ..models.parameters import (
    COMPOSITION_SECTIONS,
    STYLE_SECTIONS,
    PartialParameters,
    default_parameters,
    drop_sections,
    filter_sections,
    merge_parameters,
)
from ..models.scene import can_transition
from ..script.inference import SEED_RANGE
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

logger = logging.getLogger(__name__)

Observer = Callable[[StoreEvent], None]

PLACEHOLDER_HEADING = "INT. NEW SCENE - DAY"
PLACEHOLDER_PROMPT = "A cinematic shot..."
STATUS_EXTRAS = ("image_url", "error", "seed", "structured_prompt", "background_removed_url")


class SceneStore:
    """Copy-on-write store of :class:`Scene` records.

    Every operation reads the current snapshot, builds the next one and
    swaps it in while holding the store lock. Scenes are never mutated in
    place, so a snapshot handed to a caller stays valid forever.

    Operations on an unknown scene id are no-ops and return ``None``.
    """

    def __init__(self, scenes: Optional[Iterable[Scene]] = None, rng: Optional[random.Random] = None) -> None:
        self._scenes: Tuple[Scene, ...] = tuple(scenes or ())
        self._lock = threading.RLock()
        self._observers: List[Observer] = []
        self._rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def snapshot(self) -> Tuple[Scene, ...]:
        return self._scenes

    def get(self, scene_id: str) -> Optional[Scene]:
        for scene in self._scenes:
            if scene.id == scene_id:
                return scene
        return None

    def index_of(self, scene_id: str) -> int:
        for index, scene in enumerate(self._scenes):
            if scene.id == scene_id:
                return index
        return -1

    def __len__(self) -> int:
        return len(self._scenes)

    def __iter__(self):
        return iter(self._scenes)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register ``observer``; returns a callable that unsubscribes it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self, kind: EventKind, scene_id: Optional[str]) -> None:
        event = StoreEvent(kind=kind, scene_id=scene_id, scenes=self._scenes)
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception as e:
                logger.error(f"Store observer failed on {kind.value}: {e}")

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def _replace(self, scene_id: str, build: Callable[[Scene], Optional[Scene]]) -> Optional[Scene]:
        """Swap the scene ``scene_id`` for ``build(scene)``.

        ``build`` may return ``None`` to reject the change.
        """
        with self._lock:
            index = self.index_of(scene_id)
            if index == -1:
                logger.debug(f"Ignoring update for unknown scene {scene_id}")
                return None
            updated = build(self._scenes[index])
            if updated is None:
                return None
            scenes = list(self._scenes)
            scenes[index] = updated
            self._scenes = tuple(scenes)
            return updated

    def reconcile(self, scenes: Iterable[Scene]) -> Tuple[Scene, ...]:
        """Replace the whole collection, e.g. after the script was re-parsed."""
        scenes = tuple(scenes)
        ids = [scene.id for scene in scenes]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate scene ids in {ids}")
        with self._lock:
            self._scenes = scenes
        self._notify(EventKind.RECONCILED, None)
        return scenes

    def update_parameters(self, scene_id: str, partial: PartialParameters) -> Optional[Scene]:
        """Merge ``partial`` into the scene's parameters section by section.

        Composition sections are dropped while the scene is locked.
        """
        def build(scene: Scene) -> Scene:
            changes = partial
            if scene.lock_composition:
                changes = drop_sections(partial, COMPOSITION_SECTIONS)
            return scene.model_copy(update={
                "parameters": merge_parameters(scene.parameters, changes),
            })

        updated = self._replace(scene_id, build)
        if updated is not None:
            self._notify(EventKind.PARAMETERS_UPDATED, scene_id)
        return updated

    def update_composition(self, scene_id: str, partial: PartialParameters) -> Optional[Scene]:
        """Merge camera/composition/subject changes unless the scene is locked."""
        def build(scene: Scene) -> Optional[Scene]:
            if scene.lock_composition:
                logger.info(f"Composition of {scene.id} is locked, ignoring update")
                return None
            changes = filter_sections(partial, COMPOSITION_SECTIONS)
            return scene.model_copy(update={
                "parameters": merge_parameters(scene.parameters, changes),
            })

        updated = self._replace(scene_id, build)
        if updated is not None:
            self._notify(EventKind.PARAMETERS_UPDATED, scene_id)
        return updated

    def update_style(self, scene_id: str, partial: PartialParameters) -> Optional[Scene]:
        """Merge lighting/color/style changes; allowed even when locked."""
        def build(scene: Scene) -> Scene:
            changes = filter_sections(partial, STYLE_SECTIONS)
            return scene.model_copy(update={
                "parameters": merge_parameters(scene.parameters, changes),
            })

        updated = self._replace(scene_id, build)
        if updated is not None:
            self._notify(EventKind.PARAMETERS_UPDATED, scene_id)
        return updated

    def toggle_composition_lock(self, scene_id: str) -> Optional[Scene]:
        """Flip the composition lock.

        Locking freezes ``structure_seed`` to the scene seed (or the parameter
        seed when the scene has none yet). Unlocking clears it.
        """
        def build(scene: Scene) -> Scene:
            if scene.lock_composition:
                return scene.model_copy(update={
                    "lock_composition": False,
                    "structure_seed": None,
                })

            frozen = scene.seed if scene.seed is not None else scene.parameters.seed
            if frozen is None:
                frozen = self._rng.randrange(SEED_RANGE)
            return scene.model_copy(update={
                "lock_composition": True,
                "structure_seed": frozen,
            })

        updated = self._replace(scene_id, build)
        if updated is not None:
            logger.info(
                f"Composition lock {'on' if updated.lock_composition else 'off'} for {scene_id}"
            )
            self._notify(EventKind.LOCK_TOGGLED, scene_id)
        return updated

    def set_status(self, scene_id: str, status: SceneStatus, **extra: Any) -> Optional[Scene]:
        """Move a scene to ``status``, optionally attaching result fields.

        Accepted extras: image_url, error, seed, structured_prompt,
        background_removed_url. Transitions the state machine forbids are
        logged and ignored.
        """
        status = SceneStatus(status)
        unknown = set(extra) - set(STATUS_EXTRAS)
        if unknown:
            raise TypeError(f"Unexpected status fields: {', '.join(sorted(unknown))}")

        def build(scene: Scene) -> Optional[Scene]:
            if not can_transition(scene.status, status):
                error = InvalidTransitionError(scene.id, scene.status.value, status.value)
                logger.warning(str(error))
                return None
            update: Dict[str, Any] = {"status": status}
            if status == SceneStatus.GENERATING:
                update["error"] = None
            update.update(extra)
            return scene.model_copy(update=update)

        updated = self._replace(scene_id, build)
        if updated is not None:
            self._notify(EventKind.STATUS_CHANGED, scene_id)
        return updated

    def update_prompt(
        self,
        scene_id: str,
        visual_prompt: Optional[str] = None,
        structured_prompt: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Scene]:
        """Overwrite the free-text and/or structured prompt."""
        def build(scene: Scene) -> Scene:
            update: Dict[str, Any] = {}
            if visual_prompt:
                update["visual_prompt"] = visual_prompt
            if structured_prompt is not None:
                update["structured_prompt"] = dict(structured_prompt)
            return scene.model_copy(update=update)

        updated = self._replace(scene_id, build)
        if updated is not None:
            self._notify(EventKind.PROMPT_UPDATED, scene_id)
        return updated

    def set_structure_reference(
        self,
        scene_id: str,
        image_url: Optional[str],
        influence: Optional[float] = None,
    ) -> Optional[Scene]:
        """Adopt ``image_url`` as the structural reference, or clear it with ``None``."""
        partial: Dict[str, Any] = {"structure_image_url": image_url}
        if influence is not None:
            partial["structure_ref_influence"] = influence

        def build(scene: Scene) -> Scene:
            return scene.model_copy(update={
                "parameters": merge_parameters(scene.parameters, partial),
            })

        updated = self._replace(scene_id, build)
        if updated is not None:
            self._notify(EventKind.PARAMETERS_UPDATED, scene_id)
        return updated

    def reorder(self, from_index: int, to_index: int) -> Tuple[Scene, ...]:
        """Move the scene at ``from_index`` to ``to_index``.

        Raises:
            IndexError: If either index is outside the collection.
        """
        with self._lock:
            size = len(self._scenes)
            for name, index in (("from_index", from_index), ("to_index", to_index)):
                if not 0 <= index < size:
                    raise IndexError(f"{name} {index} out of range for {size} scenes")
            scenes = list(self._scenes)
            moved = scenes.pop(from_index)
            scenes.insert(to_index, moved)
            self._scenes = tuple(scenes)
        self._notify(EventKind.REORDERED, moved.id)
        return self._scenes

    def create_empty(self) -> Scene:
        """Append a placeholder scene with a fresh random seed."""
        with self._lock:
            taken = {scene.id for scene in self._scenes}
            number = len(self._scenes) + 1
            while f"scene-{number}" in taken:
                number += 1
            seed = self._rng.randrange(SEED_RANGE)
            scene = Scene(
                id=f"scene-{number}",
                script_text=PLACEHOLDER_HEADING,
                visual_prompt=PLACEHOLDER_PROMPT,
                parameters=default_parameters(seed=seed),
                seed=seed,
            )
            self._scenes = self._scenes + (scene,)
        self._notify(EventKind.CREATED, scene.id)
        return scene

    def delete(self, scene_id: str) -> bool:
        """Remove a scene. The caller clears any selection pointing at it."""
        with self._lock:
            remaining = tuple(scene for scene in self._scenes if scene.id != scene_id)
            if len(remaining) == len(self._scenes):
                return False
            self._scenes = remaining
        self._notify(EventKind.DELETED, scene_id)
        return True

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def dispatch(self, command):
        """Apply a command object from :mod:`producer.store.commands`."""
        if isinstance(command, UpdateParameters):
            return self.update_parameters(command.scene_id, command.partial)
        if isinstance(command, UpdateComposition):
            return self.update_composition(command.scene_id, command.partial)
        if isinstance(command, UpdateStyle):
            return self.update_style(command.scene_id, command.partial)
        if isinstance(command, ToggleCompositionLock):
            return self.toggle_composition_lock(command.scene_id)
        if isinstance(command, SetStatus):
            return self.set_status(command.scene_id, command.status, **dict(command.extra))
        if isinstance(command, Reorder):
            return self.reorder(command.from_index, command.to_index)
        if isinstance(command, CreateEmpty):
            return self.create_empty()
        if isinstance(command, Delete):
            return self.delete(command.scene_id)
        raise TypeError(f"Unknown store command: {type(command).__name__}")

"""Director: ties the script, the scene store and the generation router together."""

import asyncio
import itertools
import logging
from typing import Any, Dict, List, Optional, Tuple

from .config import config
from .exceptions import GenerationCancelledError
from .models import Scene, SceneStatus
from .script.segmenter import DebouncedSegmenter, ScriptSegmenter
from .services.responses import GenerationResult, parse_structured_prompt
from .services.router import FailurePolicy, GenerationRouter
from .store import SceneStore

logger = logging.getLogger(__name__)

PRESETS: Dict[str, Dict[str, Any]] = {
    "Cinematic Drama": {"lighting": {"type": "cinematic"}, "camera": {"shotType": "close_up"}},
    "Studio Setup": {"lighting": {"type": "studio"}, "camera": {"shotType": "medium_shot"}},
    "Bright & Airy": {"lighting": {"type": "natural"}, "camera": {"shotType": "wide_shot"}},
    "Cyberpunk High": {"lighting": {"type": "neon"}, "camera": {"shotType": "low_angle"}},
    "Noir Detective": {"lighting": {"type": "noir"}, "camera": {"shotType": "dutch_angle"}},
}


class Director:
    """Orchestrates segmentation, generation and analysis over a :class:`SceneStore`.

    No generation call ever raises to the caller. Failures are turned into a
    mock result or a ``failed`` scene depending on the router's failure
    policy. Only one generation per scene id is in flight at a time: a new
    request for the same scene cancels the previous one, and only the newest
    request writes its result.
    """

    def __init__(
        self,
        store: Optional[SceneStore] = None,
        router: Optional[GenerationRouter] = None,
        segmenter: Optional[ScriptSegmenter] = None,
        debounce_seconds: Optional[float] = None,
        analysis_timeout: Optional[float] = None,
        script: str = "",
    ) -> None:
        self._store = store or SceneStore()
        self._router = router or GenerationRouter()
        self._debouncer = DebouncedSegmenter(
            self._store,
            segmenter or ScriptSegmenter(),
            delay=debounce_seconds if debounce_seconds is not None else config.debounce_seconds,
        )
        self._analysis_timeout = (
            analysis_timeout if analysis_timeout is not None else config.analysis_timeout
        )
        self._script = script
        self._active_scene_id: Optional[str] = None
        self._history: List[Scene] = []
        self._inflight: Dict[str, Tuple[int, asyncio.Event]] = {}
        self._latest: Dict[str, int] = {}
        self._tokens = itertools.count(1)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def store(self) -> SceneStore:
        return self._store

    @property
    def router(self) -> GenerationRouter:
        return self._router

    @property
    def script(self) -> str:
        return self._script

    @property
    def history(self) -> List[Scene]:
        """Completed scene snapshots, newest first."""
        return list(self._history)

    @property
    def is_generating(self) -> bool:
        return bool(self._inflight)

    @property
    def active_scene_id(self) -> Optional[str]:
        return self._active_scene_id

    @property
    def active_scene(self) -> Optional[Scene]:
        if self._active_scene_id is None:
            return None
        return self._store.get(self._active_scene_id)

    def select_scene(self, scene_id: Optional[str]) -> None:
        self._active_scene_id = scene_id

    # ------------------------------------------------------------------
    # Script
    # ------------------------------------------------------------------

    def set_script(self, text: str) -> None:
        """Record an edit and schedule a debounced re-parse.

        Must be called from within a running event loop.
        """
        self._script = text
        self._debouncer.schedule(text)

    async def flush_script(self) -> None:
        """Wait for the pending re-parse, if any."""
        await self._debouncer.flush()

    def load_script(self, text: str) -> List[Scene]:
        """Parse ``text`` right away and replace the scenes."""
        self._script = text
        return self._debouncer.apply_now(text)

    # ------------------------------------------------------------------
    # Scene editing
    # ------------------------------------------------------------------

    def delete_scene(self, scene_id: str) -> bool:
        deleted = self._store.delete(scene_id)
        if deleted and self._active_scene_id == scene_id:
            self._active_scene_id = None
        return deleted

    def apply_preset(self, preset_name: str, scene_id: Optional[str] = None) -> Optional[Scene]:
        """Apply a named look to a scene (the active one by default)."""
        target = scene_id or self._active_scene_id
        if not target:
            return None
        preset = PRESETS.get(preset_name)
        if preset is None:
            logger.warning(f"Unknown preset: {preset_name}")
            return None
        return self._store.update_parameters(target, preset)

    def adopt_structure_reference(self, scene_id: str, source_scene_id: str) -> Optional[Scene]:
        """Use another scene's image as the structural reference of ``scene_id``."""
        source = self._store.get(source_scene_id)
        if source is None or not source.image_url:
            logger.warning(f"Scene {source_scene_id} has no image to use as a reference")
            return None
        return self._store.set_structure_reference(scene_id, source.image_url)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def cancel(self, scene_id: str) -> bool:
        """Cancel the in-flight generation of ``scene_id``."""
        entry = self._inflight.get(scene_id)
        if entry is None:
            return False
        entry[1].set()
        return True

    def _is_current(self, scene_id: str, token: int) -> bool:
        entry = self._inflight.get(scene_id)
        return entry is not None and entry[0] == token

    def _record_result(self, scene: Scene, result: GenerationResult) -> Optional[Scene]:
        extra: Dict[str, Any] = {"image_url": result.url}
        if result.seed is not None:
            extra["seed"] = result.seed
        elif scene.seed is None and scene.parameters.seed is not None:
            extra["seed"] = scene.parameters.seed
        if result.structured_prompt is not None:
            extra["structured_prompt"] = result.structured_prompt
        if result.metadata.get("error"):
            extra["error"] = result.metadata["error"]

        completed = self._store.set_status(scene.id, SceneStatus.COMPLETED, **extra)
        if completed is not None:
            self._history.insert(0, completed)
        return completed

    async def generate_shot(self, scene_id: str) -> Optional[Scene]:
        """Generate one scene and return its final state.

        Returns None if the scene does not exist or a newer generation of
        the same scene took over.
        """
        if self._store.get(scene_id) is None:
            logger.warning(f"Cannot generate unknown scene {scene_id}")
            return None

        previous = self._inflight.get(scene_id)
        if previous is not None:
            logger.info(f"Superseding in-flight generation of {scene_id}")
            previous[1].set()

        token = next(self._tokens)
        cancel_event = asyncio.Event()
        self._inflight[scene_id] = (token, cancel_event)
        self._latest[scene_id] = token

        scene = self._store.set_status(scene_id, SceneStatus.GENERATING) or self._store.get(scene_id)
        try:
            result = await self._router.generate(scene, cancel_event)
        except GenerationCancelledError as e:
            if self._latest.get(scene_id) != token:
                return None
            logger.info(f"Generation of {scene_id} cancelled")
            return self._store.set_status(scene_id, SceneStatus.FAILED, error=str(e))
        except Exception as e:
            if self._latest.get(scene_id) != token:
                return None
            logger.error(f"Generation failed for {scene_id}: {e}")
            return self._store.set_status(scene_id, SceneStatus.FAILED, error=str(e))
        finally:
            if self._is_current(scene_id, token):
                del self._inflight[scene_id]

        if self._latest.get(scene_id) != token:
            logger.info(f"Discarding stale result for {scene_id}")
            return None
        return self._record_result(scene, result)

    async def generate_all(self) -> List[Scene]:
        """Generate every scene one after another, in list order."""
        scenes = self._store.snapshot()
        for scene in scenes:
            self._store.set_status(scene.id, SceneStatus.GENERATING)

        finished: List[Scene] = []
        for index, scene in enumerate(scenes, 1):
            logger.info(f"[{index}/{len(scenes)}] Generating {scene.id}")
            updated = await self.generate_shot(scene.id)
            if updated is not None:
                finished.append(updated)
        return finished

    async def analyze_script(self) -> List[Scene]:
        """Fetch a structured prompt for every scene, one after another.

        The structured prompt replaces the free-text prompt for later
        structured generations; its short description becomes the new
        visual prompt. Scenes with a generation in flight only get their
        prompts updated; their status belongs to that generation.
        """
        analyzed: List[Scene] = []
        for scene in self._store.snapshot():
            busy = scene.id in self._inflight
            restore = (
                SceneStatus.COMPLETED
                if scene.status == SceneStatus.COMPLETED and scene.image_url
                else SceneStatus.PENDING
            )
            if not busy:
                self._store.set_status(scene.id, SceneStatus.GENERATING)

            try:
                structured = await self._analyze(scene)
            except Exception as e:
                if self._router.failure_policy == FailurePolicy.MARK_FAILED:
                    logger.error(f"Analysis failed for {scene.id}: {e}")
                    if busy or scene.id in self._inflight:
                        continue
                    failed = self._store.set_status(scene.id, SceneStatus.FAILED, error=str(e))
                    if failed is not None:
                        analyzed.append(failed)
                    continue
                logger.warning(f"Analysis failed for {scene.id}, using mock: {e}")
                structured = await self._router.mock_generator.mock_structured_prompt(
                    scene.body or scene.script_text
                )

            description = structured.get("short_description")
            self._store.update_prompt(
                scene.id,
                visual_prompt=description if isinstance(description, str) else None,
                structured_prompt=structured,
            )
            if busy or scene.id in self._inflight:
                updated = self._store.get(scene.id)
            else:
                updated = self._store.set_status(scene.id, restore)
            if updated is not None:
                analyzed.append(updated)
        return analyzed

    async def _analyze(self, scene: Scene) -> Dict[str, Any]:
        data = await asyncio.wait_for(
            self._router.client.generate_structured_prompt(scene.base_prompt),
            timeout=self._analysis_timeout,
        )
        return parse_structured_prompt(data)

"""Screenplay segmentation into scene records."""

import asyncio
import logging
import re
import zlib
from typing import List, Optional, Sequence

from ..models import Scene, SceneStatus
from .inference import SEED_RANGE, infer_parameters

logger = logging.getLogger(__name__)

SCENE_HEADING = re.compile(r"^(?:INT\.|EXT\.|INT/EXT\.|I/E\.)[ \t]+\S.*$", re.MULTILINE)
EMPTY_BODY_PROMPT = "A cinematic shot..."


def scene_id_for(index: int) -> str:
    """Positional identity of the scene at ``index``."""
    return f"scene-{index + 1}"


def _stable_seed(scene_id: str, heading: str) -> int:
    return zlib.crc32(f"{scene_id}|{heading}".encode("utf-8")) % SEED_RANGE


class ScriptSegmenter:
    """Split screenplay text on scene headings.

    Identity is positional: the n-th heading is always ``scene-n``. When a
    scene with that id already exists its generation state is carried over
    and only the heading and body are refreshed.
    """

    def segment(self, text: str, previous_scenes: Optional[Sequence[Scene]] = None) -> List[Scene]:
        """Parse ``text`` and reconcile it against ``previous_scenes``.

        Returns an empty list for blank input. When the text has content but
        no heading yet (the writer is mid-edit), the previous scenes are
        returned unchanged.
        """
        previous = list(previous_scenes or [])
        matches = list(SCENE_HEADING.finditer(text or ""))

        if not matches:
            if not (text or "").strip():
                return []
            logger.debug("No scene headings found, keeping previous scenes")
            return previous

        by_id = {scene.id: scene for scene in previous}
        scenes: List[Scene] = []

        for index, match in enumerate(matches):
            heading = match.group(0).strip()
            end = matches[index + 1].start() if index + 1 < len(matches) else len(text)
            body = text[match.end():end].strip()
            scene_id = scene_id_for(index)

            existing = by_id.get(scene_id)
            if existing is not None:
                scenes.append(existing.model_copy(update={
                    "script_text": heading,
                    "body": body,
                    "visual_prompt": existing.visual_prompt or body or EMPTY_BODY_PROMPT,
                }))
                continue

            scenes.append(Scene(
                id=scene_id,
                script_text=heading,
                body=body,
                visual_prompt=body or EMPTY_BODY_PROMPT,
                status=SceneStatus.PENDING,
                parameters=infer_parameters(
                    f"{heading}\n{body}",
                    seed=_stable_seed(scene_id, heading),
                ),
            ))

        logger.debug(f"Segmented script into {len(scenes)} scenes")
        return scenes


class DebouncedSegmenter:
    """Re-segment the script once edits have been quiet for ``delay`` seconds.

    Each call to :meth:`schedule` cancels the parse that is still waiting and
    starts a new timer, so only the last edit is parsed. The result is
    applied to the store with ``store.reconcile``.
    """

    def __init__(self, store, segmenter: Optional[ScriptSegmenter] = None, delay: float = 0.8) -> None:
        self._store = store
        self._segmenter = segmenter or ScriptSegmenter()
        self._delay = delay
        self._pending: Optional[asyncio.Task] = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """True while a parse is scheduled but has not run yet."""
        return self._pending is not None and not self._pending.done()

    def schedule(self, text: str) -> None:
        """Schedule a parse of ``text``, replacing any pending one.

        Must be called from within a running event loop.
        """
        self.cancel()
        self._pending = asyncio.get_running_loop().create_task(self._run(text))

    def cancel(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def flush(self) -> None:
        """Wait for the pending parse, if any, to be applied."""
        task = self._pending
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    def apply_now(self, text: str) -> List[Scene]:
        """Parse immediately, bypassing the timer."""
        self.cancel()
        scenes = self._segmenter.segment(text, self._store.snapshot())
        self._store.reconcile(scenes)
        return scenes

    async def _run(self, text: str) -> None:
        await asyncio.sleep(self._delay)
        scenes = self._segmenter.segment(text, self._store.snapshot())
        self._store.reconcile(scenes)
        logger.info(f"Script re-parsed: {len(scenes)} scenes")

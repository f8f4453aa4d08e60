"""Routing of scene generations to the Reimagine or structured pipeline."""

import asyncio
import logging
import uuid
from enum import Enum
from typing import Any, Dict, List, Optional

from ..config import config
from ..exceptions import GenerationCancelledError, GenerationTimeoutError
from ..models import FiboParameters, Scene
from ..models.parameters import merge_parameters
from .bria import BriaClient
from .mock import FallbackMockGenerator
from .polling import AsyncPollingController
from .responses import (
    GenerationResult,
    JobSucceeded,
    SubmissionAccepted,
    parse_reimagine,
    parse_submission,
)

logger = logging.getLogger(__name__)


class Pipeline(str, Enum):
    """Remote pipelines a scene can be routed to."""
    REIMAGINE = "reimagine"
    STRUCTURED = "structured"


class FailurePolicy(str, Enum):
    """What a failed generation turns into."""
    MOCK = "mock"
    MARK_FAILED = "mark-failed"


def _humanize(value: str) -> str:
    return value.replace("_", " ")


def enrich_prompt(base_prompt: str, parameters: Optional[FiboParameters]) -> str:
    """Fold parameter sections into a single natural-language prompt.

    Order: lighting type, direction and color temperature; camera angle and
    distance; style medium; color grading.
    """
    descriptions: List[str] = [base_prompt]
    if parameters is None:
        return base_prompt

    lighting = parameters.lighting
    if lighting:
        if lighting.type:
            descriptions.append(f"{lighting.type} lighting")
        if lighting.direction:
            descriptions.append(f"{lighting.direction} light")
        if lighting.color_temperature:
            descriptions.append(f"{lighting.color_temperature} tones")

    camera = parameters.camera
    if camera:
        if camera.angle:
            descriptions.append(_humanize(camera.angle))
        if camera.distance:
            descriptions.append(_humanize(camera.distance))

    if parameters.style and parameters.style.medium:
        descriptions.append(f"in the style of {_humanize(parameters.style.medium)}")

    if parameters.color and parameters.color.grading:
        descriptions.append(f"{parameters.color.grading} color grading")

    return ", ".join(descriptions)


class GenerationRouter:
    """Send a scene to the pipeline that fits it and normalize the outcome.

    Scenes with a structure reference image go to Reimagine, everything else
    goes to the asynchronous structured pipeline. With the ``mock`` failure
    policy every failure is replaced by a fallback result; with
    ``mark-failed`` the failure is raised for the caller to record.
    """

    def __init__(
        self,
        client: Optional[BriaClient] = None,
        poller: Optional[AsyncPollingController] = None,
        mock: Optional[FallbackMockGenerator] = None,
        failure_policy: Optional[FailurePolicy] = None,
        structure_ref_influence: Optional[float] = None,
    ) -> None:
        self._client = client or BriaClient()
        self._poller = poller or AsyncPollingController(self._client.fetch_status)
        self._mock = mock or FallbackMockGenerator()
        self._failure_policy = FailurePolicy(failure_policy or config.failure_policy)
        self._structure_ref_influence = (
            structure_ref_influence
            if structure_ref_influence is not None
            else config.structure_ref_influence
        )

    @property
    def failure_policy(self) -> FailurePolicy:
        return self._failure_policy

    @property
    def client(self) -> BriaClient:
        return self._client

    @property
    def mock_generator(self) -> FallbackMockGenerator:
        return self._mock

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def structure_reference(self, scene: Scene) -> Optional[str]:
        """Image the composition is pinned to, if any."""
        if scene.parameters.structure_image_url:
            return scene.parameters.structure_image_url
        if scene.lock_composition and scene.image_url:
            return scene.image_url
        return None

    def choose_pipeline(self, scene: Scene) -> Pipeline:
        if self.structure_reference(scene):
            return Pipeline.REIMAGINE
        return Pipeline.STRUCTURED

    def build_reimagine_payload(self, scene: Scene) -> Dict[str, Any]:
        influence = scene.parameters.structure_ref_influence
        if influence is None:
            influence = self._structure_ref_influence
        return {
            "prompt": enrich_prompt(scene.base_prompt, scene.parameters),
            "structure_image_url": self.structure_reference(scene),
            "structure_ref_influence": influence,
            "num_results": 1,
            "sync": True,
            "fast": False,
        }

    def build_structured_payload(self, scene: Scene) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": "fibo",
            "prompt_content_moderation": True,
            "visual_output_content_moderation": True,
        }
        payload.update(scene.parameters.to_payload())
        payload.pop("structure_image_url", None)
        payload.pop("structure_ref_influence", None)
        payload.pop("structured_prompt", None)

        seed = scene.effective_seed
        if seed is not None:
            payload["seed"] = seed

        structured_prompt = scene.structured_prompt or scene.parameters.structured_prompt
        if structured_prompt:
            logger.debug(f"Using decoupled structured_prompt flow for {scene.id}")
            payload["structured_prompt"] = structured_prompt
        payload["prompt"] = scene.base_prompt
        return payload

    # ------------------------------------------------------------------
    # Pipelines
    # ------------------------------------------------------------------

    async def dispatch(
        self,
        scene: Scene,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> GenerationResult:
        """Run the routed pipeline without any fallback.

        Raises:
            GenerationError: On any transport, status, shape, timeout or
                cancellation failure.
        """
        if cancel_event is not None and cancel_event.is_set():
            raise GenerationCancelledError(f"Generation of {scene.id} cancelled")

        pipeline = self.choose_pipeline(scene)
        logger.info(f"Generating {scene.id} with the {pipeline.value} pipeline")
        if pipeline == Pipeline.REIMAGINE:
            return await self._run_reimagine(scene)
        return await self._run_structured(scene, cancel_event)

    async def _run_reimagine(self, scene: Scene) -> GenerationResult:
        payload = self.build_reimagine_payload(scene)
        logger.debug(f"Enriched prompt: {payload['prompt']}")
        job = parse_reimagine(await self._client.reimagine(payload))
        parameters = merge_parameters(scene.parameters, {
            "structure_image_url": payload["structure_image_url"],
            "structure_ref_influence": payload["structure_ref_influence"],
        })
        return GenerationResult(
            id=job.request_id or str(uuid.uuid4()),
            url=job.url,
            prompt=payload["prompt"],
            parameters=parameters,
            seed=scene.effective_seed,
            pipeline=Pipeline.REIMAGINE.value,
        )

    async def _run_structured(
        self,
        scene: Scene,
        cancel_event: Optional[asyncio.Event],
    ) -> GenerationResult:
        payload = self.build_structured_payload(scene)
        submission = parse_submission(await self._client.submit_generation(payload))

        if isinstance(submission, SubmissionAccepted):
            logger.info(f"Async request started. Polling status at: {submission.status_url}")
            job = await self._poller.poll(submission.status_url, cancel_event)
            if job is None:
                raise GenerationTimeoutError(self._poller.max_attempts, self._poller.interval)
            request_id = submission.request_id
        else:
            job = submission
            request_id = submission.request_id

        return self._structured_result(scene, payload, job, request_id)

    def _structured_result(
        self,
        scene: Scene,
        payload: Dict[str, Any],
        job: JobSucceeded,
        request_id: Optional[str],
    ) -> GenerationResult:
        return GenerationResult(
            id=request_id or job.request_id or str(uuid.uuid4()),
            url=job.url,
            prompt=payload["prompt"],
            parameters=scene.parameters,
            seed=job.seed if job.seed is not None else payload.get("seed"),
            structured_prompt=job.structured_prompt,
            pipeline=Pipeline.STRUCTURED.value,
        )

    async def generate(
        self,
        scene: Scene,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> GenerationResult:
        """Generate an image for ``scene`` applying the failure policy.

        Cancellation is always raised, whatever the policy.
        """
        try:
            return await self.dispatch(scene, cancel_event)
        except GenerationCancelledError:
            raise
        except Exception as e:
            if self._failure_policy == FailurePolicy.MARK_FAILED:
                raise
            logger.error(f"Generation failed for {scene.id}, using mock: {e}")
            result = await self._mock.mock(scene.base_prompt, scene.parameters)
            result.metadata["error"] = str(e)
            return result

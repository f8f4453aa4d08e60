"""Deterministic stand-in images used when the remote pipelines fail."""

import asyncio
import logging
import uuid
from typing import Any, Dict, Optional

from ..config import config
from ..models import FiboParameters
from .responses import GenerationResult

logger = logging.getLogger(__name__)

DEFAULT_IMAGE = "https://images.unsplash.com/photo-1485846234645-a62644f84728?q=80&w=2659&auto=format&fit=crop"
LOW_ANGLE_IMAGE = "https://images.unsplash.com/photo-1478720568477-152d9b164e63?q=80&w=2500"
NOIR_IMAGE = "https://images.unsplash.com/photo-1440404653325-ab127d49abc1?q=80&w=2670"
ANIME_IMAGE = "https://images.unsplash.com/photo-1578632767115-351597cf2477?q=80&w=2670"


def _section_value(parameters: Any, section: str, key: str) -> Any:
    """Read ``parameters.<section>.<key>`` from a model, a dict or nothing."""
    if parameters is None:
        return None
    container = parameters.get(section) if isinstance(parameters, dict) else getattr(parameters, section, None)
    if container is None:
        return None
    if isinstance(container, dict):
        return container.get(key)
    return getattr(container, key, None)


def select_mock_image(parameters: Any) -> str:
    """Pick a placeholder image from the parameters.

    Precedence: anime style, then noir lighting, then low camera angle.
    """
    if _section_value(parameters, "style", "medium") == "anime":
        return ANIME_IMAGE
    if _section_value(parameters, "lighting", "type") == "noir":
        return NOIR_IMAGE
    if _section_value(parameters, "camera", "angle") == "low_angle":
        return LOW_ANGLE_IMAGE
    return DEFAULT_IMAGE


def _as_parameters(parameters: Any) -> FiboParameters:
    if isinstance(parameters, FiboParameters):
        return parameters
    if isinstance(parameters, dict):
        try:
            return FiboParameters.model_validate(parameters)
        except ValueError as e:
            logger.debug(f"Mock received unparseable parameters: {e}")
    return FiboParameters()


class FallbackMockGenerator:
    """Produces a placeholder :class:`GenerationResult` after a fixed delay.

    It never raises, which makes it the last resort for every failing path.
    """

    def __init__(self, latency: Optional[float] = None) -> None:
        self._latency = latency if latency is not None else config.mock_latency

    @property
    def latency(self) -> float:
        return self._latency

    async def mock(self, prompt: str, parameters: Any = None) -> GenerationResult:
        """Return a placeholder result for ``prompt``."""
        if self._latency > 0:
            await asyncio.sleep(self._latency)

        params = _as_parameters(parameters)
        url = select_mock_image(parameters)
        logger.info(f"Using mock image for prompt: {str(prompt)[:50]}...")
        return GenerationResult(
            id=str(uuid.uuid4()),
            url=url,
            prompt=str(prompt or ""),
            parameters=params,
            seed=params.seed,
            pipeline="mock",
            is_mock=True,
        )

    async def mock_structured_prompt(self, prompt: str) -> Dict[str, Any]:
        """Placeholder for the structured prompt analysis endpoint."""
        return {
            "short_description": f"Cinematic shot of {prompt}",
            "camera_angle": "medium_shot",
            "lighting": "cinematic_lighting",
            "style": "photorealistic",
        }

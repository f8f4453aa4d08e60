"""
Tests for the Fallback Mock Generator

Tests for producer/services/mock.py
"""

import pytest

from producer.models import FiboParameters
from producer.services import FallbackMockGenerator, GenerationResult
from producer.services.mock import (
    ANIME_IMAGE,
    DEFAULT_IMAGE,
    LOW_ANGLE_IMAGE,
    NOIR_IMAGE,
    select_mock_image,
)


class TestSelectMockImage:
    """Tests for placeholder image selection."""

    def test_precedence(self):
        """Test anime beats noir, which beats low angle."""
        params = {
            "style": {"medium": "anime"},
            "lighting": {"type": "noir"},
            "camera": {"angle": "low_angle"},
        }
        assert select_mock_image(params) == ANIME_IMAGE

        del params["style"]
        assert select_mock_image(params) == NOIR_IMAGE

        del params["lighting"]
        assert select_mock_image(params) == LOW_ANGLE_IMAGE

        del params["camera"]
        assert select_mock_image(params) == DEFAULT_IMAGE

    def test_model_parameters(self):
        params = FiboParameters.model_validate({"lighting": {"type": "noir"}})

        assert select_mock_image(params) == NOIR_IMAGE


class TestMock:
    """Tests for FallbackMockGenerator.mock."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [
        None,
        {},
        {"camera": "not-a-section", "seed": "abc"},
        FiboParameters(seed=5),
    ])
    async def test_never_fails(self, instant_mock, params):
        """Test any parameters give a well-formed result."""
        result = await instant_mock.mock("A quiet desk", params)

        assert isinstance(result, GenerationResult)
        assert result.url
        assert result.id
        assert result.prompt == "A quiet desk"
        assert result.is_mock is True
        assert isinstance(result.parameters, FiboParameters)

    @pytest.mark.asyncio
    async def test_keeps_seed(self, instant_mock):
        result = await instant_mock.mock("x", FiboParameters(seed=5))

        assert result.seed == 5

    @pytest.mark.asyncio
    async def test_structured_prompt_placeholder(self, instant_mock):
        structured = await instant_mock.mock_structured_prompt("a desk")

        assert structured["short_description"] == "Cinematic shot of a desk"

    def test_default_latency_from_config(self):
        from producer.config import config

        assert FallbackMockGenerator().latency == config.mock_latency

"""
Pytest Configuration and Fixtures

Shared fixtures for all tests.
"""

import random

import pytest

from producer.models import FiboParameters, Scene
from producer.models.parameters import CameraSettings, LightingSettings
from producer.services import (
    AsyncPollingController,
    FailurePolicy,
    FallbackMockGenerator,
    GenerationRouter,
)
from producer.store import SceneStore


SAMPLE_SCRIPT = "INT. ROOM - DAY\n\nA quiet desk.\n\nEXT. STREET - NIGHT\n\nRain falls."


class FakeBriaClient:
    """In-memory stand-in for BriaClient that records every call."""

    def __init__(self, submit=None, statuses=None, reimagine=None, analysis=None):
        self.submit_response = submit if submit is not None else {
            "status_url": "https://engine.test/status/req-1",
            "request_id": "req-1",
        }
        self.statuses = list(statuses or [])
        self.reimagine_response = reimagine
        self.analysis_response = analysis
        self.submitted = []
        self.polled = []
        self.reimagined = []
        self.analyzed = []
        self.closed = False

    async def submit_generation(self, payload):
        self.submitted.append(payload)
        if isinstance(self.submit_response, Exception):
            raise self.submit_response
        return self.submit_response

    async def fetch_status(self, status_url):
        self.polled.append(status_url)
        # the last queued status repeats forever
        if len(self.statuses) > 1:
            status = self.statuses.pop(0)
        elif self.statuses:
            status = self.statuses[0]
        else:
            status = {"status": "IN_PROGRESS"}
        if isinstance(status, Exception):
            raise status
        return status

    async def reimagine(self, payload):
        self.reimagined.append(payload)
        if isinstance(self.reimagine_response, Exception):
            raise self.reimagine_response
        return self.reimagine_response

    async def generate_structured_prompt(self, prompt):
        self.analyzed.append(prompt)
        if isinstance(self.analysis_response, Exception):
            raise self.analysis_response
        return self.analysis_response

    def close(self):
        self.closed = True


def completed_status(url="https://cdn.test/image.png", seed=7, structured_prompt=None):
    result = {"urls": [url], "seed": seed}
    if structured_prompt is not None:
        result["structured_prompt"] = structured_prompt
    return {"status": "COMPLETED", "result": result}


@pytest.fixture
def sample_script() -> str:
    """Two-scene screenplay."""
    return SAMPLE_SCRIPT


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def make_scene():
    """Factory for scenes with sensible defaults."""
    def _make(scene_id="scene-1", **overrides):
        data = {
            "id": scene_id,
            "script_text": "INT. ROOM - DAY",
            "body": "A quiet desk.",
            "visual_prompt": "A quiet desk.",
            "parameters": FiboParameters(
                camera=CameraSettings(shot_type="medium_shot", angle="eye_level"),
                lighting=LightingSettings(type="natural"),
                seed=11,
            ),
        }
        data.update(overrides)
        return Scene(**data)
    return _make


@pytest.fixture
def store(make_scene, rng) -> SceneStore:
    """Store holding two pending scenes."""
    return SceneStore(
        [make_scene("scene-1"), make_scene("scene-2", script_text="EXT. STREET - NIGHT")],
        rng=rng,
    )


@pytest.fixture
def fake_client() -> FakeBriaClient:
    return FakeBriaClient(statuses=[{"status": "IN_PROGRESS"}, completed_status()])


@pytest.fixture
def instant_mock() -> FallbackMockGenerator:
    """Mock generator without artificial latency."""
    return FallbackMockGenerator(latency=0)


@pytest.fixture
def make_router(instant_mock):
    """Factory for routers wired to a fake client with zero-delay polling."""
    def _make(client, policy=FailurePolicy.MOCK, max_attempts=5, interval=0):
        poller = AsyncPollingController(client.fetch_status, interval=interval, max_attempts=max_attempts)
        return GenerationRouter(
            client=client,
            poller=poller,
            mock=instant_mock,
            failure_policy=policy,
            structure_ref_influence=0.7,
        )
    return _make

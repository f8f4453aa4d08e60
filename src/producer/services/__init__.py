"""External service integrations."""

from .bria import BriaClient
from .mock import FallbackMockGenerator
from .polling import AsyncPollingController
from .responses import GenerationResult, JobFailed, JobPending, JobSucceeded, SubmissionAccepted
from .router import FailurePolicy, GenerationRouter, Pipeline, enrich_prompt

__all__ = [
    "BriaClient",
    "FallbackMockGenerator",
    "AsyncPollingController",
    "GenerationResult",
    "JobFailed",
    "JobPending",
    "JobSucceeded",
    "SubmissionAccepted",
    "FailurePolicy",
    "GenerationRouter",
    "Pipeline",
    "enrich_prompt",
]

"""Parsing of Bria API responses into explicit result variants."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from ..exceptions import ResponseShapeError
from ..models import FiboParameters

logger = logging.getLogger(__name__)


@dataclass
class JobSucceeded:
    """A finished job with a usable image."""

    url: str
    seed: Optional[int] = None
    structured_prompt: Optional[Dict[str, Any]] = None
    request_id: Optional[str] = None


@dataclass
class JobPending:
    """The job is still queued or running."""

    status: str = "PENDING"


@dataclass
class JobFailed:
    """The remote service gave up on the job."""

    reason: str
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SubmissionAccepted:
    """An asynchronous submission; poll ``status_url`` for the outcome."""

    status_url: str
    request_id: Optional[str] = None


JobStatus = Union[JobSucceeded, JobPending, JobFailed]


@dataclass
class GenerationResult:
    """Normalized output of any pipeline, real or mocked."""

    id: str
    url: str
    prompt: str
    parameters: FiboParameters
    seed: Optional[int] = None
    structured_prompt: Optional[Dict[str, Any]] = None
    pipeline: str = "structured"
    is_mock: bool = False
    metadata: dict = field(default_factory=dict)


def _expect_mapping(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ResponseShapeError(
            f"Expected a JSON object for {what}, got {type(data).__name__}",
            {"response": repr(data)[:200]},
        )
    return data


def coerce_structured_prompt(value: Any) -> Optional[Dict[str, Any]]:
    """Return a structured prompt as a dict, decoding it from a JSON string if needed."""
    if value is None:
        return None
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring structured prompt that is not valid JSON: {e}")
            return None
        if isinstance(decoded, dict):
            return decoded
    logger.warning(f"Ignoring structured prompt of type {type(value).__name__}")
    return None


def extract_image_url(item: Any) -> Optional[str]:
    """Pull an image URL out of a result entry (``urls[0]``, ``url`` or a bare string)."""
    if isinstance(item, str):
        return item or None
    if not isinstance(item, dict):
        return None
    urls = item.get("urls")
    if isinstance(urls, list) and urls and isinstance(urls[0], str) and urls[0]:
        return urls[0]
    url = item.get("url")
    if isinstance(url, str) and url:
        return url
    return None


def _first_result(data: Dict[str, Any]) -> Any:
    result = data.get("result")
    if isinstance(result, list):
        return result[0] if result else None
    return result


def _to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _result_to_success(item: Any, request_id: Optional[str] = None) -> JobSucceeded:
    url = extract_image_url(item)
    if not url:
        raise ResponseShapeError(
            "Completed response has no image URL",
            {"result": repr(item)[:200]},
        )
    seed = None
    structured_prompt = None
    if isinstance(item, dict):
        seed = _to_int(item.get("seed"))
        structured_prompt = coerce_structured_prompt(item.get("structured_prompt"))
        request_id = request_id or item.get("uuid")
    return JobSucceeded(
        url=url,
        seed=seed,
        structured_prompt=structured_prompt,
        request_id=request_id,
    )


def parse_status(data: Any) -> JobStatus:
    """Interpret a status endpoint response.

    ``COMPLETED`` becomes :class:`JobSucceeded` (or raises
    :class:`ResponseShapeError` when it carries no URL), ``FAILED`` becomes
    :class:`JobFailed`, anything else is :class:`JobPending`.
    """
    data = _expect_mapping(data, "status response")
    status = str(data.get("status") or "UNKNOWN").upper()

    if status == "COMPLETED":
        return _result_to_success(_first_result(data), data.get("request_id"))
    if status == "FAILED":
        error = data.get("error") or data.get("message") or "Generation failed with status: FAILED"
        if isinstance(error, dict):
            error = error.get("message") or json.dumps(error)
        return JobFailed(reason=str(error), raw=data)
    return JobPending(status=status)


def parse_submission(data: Any) -> Union[SubmissionAccepted, JobSucceeded]:
    """Interpret the response to a structured generation request.

    Raises:
        ResponseShapeError: If the response has neither a status URL nor an image.
    """
    data = _expect_mapping(data, "generation response")
    if data.get("warning"):
        logger.warning(f"Bria IP warning: {data['warning']}")

    request_id = data.get("request_id") or data.get("id")
    status_url = data.get("status_url")
    if isinstance(status_url, str) and status_url:
        return SubmissionAccepted(status_url=status_url, request_id=request_id)

    image_urls = data.get("image_urls")
    if isinstance(image_urls, list) and image_urls:
        return JobSucceeded(url=image_urls[0], request_id=request_id)
    if isinstance(data.get("output_url"), str) and data["output_url"]:
        return JobSucceeded(url=data["output_url"], request_id=request_id)
    if data.get("result"):
        return _result_to_success(_first_result(data), request_id)

    raise ResponseShapeError(
        "Generation response has neither status_url nor an image",
        {"keys": sorted(data.keys())},
    )


def parse_reimagine(data: Any) -> JobSucceeded:
    """Interpret a synchronous Reimagine response."""
    data = _expect_mapping(data, "reimagine response")
    return _result_to_success(_first_result(data))


def parse_structured_prompt(data: Any) -> Dict[str, Any]:
    """Extract ``result.structured_prompt`` from an analysis response."""
    data = _expect_mapping(data, "structured prompt response")
    result = data.get("result")
    if not isinstance(result, dict):
        raise ResponseShapeError("Structured prompt response has no result object")
    structured = coerce_structured_prompt(result.get("structured_prompt"))
    if structured is None:
        raise ResponseShapeError("Structured prompt response has no usable structured_prompt")
    return structured

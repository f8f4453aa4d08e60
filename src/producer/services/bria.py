"""Bria image generation API client."""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import requests

from ..config import config
from ..exceptions import BriaAPIError, ResponseShapeError, TransportError

logger = logging.getLogger(__name__)


class BriaClient:
    """HTTP client for the Bria endpoints used by the generation pipelines.

    Calls are made with a blocking ``requests.Session`` and exposed as
    coroutines that run in a worker thread, so the event loop keeps
    polling other scenes while a request is in flight.

    Rate limiting (HTTP 429) and connection failures are retried with
    exponential backoff; every other non-2xx status raises
    :class:`BriaAPIError` right away.
    """

    GENERATE_PATH = "/v2/image/generate"
    REIMAGINE_PATH = "/v1/reimagine"
    STRUCTURED_PROMPT_PATH = "/v2/structured_prompt/generate"

    DEFAULT_MAX_RETRIES = 3
    DEFAULT_RETRY_DELAY = 1.0

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        proxy_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize the Bria client.

        Args:
            api_key: Bria API token. Defaults to BRIA_API_KEY env var.
            base_url: API base URL. Defaults to BRIA_BASE_URL env var.
            proxy_url: Local proxy exposing /api/generate and /api/poll. When
                set, generation and polling go through it without credentials.
            timeout: Per-request timeout in seconds.
            max_retries: Maximum attempts for rate-limited or unreachable calls.
            retry_delay: Base delay between retries (exponential backoff).
            session: Optional pre-configured requests session.
        """
        self._api_key = api_key or config.bria_api_key
        self._base_url = (base_url or config.bria_base_url).rstrip("/")
        self._proxy_url = (proxy_url if proxy_url is not None else config.proxy_url).rstrip("/")
        self._timeout = timeout if timeout is not None else config.request_timeout
        self._max_retries = max(1, max_retries)
        self._retry_delay = retry_delay
        self._session = session or requests.Session()

        if not self._api_key:
            raise ValueError("Bria API key not provided. Set BRIA_API_KEY env var.")

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def uses_proxy(self) -> bool:
        return bool(self._proxy_url)

    def _headers(self, authenticated: bool = True) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if authenticated:
            headers["api_token"] = self._api_key
        return headers

    def _request(
        self,
        method: str,
        url: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
        authenticated: bool = True,
    ) -> Any:
        """Send one request, retrying transient failures, and decode the JSON body."""
        for attempt in range(self._max_retries):
            try:
                logger.debug(
                    f"{method} {url} (attempt {attempt + 1}/{self._max_retries})"
                )
                response = self._session.request(
                    method,
                    url,
                    json=payload,
                    params=params,
                    headers=self._headers(authenticated),
                    timeout=self._timeout,
                )
            except (requests.ConnectionError, requests.Timeout) as e:
                if attempt == self._max_retries - 1:
                    raise TransportError(f"Could not reach {url}: {e}", {"url": url}) from e
                delay = self._retry_delay * (2**attempt)
                logger.warning(f"Connection error: {e}. Retrying in {delay:.1f}s...")
                time.sleep(delay)
                continue
            except requests.RequestException as e:
                raise TransportError(f"Request to {url} failed: {e}", {"url": url}) from e

            if response.status_code == 429 and attempt < self._max_retries - 1:
                delay = self._retry_delay * (2**attempt)
                logger.warning(f"Rate limited. Retrying in {delay:.1f}s...")
                time.sleep(delay)
                continue

            if not 200 <= response.status_code < 300:
                logger.error(f"Bria API error: {response.status_code}: {response.text[:500]}")
                raise BriaAPIError(response.status_code, response.text, url=url)

            try:
                return response.json()
            except ValueError as e:
                raise ResponseShapeError(
                    f"Response from {url} is not valid JSON",
                    {"body": response.text[:200]},
                ) from e

        raise TransportError(f"Max retries exceeded for {url}", {"url": url})

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def submit_generation(self, payload: Dict[str, Any]) -> Any:
        """POST a structured generation request."""
        if self._proxy_url:
            url = f"{self._proxy_url}/api/generate"
            return await asyncio.to_thread(self._request, "POST", url, payload, None, False)
        url = f"{self._base_url}{self.GENERATE_PATH}"
        return await asyncio.to_thread(self._request, "POST", url, payload)

    async def fetch_status(self, status_url: str) -> Any:
        """GET the status of an asynchronous job."""
        if self._proxy_url:
            url = f"{self._proxy_url}/api/poll"
            return await asyncio.to_thread(
                self._request, "GET", url, None, {"url": status_url}, False
            )
        return await asyncio.to_thread(self._request, "GET", status_url)

    async def reimagine(self, payload: Dict[str, Any]) -> Any:
        """POST a synchronous structure-preserving generation request."""
        url = f"{self._base_url}{self.REIMAGINE_PATH}"
        return await asyncio.to_thread(self._request, "POST", url, payload)

    async def generate_structured_prompt(self, prompt: str) -> Any:
        """POST a prompt to the structured prompt analysis endpoint."""
        url = f"{self._base_url}{self.STRUCTURED_PROMPT_PATH}"
        return await asyncio.to_thread(self._request, "POST", url, {"prompt": prompt})

    def close(self) -> None:
        self._session.close()

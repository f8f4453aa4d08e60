"""Bounded polling of asynchronous generation jobs."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..config import config
from ..exceptions import BriaAPIError, GenerationCancelledError, GenerationFailedError
from .responses import JobFailed, JobSucceeded, parse_status

logger = logging.getLogger(__name__)

StatusFetcher = Callable[[str], Awaitable[object]]


class AsyncPollingController:
    """Poll a job status URL until it finishes or the attempt budget runs out.

    The controller fetches the status at most ``max_attempts`` times, waiting
    ``interval`` seconds between fetches (never after the last one).

    - ``COMPLETED`` returns a :class:`JobSucceeded`.
    - ``FAILED`` raises :class:`GenerationFailedError`.
    - Anything else, including a non-2xx answer from the status endpoint,
      counts as still pending.
    - Running out of attempts returns ``None``.
    """

    def __init__(
        self,
        fetch_status: StatusFetcher,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ) -> None:
        self._fetch_status = fetch_status
        self._interval = interval if interval is not None else config.poll_interval
        self._max_attempts = max_attempts if max_attempts is not None else config.poll_max_attempts

        if self._max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self._interval < 0:
            raise ValueError("interval must not be negative")

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    async def poll(
        self,
        status_url: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Optional[JobSucceeded]:
        """Poll ``status_url``.

        Args:
            status_url: Status resource returned by the submission.
            cancel_event: Set it to abandon polling.

        Returns:
            The finished job, or None if no terminal status was seen in time.

        Raises:
            GenerationFailedError: If the job reports FAILED.
            GenerationCancelledError: If ``cancel_event`` is set.
            ResponseShapeError: If a COMPLETED job carries no image URL.
        """
        for attempt in range(1, self._max_attempts + 1):
            if cancel_event is not None and cancel_event.is_set():
                raise GenerationCancelledError(f"Polling of {status_url} cancelled")

            try:
                data = await self._fetch_status(status_url)
            except BriaAPIError as e:
                logger.debug(f"[Poll {attempt}/{self._max_attempts}] status endpoint error: {e}")
            else:
                job = parse_status(data)
                logger.debug(f"[Poll {attempt}/{self._max_attempts}] Status: {getattr(job, 'status', type(job).__name__)}")

                if isinstance(job, JobSucceeded):
                    logger.info(f"Job completed after {attempt} poll(s)")
                    return job
                if isinstance(job, JobFailed):
                    logger.error(f"Job failed: {job.reason}")
                    raise GenerationFailedError(job.reason, {"status_url": status_url})

            if attempt < self._max_attempts:
                await self._wait(cancel_event)

        logger.warning(
            f"Polling timed out after {self._max_attempts * self._interval:.0f} seconds"
        )
        return None

    async def _wait(self, cancel_event: Optional[asyncio.Event]) -> None:
        if cancel_event is None:
            await asyncio.sleep(self._interval)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=self._interval)
        except asyncio.TimeoutError:
            return
        raise GenerationCancelledError("Polling cancelled")

"""httpx transport with bounded exponential backoff and cancellation."""

import asyncio
from dataclasses import dataclass
from typing import Optional

import httpx

from consultant.logging_config import get_logger
from consultant.services.errors import Cancelled, ExhaustedRetries, TransportError, UpstreamStatus

logger = get_logger("http_client")


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 5.0


def backoff_delay(attempt: int, config: RetryConfig) -> float:
    """Delay to wait after the given failed attempt (1-based)."""
    return min(config.base_delay * 2 ** (attempt - 1), config.max_delay)


async def wait_or_cancel(delay: float, cancel: Optional[asyncio.Event]) -> None:
    """Sleep for ``delay`` seconds, raising Cancelled as soon as ``cancel`` is set."""
    if cancel is None:
        await asyncio.sleep(delay)
        return
    if cancel.is_set():
        raise Cancelled("cancelled before wait")
    try:
        await asyncio.wait_for(cancel.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return
    raise Cancelled("cancelled during retry wait")


class RetryingTransport:
    """Send a request until it returns 200 or the attempt budget runs out.

    Any httpx error and any status other than exactly 200 count as a failed
    attempt. The same request object is re-sent on every attempt, so its
    body must be bytes rather than a one-shot stream.
    """

    def __init__(self, client: httpx.AsyncClient, config: Optional[RetryConfig] = None, name: str = "upstream"):
        self.client = client
        self.config = config or RetryConfig()
        self.name = name

    async def execute(self, request: httpx.Request, cancel: Optional[asyncio.Event] = None) -> bytes:
        last_error: Optional[Exception] = None
        attempts = self.config.max_attempts

        for attempt in range(1, attempts + 1):
            if cancel is not None and cancel.is_set():
                raise Cancelled(f"{self.name} request cancelled")

            logger.debug(
                "Sending request",
                extra={"context": {"upstream": self.name, "method": request.method, "url": str(request.url), "attempt": attempt}},
            )
            try:
                response = await self._send(request, cancel)
            except httpx.HTTPError as exc:
                last_error = TransportError(f"failed to send request: {exc!r}")
                last_error.__cause__ = exc
            else:
                if response.status_code == 200:
                    logger.debug(
                        "Request completed",
                        extra={"context": {"upstream": self.name, "attempt": attempt}},
                    )
                    return response.content
                last_error = UpstreamStatus(response.status_code, response.text, str(request.url))

            if attempt == attempts:
                break

            delay = backoff_delay(attempt, self.config)
            logger.warning(
                "Request attempt failed, retrying",
                extra={
                    "context": {
                        "upstream": self.name,
                        "url": str(request.url),
                        "attempt": attempt,
                        "delay": delay,
                        "error": str(last_error),
                    }
                },
            )
            await wait_or_cancel(delay, cancel)

        logger.error(
            "Request failed after all attempts",
            extra={"context": {"upstream": self.name, "url": str(request.url), "attempts": attempts, "error": str(last_error)}},
        )
        raise ExhaustedRetries(attempts, last_error) from last_error

    async def _send(self, request: httpx.Request, cancel: Optional[asyncio.Event]) -> httpx.Response:
        if cancel is None:
            return await self.client.send(request)

        send_task = asyncio.ensure_future(self.client.send(request))
        cancel_task = asyncio.ensure_future(cancel.wait())
        try:
            done, _ = await asyncio.wait({send_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()
            if not send_task.done():
                send_task.cancel()

        if send_task in done:
            return send_task.result()

        try:
            await send_task
        except (asyncio.CancelledError, httpx.HTTPError):
            pass
        raise Cancelled(f"{self.name} request cancelled in flight")

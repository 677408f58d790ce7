"""
Inventory Client - Submitter
============================

Sends VIN + coordinate pairs to the inventory endpoint and classifies
the outcome of each attempt.

Usage:
    from vin_inventory.submission import InventoryClient, Coordinate

    async with InventoryClient() as client:
        result = await client.submit("1HGCM82633A104352", Coordinate(37.422, -122.084))
        print(result.status, result.message)

Retry policy:
    Network failures and 5xx responses are retried with exponential
    backoff (retry_delay * 2**attempt, capped at max_retry_delay).
    4xx responses, empty bodies and application failures are final.
"""

import asyncio
import json
import logging
from typing import Awaitable, Callable, Dict, Optional

import httpx

from ..config import SubmissionConfig, get_config
from ..exceptions import ConfigurationError
from .models import Coordinate, InventoryUpdateRequest, InventoryUpdateResponse
from .results import SubmissionResult

logger = logging.getLogger(__name__)


class InventoryClient:
    """
    Client for the inventory update endpoint.

    The underlying httpx.AsyncClient is a connection pool that is safe to
    share between overlapping submissions. Pass one in to share it with
    other components; otherwise the client creates and owns its own.

    Args:
        config: Endpoint and retry settings (global config if None)
        http_client: Borrowed httpx.AsyncClient (not closed by aclose)
        sleep: Backoff coroutine, injectable for tests
    """

    def __init__(
        self,
        config: Optional[SubmissionConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.config = config or get_config().submission

        if not self.config.base_url:
            raise ConfigurationError("base URL is empty", config_key="submission.base_url",
                                     expected="http(s) URL")
        if self.config.max_retries < 0:
            raise ConfigurationError(f"max_retries must be >= 0, got {self.config.max_retries}",
                                     config_key="submission.max_retries", expected=">= 0")
        self._check_endpoint_url(self.config.endpoint_url)

        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(self.config.timeout))
        self._sleep = sleep or asyncio.sleep

    @staticmethod
    def _check_endpoint_url(endpoint_url: str) -> None:
        """Reject URLs httpx cannot send to, before any submission is attempted."""
        try:
            url = httpx.URL(endpoint_url)
        except httpx.InvalidURL as e:
            raise ConfigurationError(f"invalid endpoint URL {endpoint_url!r}: {e}",
                                     config_key="submission.base_url", expected="http(s) URL") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise ConfigurationError(f"endpoint URL {endpoint_url!r} is not an absolute http(s) URL",
                                     config_key="submission.base_url", expected="http(s) URL")

    @property
    def endpoint_url(self) -> str:
        return self.config.endpoint_url

    async def submit(self, vin: str, coordinate: Optional[Coordinate]) -> SubmissionResult:
        """
        Report a VIN at a location.

        Args:
            vin: VIN candidate
            coordinate: Location fix, None when no fix could be obtained

        Returns:
            Classified SubmissionResult; LOCATION_UNAVAILABLE without any
            HTTP request when coordinate is None
        """
        if coordinate is None:
            logger.warning(f"Location unavailable, not submitting {vin}")
            return SubmissionResult.location_unavailable(vin)

        return await self.submit_request(InventoryUpdateRequest.create(vin, coordinate))

    async def submit_request(self, request: InventoryUpdateRequest) -> SubmissionResult:
        """Send a prepared request, retrying transient failures."""
        max_attempts = self.config.max_retries + 1

        for attempt in range(max_attempts):
            result = (await self._attempt(request)).with_attempts(attempt + 1)

            if result.is_success:
                logger.info(f"Inventory updated for {request.vin} at {request.coordinates}: {result.message}")
                return result

            if not result.is_retryable or attempt + 1 >= max_attempts:
                self._log_failure(result)
                return result

            delay = min(self.config.retry_delay * (2 ** attempt), self.config.max_retry_delay)
            logger.warning(
                "Retrying inventory update for %s after %s (attempt %d/%d, sleep %.2fs): %s",
                request.vin,
                result.status.value,
                attempt + 1,
                max_attempts,
                delay,
                result.message,
            )
            if delay > 0:
                await self._sleep(delay)

        raise AssertionError("unreachable")  # pragma: no cover

    async def _attempt(self, request: InventoryUpdateRequest) -> SubmissionResult:
        """Issue exactly one POST and classify the outcome."""
        vin = request.vin
        try:
            response = await self._http.post(
                self.endpoint_url,
                content=request.to_json().encode("utf-8"),
                headers=self._get_headers(),
            )
        except httpx.RequestError as e:
            return SubmissionResult.network_failure(vin, e)

        if not response.is_success:
            return SubmissionResult.server_rejected(vin, response.status_code)

        body = self._parse_body(response)
        if body is None:
            return SubmissionResult.empty_response_body(vin, response.status_code)

        logger.debug(f"Server response for {vin}: status={body.status!r}")
        if body.is_success:
            return SubmissionResult.success(vin, body.message, response.status_code)
        return SubmissionResult.application_failure(vin, body.message, response.status_code)

    @staticmethod
    def _parse_body(response: httpx.Response) -> Optional[InventoryUpdateResponse]:
        """JSON object body, or None if missing or unparseable."""
        content = response.content
        if not content or not content.strip():
            return None
        try:
            data = json.loads(content)
        except ValueError:
            logger.debug(f"Unparseable response body: {content[:200]!r}")
            return None
        if not isinstance(data, dict):
            return None
        return InventoryUpdateResponse.from_dict(data)

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.config.user_agent,
        }

    @staticmethod
    def _log_failure(result: SubmissionResult) -> None:
        if result.cause is not None:
            logger.error(f"Network call failed for {result.vin} after {result.attempts} attempt(s): {result.message}")
        else:
            logger.error(f"Inventory update failed for {result.vin} ({result.status.value}): {result.message}")

    async def aclose(self) -> None:
        """Close the connection pool if this client created it."""
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> 'InventoryClient':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

"""
Scan Session - Frame to Inventory Pipeline
==========================================

Linear async pipeline per frame:

    frame -> OCR (worker thread) -> normalize -> VIN candidate check
          -> recent-submission check -> location fix -> HTTP submit
          -> listeners / operator alerts

Frames are analyzed one at a time. Each accepted frame schedules its
submission as a background task, so the next frame can be analyzed while
earlier submissions are still in flight. Overlapping submissions share
only the HTTP connection pool and the recent-submission cache.

Usage:
    from vin_inventory.pipeline import ScanSession

    async with ScanSession.create(recognizer=provider, location_provider=location) as session:
        results = await session.run(frames)
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Set, Tuple

from ..config import ScannerConfig, ScanConfig, get_config
from ..core.vin_utils import extract_vin_candidate, normalize_ocr_text
from ..exceptions import ConfigurationError
from ..providers.location import LastKnownLocationProvider, LocationProvider
from ..providers.ocr_providers import Frame, OCRProvider, OCRProviderError
from ..submission.client import InventoryClient
from ..submission.dedup import RecentSubmissionCache
from ..submission.models import Coordinate
from ..submission.results import SubmissionResult, SubmissionStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperatorAlert:
    """A condition the operator can act on (reposition, check connectivity)."""
    kind: SubmissionStatus
    message: str
    result: SubmissionResult


ResultListener = Callable[[SubmissionResult], None]
AlertListener = Callable[[OperatorAlert], None]


class ScanSession:
    """
    Owns the collaborators of one capture session.

    Args:
        client: Inventory client (closed with the session)
        location_provider: Source of location fixes
        recognizer: OCR provider; only needed for analyze_frame()/run()
        dedup_cache: Recent-submission cache (built from config if None)
        config: Scan behavior (global config if None)
        on_result: Called with every SubmissionResult
        on_alert: Called with operator alerts
    """

    def __init__(
        self,
        client: InventoryClient,
        location_provider: LocationProvider,
        recognizer: Optional[OCRProvider] = None,
        dedup_cache: Optional[RecentSubmissionCache] = None,
        config: Optional[ScanConfig] = None,
        on_result: Optional[ResultListener] = None,
        on_alert: Optional[AlertListener] = None,
    ):
        self.client = client
        self.location_provider = location_provider
        self.recognizer = recognizer
        self.config = config or get_config().scan

        if dedup_cache is None:
            dedup_settings = get_config().dedup
            dedup_cache = RecentSubmissionCache(
                cooldown_seconds=dedup_settings.cooldown_seconds,
                max_entries=dedup_settings.max_entries,
            )
        self.dedup_cache = dedup_cache

        self.on_result = on_result
        self.on_alert = on_alert

        self._pending: Set[asyncio.Task] = set()
        self._consecutive_network_failures = 0
        self._closed = False

    @classmethod
    def create(
        cls,
        config: Optional[ScannerConfig] = None,
        recognizer: Optional[OCRProvider] = None,
        location_provider: Optional[LocationProvider] = None,
        on_result: Optional[ResultListener] = None,
        on_alert: Optional[AlertListener] = None,
    ) -> 'ScanSession':
        """Build a session and its collaborators from configuration."""
        config = config or get_config()
        if location_provider is None:
            location_provider = LastKnownLocationProvider(
                max_age_seconds=config.scan.location_max_age_seconds,
            )
        return cls(
            client=InventoryClient(config.submission),
            location_provider=location_provider,
            recognizer=recognizer,
            dedup_cache=RecentSubmissionCache(
                cooldown_seconds=config.dedup.cooldown_seconds,
                max_entries=config.dedup.max_entries,
            ),
            config=config.scan,
            on_result=on_result,
            on_alert=on_alert,
        )

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    async def process_text(self, raw_text: str) -> SubmissionResult:
        """
        Normalize recognized text and submit it with the current location.

        Returns:
            SubmissionResult; INVALID_VIN_FORMAT and DUPLICATE_SUPPRESSED
            are reported without touching the network
        """
        normalized = normalize_ocr_text(raw_text)

        if self.config.reject_invalid_vins:
            vin = extract_vin_candidate(normalized)
            if vin is None:
                logger.info(f"No VIN in recognized text {normalized!r}")
                return self._finish(SubmissionResult.invalid_vin_format(normalized))
        else:
            vin = normalized

        if not self.dedup_cache.reserve(vin):
            logger.debug(f"{vin} submitted recently, skipping")
            return self._finish(SubmissionResult.duplicate_suppressed(vin))

        result: Optional[SubmissionResult] = None
        try:
            coordinate, error = await self._read_location()
            if coordinate is None:
                logger.warning(f"Location unavailable, not submitting {vin}")
                result = SubmissionResult.location_unavailable(vin, cause=error)
            else:
                result = await self.client.submit(vin, coordinate)
        finally:
            # Only keep the reservation when the server saw a definitive answer
            if result is None or result.is_transient:
                self.dedup_cache.release(vin)

        return self._finish(result)

    async def analyze_frame(self, frame: Frame) -> Optional["asyncio.Task[SubmissionResult]"]:
        """
        Run OCR on one frame and schedule its submission.

        Returns:
            The background submission task, or None when the frame yielded
            no text or OCR failed
        """
        if self._closed:
            raise RuntimeError("Scan session is closed")
        if self.recognizer is None:
            raise ConfigurationError("no OCR provider configured", config_key="recognizer")

        try:
            ocr_result = await asyncio.to_thread(self.recognizer.recognize_with_retry, frame)
        except OCRProviderError as e:
            logger.warning(f"OCR failed, skipping frame: {e}")
            return None

        if not ocr_result.text.strip():
            logger.debug("No text recognized in frame")
            return None

        task = asyncio.create_task(self.process_text(ocr_result.text))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def run(self, frames: Iterable[Frame]) -> List[SubmissionResult]:
        """Analyze frames in order and wait for all resulting submissions."""
        tasks = []
        for frame in frames:
            task = await self.analyze_frame(frame)
            if task is not None:
                tasks.append(task)
        return list(await asyncio.gather(*tasks))

    async def drain(self) -> None:
        """Wait for in-flight submissions to complete."""
        while self._pending:
            await asyncio.wait(list(self._pending))

    async def close(self, cancel_pending: bool = True) -> None:
        """
        End the session.

        In-flight submissions are cancelled (or awaited when
        cancel_pending is False) and the HTTP client is closed.
        """
        if self._closed:
            return
        self._closed = True

        pending = list(self._pending)
        if pending:
            if cancel_pending:
                logger.info(f"Cancelling {len(pending)} in-flight submission(s)")
                for task in pending:
                    task.cancel()
            outcomes = await asyncio.gather(*pending, return_exceptions=True)
            for outcome in outcomes:
                if isinstance(outcome, Exception):
                    logger.error(f"Submission task failed during shutdown: {outcome!r}")

        await self.client.aclose()

    async def __aenter__(self) -> 'ScanSession':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _read_location(self) -> Tuple[Optional[Coordinate], Optional[Exception]]:
        try:
            coordinate = await asyncio.to_thread(self.location_provider.get_last_known_location)
        except Exception as e:
            logger.error(f"Location provider failed: {e}")
            return None, e
        return coordinate, None

    def _finish(self, result: SubmissionResult) -> SubmissionResult:
        self._track_alerts(result)
        if self.on_result is not None:
            try:
                self.on_result(result)
            except Exception:
                logger.exception("Result listener raised")
        return result

    def _track_alerts(self, result: SubmissionResult) -> None:
        if result.status is SubmissionStatus.LOCATION_UNAVAILABLE:
            self._alert(result, "Location unavailable: move to open sky or check location settings")
            return

        if result.status is SubmissionStatus.NETWORK_FAILURE:
            self._consecutive_network_failures += 1
            threshold = max(1, self.config.network_failure_alert_threshold)
            if self._consecutive_network_failures % threshold == 0:
                self._alert(
                    result,
                    f"{self._consecutive_network_failures} consecutive network failures: check connectivity",
                )
            return

        if result.attempts > 0:
            self._consecutive_network_failures = 0

    def _alert(self, result: SubmissionResult, message: str) -> None:
        logger.warning(message)
        if self.on_alert is None:
            return
        try:
            self.on_alert(OperatorAlert(kind=result.status, message=message, result=result))
        except Exception:
            logger.exception("Alert listener raised")

"""
Tests for the Scan Session Pipeline
===================================

Frame -> OCR -> normalize -> candidate check -> dedup -> location -> submit,
with fake OCR/location collaborators and httpx.MockTransport.
"""

import asyncio
import json
from contextlib import asynccontextmanager

import httpx
import pytest

from conftest import inventory_client, json_response
from vin_inventory.config import ScanConfig, ScannerConfig
from vin_inventory.exceptions import ConfigurationError
from vin_inventory.pipeline import OperatorAlert, ScanSession
from vin_inventory.providers import LastKnownLocationProvider, LocationProvider, OCRProvider, OCRProviderError, OCRResult
from vin_inventory.submission import Coordinate, InventoryClient, RecentSubmissionCache, SubmissionStatus

VIN = "1HGCM82633A104352"
RAW_VIN = "1HGCM82633A1O4352"
OTHER_VIN = "1M8GDM9AXKP042788"
COORDINATE = Coordinate(37.422, -122.084)


class FakeRecognizer(OCRProvider):
    """OCR provider returning canned text per frame."""

    def __init__(self, texts):
        self.texts = texts
        self.calls = []

    @property
    def name(self):
        return "Fake"

    @property
    def is_available(self):
        return True

    def initialize(self):
        self._initialized = True

    def recognize(self, image, **kwargs):
        self.calls.append(image)
        value = self.texts[image]
        if isinstance(value, Exception):
            raise value
        return OCRResult(text=value, confidence=1.0, provider=self.name)


class FailingLocationProvider(LocationProvider):
    def get_last_known_location(self):
        raise RuntimeError("location service crashed")


class Recorder:
    """Collects requests; optional gate holds responses until released."""

    def __init__(self, *responses, gated=False):
        self.requests = []
        self.responses = list(responses) or [json_response("success", "ok")]
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()
        if not gated:
            self.gate.set()

    async def __call__(self, request):
        self.requests.append(request)
        self.entered.set()
        await self.gate.wait()
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return httpx.Response(response.status_code, headers=response.headers, content=response.content)

    def submitted_vins(self):
        return [json.loads(r.content)["vin"] for r in self.requests]


@asynccontextmanager
async def scan_session(
    handler,
    recognizer=None,
    location=None,
    cooldown=30.0,
    reject_invalid=True,
    alert_threshold=3,
):
    results, alerts = [], []
    async with inventory_client(handler) as client:
        session = ScanSession(
            client=client,
            location_provider=location or LastKnownLocationProvider(initial=COORDINATE),
            recognizer=recognizer,
            dedup_cache=RecentSubmissionCache(cooldown_seconds=cooldown, clock=lambda: 0.0),
            config=ScanConfig(
                reject_invalid_vins=reject_invalid,
                network_failure_alert_threshold=alert_threshold,
                location_max_age_seconds=None,
            ),
            on_result=results.append,
            on_alert=alerts.append,
        )
        session.results = results
        session.alerts = alerts
        try:
            yield session
        finally:
            await session.close()


# =============================================================================
# process_text
# =============================================================================

class TestProcessText:

    @pytest.mark.asyncio
    async def test_normalized_vin_submitted(self):
        recorder = Recorder()
        async with scan_session(recorder) as session:
            result = await session.process_text(RAW_VIN)

        assert result.is_success
        assert result.vin == VIN
        assert json.loads(recorder.requests[0].content) == {"vin": VIN, "coordinates": "37.422, -122.084"}
        assert session.results == [result]

    @pytest.mark.asyncio
    async def test_invalid_text_never_reaches_network(self):
        recorder = Recorder()
        async with scan_session(recorder) as session:
            result = await session.process_text("SPEED LIMIT 55")

        assert result.status is SubmissionStatus.INVALID_VIN_FORMAT
        assert result.vin == "5PEED L1M1T 55"
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_label_text_never_reaches_network(self):
        recorder = Recorder()
        async with scan_session(recorder) as session:
            result = await session.process_text("MADE IN USA 12345678")

        assert result.status is SubmissionStatus.INVALID_VIN_FORMAT
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_validation_disabled_sends_normalized_text(self):
        recorder = Recorder()
        async with scan_session(recorder, reject_invalid=False) as session:
            await session.process_text("hello")

        assert recorder.submitted_vins() == ["hell0"]

    @pytest.mark.asyncio
    async def test_repeated_reads_suppressed(self):
        recorder = Recorder()
        async with scan_session(recorder) as session:
            first = await session.process_text(RAW_VIN)
            second = await session.process_text(VIN)

        assert first.is_success
        assert second.status is SubmissionStatus.DUPLICATE_SUPPRESSED
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_dedup_disabled(self):
        recorder = Recorder()
        async with scan_session(recorder, cooldown=0) as session:
            await session.process_text(VIN)
            await session.process_text(VIN)

        assert len(recorder.requests) == 2

    @pytest.mark.asyncio
    async def test_transient_failure_releases_reservation(self):
        recorder = Recorder(httpx.Response(500), json_response("success"))
        async with scan_session(recorder) as session:
            first = await session.process_text(VIN)
            second = await session.process_text(VIN)

        assert first.status is SubmissionStatus.SERVER_REJECTED
        assert second.is_success
        assert len(recorder.requests) == 2

    @pytest.mark.asyncio
    async def test_application_failure_keeps_reservation(self):
        recorder = Recorder(json_response("failed", "duplicate VIN"))
        async with scan_session(recorder) as session:
            first = await session.process_text(VIN)
            second = await session.process_text(VIN)

        assert first.status is SubmissionStatus.APPLICATION_FAILURE
        assert first.message == "duplicate VIN"
        assert second.status is SubmissionStatus.DUPLICATE_SUPPRESSED
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_location_unavailable(self):
        recorder = Recorder()
        location = LastKnownLocationProvider()
        async with scan_session(recorder, location=location) as session:
            first = await session.process_text(VIN)
            location.set(COORDINATE)
            second = await session.process_text(VIN)

        assert first.status is SubmissionStatus.LOCATION_UNAVAILABLE
        assert second.is_success
        assert len(recorder.requests) == 1
        assert len(session.alerts) == 1
        assert session.alerts[0].kind is SubmissionStatus.LOCATION_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_location_provider_error(self):
        recorder = Recorder()
        async with scan_session(recorder, location=FailingLocationProvider()) as session:
            result = await session.process_text(VIN)

        assert result.status is SubmissionStatus.LOCATION_UNAVAILABLE
        assert isinstance(result.cause, RuntimeError)
        assert recorder.requests == []


# =============================================================================
# Operator alerts
# =============================================================================

class TestOperatorAlerts:

    @pytest.mark.asyncio
    async def test_repeated_network_failures_alert(self):
        request = httpx.Request("POST", "https://inventory.test/")
        recorder = Recorder(httpx.ConnectError("offline", request=request))
        async with scan_session(recorder, alert_threshold=2) as session:
            await session.process_text(VIN)
            assert session.alerts == []
            await session.process_text(VIN)

        assert len(session.alerts) == 1
        alert = session.alerts[0]
        assert isinstance(alert, OperatorAlert)
        assert alert.kind is SubmissionStatus.NETWORK_FAILURE
        assert "2 consecutive" in alert.message

    @pytest.mark.asyncio
    async def test_success_resets_network_failure_streak(self):
        request = httpx.Request("POST", "https://inventory.test/")
        error = httpx.ConnectError("offline", request=request)
        recorder = Recorder(error, json_response("success"), error, json_response("success"))
        async with scan_session(recorder, alert_threshold=2, cooldown=0) as session:
            for _ in range(4):
                await session.process_text(VIN)

        assert session.alerts == []

    @pytest.mark.asyncio
    async def test_listener_errors_do_not_propagate(self):
        recorder = Recorder()
        async with scan_session(recorder) as session:
            def broken(result):
                raise ValueError("listener bug")
            session.on_result = broken
            result = await session.process_text(VIN)

        assert result.is_success


# =============================================================================
# Frame analysis
# =============================================================================

class TestAnalyzeFrame:

    @pytest.mark.asyncio
    async def test_run_processes_frames_in_order(self):
        recognizer = FakeRecognizer({"f1": RAW_VIN, "f2": "", "f3": OTHER_VIN, "f4": RAW_VIN})
        recorder = Recorder()
        async with scan_session(recorder, recognizer=recognizer) as session:
            results = await session.run(["f1", "f2", "f3", "f4"])

        assert recognizer.calls == ["f1", "f2", "f3", "f4"]
        assert [r.status for r in results] == [
            SubmissionStatus.SUCCESS,
            SubmissionStatus.SUCCESS,
            SubmissionStatus.DUPLICATE_SUPPRESSED,
        ]
        assert sorted(recorder.submitted_vins()) == sorted([VIN, OTHER_VIN])

    @pytest.mark.asyncio
    async def test_blank_frame_skipped(self):
        recognizer = FakeRecognizer({"blank": "  \n "})
        async with scan_session(Recorder(), recognizer=recognizer) as session:
            assert await session.analyze_frame("blank") is None
        assert session.results == []

    @pytest.mark.asyncio
    async def test_ocr_error_skips_frame(self):
        recognizer = FakeRecognizer({"bad": OCRProviderError("engine crashed", provider="Fake")})
        async with scan_session(Recorder(), recognizer=recognizer) as session:
            assert await session.analyze_frame("bad") is None

    @pytest.mark.asyncio
    async def test_next_frame_analyzed_while_submission_in_flight(self):
        recognizer = FakeRecognizer({"f1": VIN, "f2": OTHER_VIN})
        recorder = Recorder(gated=True)
        async with scan_session(recorder, recognizer=recognizer) as session:
            first = await session.analyze_frame("f1")
            await asyncio.wait_for(recorder.entered.wait(), timeout=5)

            second = await session.analyze_frame("f2")
            assert recognizer.calls == ["f1", "f2"]
            assert not first.done()
            assert session.pending_count == 2

            recorder.gate.set()
            await session.drain()

        assert first.result().is_success
        assert second.result().is_success
        assert session.pending_count == 0

    @pytest.mark.asyncio
    async def test_close_cancels_in_flight_submissions(self):
        recognizer = FakeRecognizer({"f1": VIN})
        recorder = Recorder(gated=True)
        async with scan_session(recorder, recognizer=recognizer) as session:
            task = await session.analyze_frame("f1")
            await asyncio.wait_for(recorder.entered.wait(), timeout=5)
            await session.close()

            assert task.cancelled()
            assert VIN not in session.dedup_cache
            with pytest.raises(RuntimeError):
                await session.analyze_frame("f1")

    @pytest.mark.asyncio
    async def test_close_without_cancel_waits(self):
        recognizer = FakeRecognizer({"f1": VIN})
        recorder = Recorder(gated=True)
        async with scan_session(recorder, recognizer=recognizer) as session:
            task = await session.analyze_frame("f1")
            await asyncio.wait_for(recorder.entered.wait(), timeout=5)
            recorder.gate.set()
            await session.close(cancel_pending=False)

            assert task.result().is_success

    @pytest.mark.asyncio
    async def test_no_recognizer(self):
        async with scan_session(Recorder()) as session:
            with pytest.raises(ConfigurationError):
                await session.analyze_frame("f1")


class TestSessionFactory:

    @pytest.mark.asyncio
    async def test_create_from_config(self):
        config = ScannerConfig()
        config.dedup.cooldown_seconds = 5.0
        config.scan.location_max_age_seconds = 60.0

        session = ScanSession.create(config=config)
        try:
            assert isinstance(session.client, InventoryClient)
            assert isinstance(session.location_provider, LastKnownLocationProvider)
            assert session.location_provider.max_age_seconds == 60.0
            assert session.dedup_cache.cooldown_seconds == 5.0
            assert session.config is config.scan
        finally:
            await session.close()

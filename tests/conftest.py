"""
Shared fixtures for the VIN inventory test suite.
"""

from contextlib import asynccontextmanager
from typing import List

import httpx
import pytest

from vin_inventory.config import SubmissionConfig, reset_config
from vin_inventory.submission.client import InventoryClient

TEST_BASE_URL = "https://inventory.test/test2024/"
TEST_ENDPOINT = "https://inventory.test/test2024/phone_update_inventory.php"


@pytest.fixture(autouse=True)
def _fresh_config(monkeypatch):
    """Isolate tests from the process environment and the config singleton."""
    for key in (
        "VIN_INVENTORY_BASE_URL",
        "VIN_HTTP_TIMEOUT",
        "VIN_HTTP_MAX_RETRIES",
        "VIN_HTTP_RETRY_DELAY",
        "VIN_DEDUP_COOLDOWN",
        "VIN_REJECT_INVALID",
        "VIN_LOCATION_MAX_AGE",
        "VIN_LOG_FILE",
        "VIN_LOG_LEVEL",
        "VIN_USE_GPU",
        "VIN_DET_BOX_THRESH",
    ):
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


class RecordingSleep:
    """Stands in for asyncio.sleep and records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_submission_config(**overrides) -> SubmissionConfig:
    values = dict(base_url=TEST_BASE_URL, timeout=5.0, max_retries=0, retry_delay=0.5, max_retry_delay=8.0)
    values.update(overrides)
    return SubmissionConfig(**values)


@asynccontextmanager
async def inventory_client(handler, sleep=None, **config_overrides):
    """InventoryClient wired to an httpx.MockTransport handler."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        yield InventoryClient(
            make_submission_config(**config_overrides),
            http_client=http,
            sleep=sleep or RecordingSleep(),
        )


def json_response(status: str, message: str = "", code: int = 200) -> httpx.Response:
    return httpx.Response(code, json={"status": status, "message": message})

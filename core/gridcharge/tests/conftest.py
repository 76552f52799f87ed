"""Shared test fixtures and utilities for grid charge controller tests."""

import logging
import os
import sys
from datetime import datetime, timedelta

import pytest

# Add the project root to Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../../.."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from core.gridcharge.exceptions import GatewayUnavailableError  # noqa: E402
from core.gridcharge.models import (  # noqa: E402
    BatteryMode,
    DeviceState,
    ForecastSlot,
)
from core.gridcharge.settings import ControllerSettings, TimeBand  # noqa: E402

FORECAST_DAY = datetime(2025, 3, 14, 0, 0)


def make_hourly_slots(prices, start=FORECAST_DAY):
    """Build consecutive one-hour slots from a list of prices."""
    return [
        ForecastSlot(
            start=start + timedelta(hours=i),
            end=start + timedelta(hours=i + 1),
            price=price,
        )
        for i, price in enumerate(prices)
    ]


class MockEVCCController:
    """Mock evcc controller for testing."""

    def __init__(self, device_state=None, slots=None) -> None:
        """Initialize with an idle battery and an empty forecast."""
        self.host = "evcc.test:7070"
        self.device_state = device_state or DeviceState(
            mode=BatteryMode.NORMAL, state_of_charge=50.0, live_tariff=0.25
        )
        self.slots = slots if slots is not None else []
        self.fetch_error = None
        self.apply_error = None

        # Call tracking for integration tests
        self.calls = {
            "fetch_state": 0,
            "apply_charge_limit": [],
        }

    def fetch_state(self):
        self.calls["fetch_state"] += 1
        if self.fetch_error:
            raise self.fetch_error
        return self.device_state, list(self.slots)

    def apply_charge_limit(self, threshold_price):
        self.calls["apply_charge_limit"].append(threshold_price)
        if self.apply_error:
            raise self.apply_error

    def fail_with_unreachable_gateway(self):
        """Make every fetch fail as if the gateway were down."""
        self.fetch_error = GatewayUnavailableError(
            device_address=self.host, operation="fetch_state"
        )


@pytest.fixture
def day_prices():
    """24 hourly prices with a cheap dip around midday."""
    return [
        0.30, 0.28, 0.27, 0.26, 0.26, 0.27,  # 00-05
        0.31, 0.35, 0.33, 0.29, 0.22, 0.18,  # 06-11
        0.14, 0.12, 0.12, 0.16, 0.21, 0.29,  # 12-17
        0.38, 0.41, 0.36, 0.32, 0.30, 0.29,  # 18-23
    ]  # fmt: skip


@pytest.fixture
def day_slots(day_prices):
    return make_hourly_slots(day_prices)


@pytest.fixture
def afternoon_band():
    return TimeBand(name="afternoon", start_hour=12, end_hour=16, soc_limit=80)


@pytest.fixture
def morning_band():
    return TimeBand(name="morning", start_hour=5, end_hour=9, soc_limit=60)


@pytest.fixture
def controller_settings(morning_band, afternoon_band):
    return ControllerSettings(
        evcc_host="evcc.test:7070", bands=[morning_band, afternoon_band]
    )


@pytest.fixture
def mock_controller(day_slots):
    return MockEVCCController(slots=day_slots)


@pytest.fixture
def make_slots():
    """Factory fixture building hourly slots from a price list."""
    return make_hourly_slots

# core/gridcharge/models.py
"""
Data models for the grid charge controller.

This module contains the value objects passed between the gateway client,
the window selector and the charge decision engine. All of them are built
fresh every cycle and discarded when the cycle ends.

"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

logger = logging.getLogger(__name__)

__all__ = [
    "BatteryMode",
    "ChargeAction",
    "ChargeCommand",
    "DeviceState",
    "ForecastSlot",
    "SelectedWindow",
    "StopReason",
]


class BatteryMode(Enum):
    """Battery mode as reported by the gateway."""

    NORMAL = "normal"
    CHARGING = "charge"
    UNKNOWN = "unknown"

    @classmethod
    def from_gateway(cls, value: str | None) -> "BatteryMode":
        """Map the gateway's batteryMode string, anything unrecognised is UNKNOWN."""
        for mode in cls:
            if mode.value == value:
                return mode
        if value:
            logger.warning(f"Unrecognised battery mode '{value}', treating as unknown")
        return cls.UNKNOWN


class ChargeAction(Enum):
    """Action the decision engine wants the actuator to take."""

    START = "START"  # Command the window price as grid charge limit
    STOP = "STOP"  # Command 0.0 to disable grid charging
    NOOP = "NOOP"  # Send nothing


class StopReason(Enum):
    """Independent reasons to stop an ongoing grid charge."""

    PRICE_EXCEEDED = "PRICE_EXCEEDED"  # Live tariff above the cheapest window price
    SOC_EXCEEDED = "SOC_EXCEEDED"  # State of charge above the band limit


@dataclass(frozen=True)
class ForecastSlot:
    """One priced interval of the forecast horizon."""

    start: datetime
    end: datetime
    price: float


@dataclass(frozen=True)
class DeviceState:
    """Live gateway status at fetch time."""

    mode: BatteryMode = BatteryMode.UNKNOWN
    state_of_charge: float = 0.0  # percentage
    live_tariff: float = 0.0  # currency/kWh


@dataclass(frozen=True)
class SelectedWindow:
    """Cheapest slot inside a band, plus the device snapshot it was chosen against."""

    price: float
    start: datetime | None = None
    end: datetime | None = None
    battery_mode: BatteryMode = BatteryMode.UNKNOWN
    soc_limit: float = 0.0  # percentage
    current_tariff: float = 0.0  # currency/kWh
    state_of_charge: float = 0.0  # percentage

    @property
    def is_degenerate(self) -> bool:
        """True when no forecast was available and no slot could be chosen."""
        return self.start is None or self.end is None


@dataclass(frozen=True)
class ChargeCommand:
    """Decision output, consumed once by the actuator."""

    action: ChargeAction = ChargeAction.NOOP
    target_price_threshold: float = 0.0
    stop_reasons: tuple[StopReason, ...] = field(default_factory=tuple)

    @property
    def requires_actuation(self) -> bool:
        """Only START and STOP are forwarded to the gateway."""
        return self.action is not ChargeAction.NOOP

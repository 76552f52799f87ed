"""API DataClasses with canonical camelCase field names."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from core.gridcharge.charge_controller import CycleResult
from core.gridcharge.models import ChargeCommand, SelectedWindow
from core.gridcharge.runtime_failure_tracker import CycleFailure
from core.gridcharge.settings import ControllerSettings, TimeBand

logger = logging.getLogger(__name__)

CURRENCY = "EUR"


@dataclass
class FormattedValue:
    """Formatted value structure for display."""

    value: float
    display: str
    unit: str
    text: str


def create_formatted_value(
    value: float, unit_type: str, currency: str = CURRENCY, precision: int | None = None
) -> FormattedValue:
    """Create FormattedValue for a price or percentage.

    Args:
        value: The numeric value to format
        unit_type: "price" or "percentage"
        currency: Currency code used in price units
        precision: Override default decimal places (price=3, percentage=0)
    """
    if unit_type == "price":
        prec = precision if precision is not None else 3
        price_unit = f"{currency}/kWh"
        return FormattedValue(
            value=value,
            display=f"{value:.{prec}f}",
            unit=price_unit,
            text=f"{value:.{prec}f} {price_unit}",
        )
    elif unit_type == "percentage":
        prec = precision if precision is not None else 0
        return FormattedValue(
            value=value,
            display=f"{value:.{prec}f}",
            unit="%",
            text=f"{value:.{prec}f} %",
        )
    raise ValueError(f"Unknown unit type: {unit_type}")


@dataclass
class APITimeBand:
    """Configured band."""

    name: str
    startHour: int
    endHour: int
    batteryLimit: FormattedValue

    @classmethod
    def from_internal(cls, band: TimeBand) -> APITimeBand:
        return cls(
            name=band.name,
            startHour=band.start_hour,
            endHour=band.end_hour,
            batteryLimit=create_formatted_value(band.soc_limit, "percentage"),
        )


@dataclass
class APISettings:
    """Active controller settings."""

    evccHost: str
    interval: int
    debug: bool
    thresholdMargin: float
    bands: list[APITimeBand] = field(default_factory=list)

    @classmethod
    def from_internal(cls, settings: ControllerSettings) -> APISettings:
        return cls(
            evccHost=settings.evcc_host,
            interval=settings.interval,
            debug=settings.debug,
            thresholdMargin=settings.threshold_margin,
            bands=[APITimeBand.from_internal(band) for band in settings.bands],
        )


@dataclass
class APIWindow:
    """Cheapest window selected in the last cycle."""

    price: FormattedValue
    start: str | None
    end: str | None
    batteryMode: str
    stateOfCharge: FormattedValue
    batteryLimit: FormattedValue
    currentTariff: FormattedValue
    degenerate: bool

    @classmethod
    def from_internal(cls, window: SelectedWindow) -> APIWindow:
        return cls(
            price=create_formatted_value(window.price, "price"),
            start=window.start.isoformat() if window.start else None,
            end=window.end.isoformat() if window.end else None,
            batteryMode=window.battery_mode.value,
            stateOfCharge=create_formatted_value(window.state_of_charge, "percentage"),
            batteryLimit=create_formatted_value(window.soc_limit, "percentage"),
            currentTariff=create_formatted_value(window.current_tariff, "price"),
            degenerate=window.is_degenerate,
        )


@dataclass
class APIChargeCommand:
    """Command decided in the last cycle."""

    action: str
    targetPriceThreshold: FormattedValue
    stopReasons: list[str]

    @classmethod
    def from_internal(cls, command: ChargeCommand) -> APIChargeCommand:
        return cls(
            action=command.action.value,
            targetPriceThreshold=create_formatted_value(
                command.target_price_threshold, "price"
            ),
            stopReasons=[reason.value for reason in command.stop_reasons],
        )


@dataclass
class APICycleStatus:
    """Last cycle as returned by /api/status."""

    timestamp: str
    band: str | None
    offShift: bool
    actuated: bool
    error: str | None
    window: APIWindow | None = None
    command: APIChargeCommand | None = None

    @classmethod
    def from_internal(cls, result: CycleResult) -> APICycleStatus:
        return cls(
            timestamp=result.timestamp.isoformat(),
            band=result.band,
            offShift=result.off_shift,
            actuated=result.actuated,
            error=result.error,
            window=APIWindow.from_internal(result.window) if result.window else None,
            command=(
                APIChargeCommand.from_internal(result.command)
                if result.command
                else None
            ),
        )


@dataclass
class APICycleFailure:
    """Aborted cycle shown to the user until dismissed."""

    id: str
    timestamp: str
    category: str
    deviceAddress: str
    band: str | None
    errorMessage: str

    @classmethod
    def from_internal(cls, failure: CycleFailure) -> APICycleFailure:
        return cls(
            id=failure.id,
            timestamp=failure.timestamp.isoformat(),
            category=failure.category,
            deviceAddress=failure.device_address,
            band=failure.band,
            errorMessage=failure.error_message,
        )

"""
Charge decision engine.

Turns a SelectedWindow into a ChargeCommand. The device's own reported
battery mode is the only state; nothing is remembered between calls, so a
command that was lost or not yet applied is simply re-derived next cycle.

Decision table:

    NORMAL/UNKNOWN  in window and SoC below limit   -> START at window price
    NORMAL/UNKNOWN  otherwise                       -> NOOP
    CHARGING        any stop reason                 -> STOP at 0.0
    CHARGING        no stop reason                  -> NOOP (keep charging)

Stop reasons are evaluated independently and joined by OR.
"""

import logging
from datetime import datetime

from .models import BatteryMode, ChargeAction, ChargeCommand, SelectedWindow, StopReason
from .settings import DEFAULT_THRESHOLD_MARGIN
from .time_utils import hour_granularity_window_check

logger = logging.getLogger(__name__)

STOP_THRESHOLD = 0.0  # Grid charge limit that disables grid charging


def evaluate_stop_conditions(window: SelectedWindow) -> list[StopReason]:
    """Collect every stop reason that applies to an ongoing charge."""
    reasons = []

    if window.current_tariff > window.price:
        logger.debug(
            f"Current price {window.current_tariff:f} higher than lowest detected "
            f"price {window.price:f}"
        )
        reasons.append(StopReason.PRICE_EXCEEDED)

    if window.state_of_charge > window.soc_limit:
        logger.debug(f"Battery SoC is above limit of {window.soc_limit:.0f}")
        reasons.append(StopReason.SOC_EXCEEDED)

    return reasons


class ChargeDecisionEngine:
    """Decides whether grid charging should start, stop or be left alone."""

    def __init__(self, threshold_margin: float = DEFAULT_THRESHOLD_MARGIN) -> None:
        """Initialize the engine.

        Args:
            threshold_margin: Added to the window price when starting a charge

        """
        self.threshold_margin = threshold_margin

    def decide(self, window: SelectedWindow, now: datetime) -> ChargeCommand:
        """Derive the command for this cycle from the window and the clock."""
        if window.is_degenerate:
            logger.info("No price window available, leaving charger untouched")
            return ChargeCommand(action=ChargeAction.NOOP)

        logger.info(
            f"Lowest Price: {window.price:.3f} Euro/kWh starting at {window.start}"
        )
        logger.debug(f"Lowest Price: {window.price:.3f} Euro/kWh ending at {window.end}")

        if window.battery_mode is BatteryMode.CHARGING:
            return self._decide_while_charging(window)

        return self._decide_while_idle(window, now)

    def _decide_while_idle(self, window: SelectedWindow, now: datetime) -> ChargeCommand:
        in_window = hour_granularity_window_check(now, window.start, window.end)

        if in_window and window.state_of_charge < window.soc_limit:
            threshold = window.price + self.threshold_margin
            logger.info(f"Start charging below {threshold:.3f} Euro/kWh")
            return ChargeCommand(
                action=ChargeAction.START, target_price_threshold=threshold
            )

        logger.info(
            "Not Charging! Battery above configured Limit or Time Check not passed."
        )
        return ChargeCommand(action=ChargeAction.NOOP)

    def _decide_while_charging(self, window: SelectedWindow) -> ChargeCommand:
        logger.warning(
            f"Battery already charging! Battery SoC at {window.state_of_charge:.0f} "
            f"- (Limit: {window.soc_limit:.0f})"
        )

        reasons = evaluate_stop_conditions(window)
        if reasons:
            logger.info(
                f"Stop charging: {', '.join(reason.value for reason in reasons)}"
            )
            return ChargeCommand(
                action=ChargeAction.STOP,
                target_price_threshold=STOP_THRESHOLD,
                stop_reasons=tuple(reasons),
            )

        logger.info("Charging! Battery Limit not yet reached.")
        return ChargeCommand(action=ChargeAction.NOOP)

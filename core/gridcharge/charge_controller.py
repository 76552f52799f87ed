"""
Decision cycle orchestration.

One cycle: pick the band for the current hour, fetch state and forecast from
the gateway, select the cheapest window, decide, and forward START/STOP to
the gateway. Cycles for one gateway must not overlap; the scheduler that
drives this class runs a single job instance at a time.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from .charge_decision import ChargeDecisionEngine
from .evcc_api_controller import EVCCAPIController
from .exceptions import GridChargeException
from .models import ChargeAction, ChargeCommand, SelectedWindow
from .runtime_failure_tracker import RuntimeFailureTracker
from .settings import ControllerSettings, TimeBand
from .window_selector import select_cheapest_window

logger = logging.getLogger(__name__)


@dataclass
class CycleResult:
    """Outcome of one decision cycle, kept in memory for the status API."""

    timestamp: datetime = field(default_factory=datetime.now)
    band: str | None = None
    window: SelectedWindow | None = None
    command: ChargeCommand | None = None
    actuated: bool = False
    error: str | None = None

    @property
    def off_shift(self) -> bool:
        return self.band is None and self.error is None


class ChargeController:
    """Runs decision cycles against one charging gateway."""

    def __init__(
        self,
        controller: EVCCAPIController,
        settings: ControllerSettings | None = None,
        failure_tracker: RuntimeFailureTracker | None = None,
    ) -> None:
        """Initialize the cycle runner.

        Args:
            controller: Gateway client providing fetch_state and apply_charge_limit
            settings: Controller settings with the configured bands
            failure_tracker: Where aborted cycles are recorded

        """
        self.controller = controller
        self.settings = settings or ControllerSettings()
        self.failure_tracker = failure_tracker or RuntimeFailureTracker()
        self.engine = ChargeDecisionEngine(self.settings.threshold_margin)
        self.last_cycle: CycleResult | None = None

    @property
    def device_address(self) -> str:
        return getattr(self.controller, "host", "unknown")

    def update_settings(
        self,
        settings: ControllerSettings,
        controller: EVCCAPIController | None = None,
    ) -> None:
        """Apply reloaded settings, optionally swapping the gateway client."""
        self.settings = settings
        self.engine = ChargeDecisionEngine(settings.threshold_margin)
        if controller is not None:
            self.controller = controller
        logger.debug(f"Applied settings with {len(settings.bands)} bands")

    def run_cycle(self, band: TimeBand, now: datetime | None = None) -> CycleResult:
        """Run fetch, select, decide and actuate for one band.

        Raises:
            GatewayUnavailableError: If the gateway cannot be read or commanded
            ForecastRangeError: If the band does not fit the forecast horizon
        """
        now = now or datetime.now()
        start_index, end_index = band.slot_range

        logger.info(
            f"Checking for lowest Price between {band.start_hour}:00 and {band.end_hour}:00"
        )

        device_state, slots = self.controller.fetch_state()
        window = select_cheapest_window(
            slots, start_index, end_index, device_state, band.soc_limit
        )
        logger.debug(
            f"Battery SoC: {window.state_of_charge:.0f} - (Limit: {window.soc_limit:.0f})"
        )

        command = self.engine.decide(window, now)

        actuated = False
        if command.requires_actuation:
            self.controller.apply_charge_limit(command.target_price_threshold)
            actuated = True
            if command.action is ChargeAction.START:
                logger.info("Charging started!")
            else:
                logger.info("Charging stopped!")

        return CycleResult(
            timestamp=now,
            band=band.name,
            window=window,
            command=command,
            actuated=actuated,
        )

    def run_scheduled_cycle(self, now: datetime | None = None) -> CycleResult:
        """Run one cycle for whichever band is active now, never raising cycle errors.

        Failures are logged with device and band, recorded in the failure
        tracker and returned as a CycleResult with ``error`` set.
        """
        now = now or datetime.now()
        logger.debug(f"Current Time: {now}")

        band = self.settings.find_active_band(now.hour)
        if band is None:
            logger.info("OFF SHIFT! Not in charge right now.")
            result = CycleResult(timestamp=now)
            self.last_cycle = result
            return result

        logger.debug(f"Performing {band.name} check based on current time")

        try:
            result = self.run_cycle(band, now)
        except GridChargeException as e:
            logger.error(
                f"Cycle for band '{band.name}' on {self.device_address} aborted: {e}"
            )
            self.failure_tracker.record_failure(
                e, device_address=self.device_address, band=band.name
            )
            result = CycleResult(timestamp=now, band=band.name, error=str(e))

        self.last_cycle = result
        return result

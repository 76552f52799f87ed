"""Grid charge controller package: cheapest-window battery charging via evcc."""

# Define public API - only include what users should directly access
__all__ = [
    "ChargeController",  # Main facade
    "ChargeDecisionEngine",
    "ControllerSettings",
    "EVCCAPIController",
    "RuntimeFailureTracker",
    "TimeBand",
    "select_cheapest_window",
]

# Import settings used by other modules
from .settings import (  # noqa: I001
    ControllerSettings,
    TimeBand,
)

# Import core algorithms
from .window_selector import select_cheapest_window
from .charge_decision import ChargeDecisionEngine

# Import controller for evcc integration
from .evcc_api_controller import EVCCAPIController
from .runtime_failure_tracker import RuntimeFailureTracker

# Import main facade class (the primary entry point to the system)
from .charge_controller import ChargeController

"""
Cheapest price window selection.

Scans a contiguous index range of the forecast and picks the lowest priced
slot. Ties break toward the later slot, because the charge start/end timing
downstream is taken from the chosen slot.
"""

import logging
from collections.abc import Sequence

from .exceptions import ForecastRangeError
from .models import DeviceState, ForecastSlot, SelectedWindow

logger = logging.getLogger(__name__)


def select_cheapest_window(
    slots: Sequence[ForecastSlot],
    start_index: int,
    end_index: int,
    device_state: DeviceState,
    soc_limit: float,
) -> SelectedWindow:
    """Find the minimum price slot in ``slots[start_index..end_index]``.

    Args:
        slots: Forecast slots ordered by start time
        start_index: First slot index to consider (inclusive)
        end_index: Last slot index to consider (inclusive)
        device_state: Snapshot whose mode, SoC and tariff are copied onto the result
        soc_limit: Battery limit of the active band (%)

    Returns:
        SelectedWindow for the cheapest slot, or a degenerate window with price 0
        and no start/end when the forecast is empty

    Raises:
        ForecastRangeError: If the range is malformed or extends past the forecast
    """
    if start_index < 0 or start_index > end_index:
        raise ForecastRangeError(
            start_index=start_index,
            end_index=end_index,
            available=len(slots),
            message=f"Invalid slot range {start_index}..{end_index}",
        )

    if not slots:
        logger.warning("Forecast is empty, no price window can be selected")
        return SelectedWindow(
            price=0.0,
            battery_mode=device_state.mode,
            soc_limit=soc_limit,
            current_tariff=0.0,
            state_of_charge=device_state.state_of_charge,
        )

    if end_index >= len(slots):
        raise ForecastRangeError(
            start_index=start_index, end_index=end_index, available=len(slots)
        )

    cheapest = slots[start_index]
    for slot in slots[start_index : end_index + 1]:
        if slot.price <= cheapest.price:
            cheapest = slot

    logger.debug(
        "Cheapest slot in %d..%d: %.3f from %s to %s",
        start_index,
        end_index,
        cheapest.price,
        cheapest.start,
        cheapest.end,
    )

    return SelectedWindow(
        price=cheapest.price,
        start=cheapest.start,
        end=cheapest.end,
        battery_mode=device_state.mode,
        soc_limit=soc_limit,
        current_tariff=device_state.live_tariff,
        state_of_charge=device_state.state_of_charge,
    )

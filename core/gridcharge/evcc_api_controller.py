"""evcc REST API Controller.

Reads the battery state and grid price forecast from an evcc instance and
sets its battery grid charge limit.
"""

import logging
import time
from datetime import datetime

import requests

from .exceptions import GatewayUnavailableError
from .models import BatteryMode, DeviceState, ForecastSlot

logger = logging.getLogger(__name__)


def run_request(http_method, *args, **kwargs):
    """Log the request and response for debugging purposes."""
    try:
        logger.debug("HTTP Method: %s", http_method.__name__.upper())
        logger.debug("Request Args: %s", args)
        logger.debug("Request Kwargs: %s", kwargs)

        response = http_method(*args, **kwargs)

        logger.debug("Response Status Code: %s", response.status_code)
        logger.debug("Response Content: %s", response.text)

        return response
    except Exception as e:
        logger.error("Error during HTTP request: %s", str(e))
        raise


def _parse_timestamp(value) -> datetime:
    if not isinstance(value, str):
        raise TypeError(f"Expected ISO timestamp string, got {value!r}")
    return datetime.fromisoformat(value)


def parse_state(payload) -> tuple[DeviceState, list[ForecastSlot]]:
    """Convert an /api/state payload into a device snapshot and forecast slots.

    Both the legacy ``{"result": {...}}`` envelope and the bare object are
    accepted.

    Raises:
        ValueError: If the payload does not have the expected shape
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Unexpected state payload type {type(payload).__name__}")

    state = payload.get("result", payload)
    if not isinstance(state, dict):
        raise ValueError("State payload has no result object")

    try:
        device_state = DeviceState(
            mode=BatteryMode.from_gateway(state.get("batteryMode")),
            state_of_charge=float(state.get("batterySoc") or 0.0),
            live_tariff=float(state.get("tariffGrid") or 0.0),
        )

        grid = (state.get("forecast") or {}).get("grid") or []
        slots = [
            ForecastSlot(
                start=_parse_timestamp(entry["start"]),
                end=_parse_timestamp(entry["end"]),
                price=float(entry["value"]),
            )
            for entry in grid
        ]
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"Malformed state payload: {e!r}") from e

    return device_state, slots


class EVCCAPIController:
    """A class for reading forecast state from and commanding an evcc gateway."""

    def __init__(
        self,
        host: str,
        max_attempts: int = 3,
        retry_delay: float = 2,
        timeout: float = 10,
    ):
        """Initialize the Controller with evcc API access.

        Args:
            host: evcc host and port, e.g. "192.168.1.10:7070"
            max_attempts: Attempts per request before giving up
            retry_delay: Seconds between attempts
            timeout: Per-request timeout in seconds

        """
        self.host = host
        self.base_url = f"http://{host}"
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay  # seconds
        self.timeout = timeout
        self.test_mode = False

        logger.info(f"Initialized EVCCAPIController for {self.base_url}")

    def _api_request(self, method, path, **kwargs):
        """Make an API request to evcc with retry logic.

        Args:
            method: HTTP method ('get', 'post', etc.)
            path: API path (without base URL)
            **kwargs: Additional arguments for requests

        Returns:
            Response data from API

        Raises:
            requests.RequestException: If all retries fail

        """
        url = f"{self.base_url}{path}"
        logger.debug("Making API request to %s %s", method.upper(), url)
        for attempt in range(self.max_attempts):
            try:
                http_method = getattr(requests, method.lower())

                response = run_request(
                    http_method, url=url, timeout=self.timeout, **kwargs
                )
                response.raise_for_status()

                if response.content:
                    return response.json()
                return None

            except requests.RequestException as e:
                # Don't retry on 404, the endpoint does not exist on this evcc version
                if (
                    hasattr(e, "response")
                    and e.response is not None
                    and e.response.status_code == 404
                ):
                    logger.error(
                        "API request to %s failed: Endpoint not found (404). Check the evcc version.",
                        url,
                    )
                    raise

                if attempt < self.max_attempts - 1:
                    logger.warning(
                        "API request to %s failed on attempt %d/%d: %s. Retrying in %d seconds...",
                        url,
                        attempt + 1,
                        self.max_attempts,
                        str(e),
                        self.retry_delay,
                    )
                    time.sleep(self.retry_delay)
                else:
                    logger.error(
                        "API request to %s failed on final attempt %d/%d: %s",
                        path,
                        attempt + 1,
                        self.max_attempts,
                        str(e),
                    )
                    raise

    def fetch_state(self) -> tuple[DeviceState, list[ForecastSlot]]:
        """Fetch the battery snapshot and grid price forecast.

        Raises:
            GatewayUnavailableError: On network failure or an undecodable response
        """
        try:
            payload = self._api_request("get", "/api/state")
            device_state, slots = parse_state(payload)
        except (requests.RequestException, ValueError) as e:
            raise GatewayUnavailableError(
                device_address=self.host,
                operation="fetch_state",
                message=f"Failed to read state from evcc at {self.host}: {e}",
            ) from e

        logger.debug(f"Battery SoC: {device_state.state_of_charge:.0f}")
        logger.debug(f"Battery Mode: {device_state.mode.value}")
        logger.info(f"Current Price: {device_state.live_tariff:.3f} Euro/kWh")
        logger.debug(f"Forecast contains {len(slots)} slots")

        return device_state, slots

    def apply_charge_limit(self, threshold_price: float) -> None:
        """Set the battery grid charge limit, 0.0 disables grid charging.

        Raises:
            GatewayUnavailableError: If the limit could not be set
        """
        path = f"/api/batterygridchargelimit/{threshold_price:f}"

        if self.test_mode:
            logger.info("[TEST MODE] Would call POST %s", path)
            return

        logger.debug("Informing evcc about the new grid charge limit via HTTP POST...")
        try:
            self._api_request("post", path)
        except (requests.RequestException, ValueError) as e:
            raise GatewayUnavailableError(
                device_address=self.host,
                operation="apply_charge_limit",
                message=(
                    f"Failed to set grid charge limit {threshold_price:f} "
                    f"on evcc at {self.host}: {e}"
                ),
            ) from e

    def set_test_mode(self, enabled):
        """Enable or disable test mode, in test mode charge limits are only logged."""
        self.test_mode = enabled
        logger.info(f"{'Enabled' if enabled else 'Disabled'} test mode")

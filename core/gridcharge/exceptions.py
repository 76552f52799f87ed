"""Custom exception classes for grid charge controller components.

Transport faults, forecast shape mismatches and configuration problems are
kept as separate types so callers can tell a network outage apart from a
band that does not fit the forecast horizon.
"""


class GridChargeException(Exception):
    """Base exception for all grid charge controller components."""
    pass


class GatewayUnavailableError(GridChargeException):
    """Raised when the charging gateway is unreachable or returns malformed data."""

    def __init__(self, device_address=None, operation=None, message=None):
        if message is None:
            if device_address and operation:
                message = f"Gateway {device_address} unavailable during {operation}"
            elif device_address:
                message = f"Gateway {device_address} unavailable"
            else:
                message = "Gateway unavailable"
        super().__init__(message)
        self.device_address = device_address
        self.operation = operation


class ForecastRangeError(GridChargeException):
    """Raised when a requested slot range does not fit the available forecast."""

    def __init__(self, start_index=None, end_index=None, available=None, message=None):
        if message is None:
            message = (
                f"Slot range {start_index}..{end_index} is outside the forecast "
                f"horizon of {available} slots"
            )
        super().__init__(message)
        self.start_index = start_index
        self.end_index = end_index
        self.available = available


class SystemConfigurationError(GridChargeException):
    """Raised when there are configuration or system setup issues."""

    def __init__(self, component=None, message=None):
        if message is None:
            if component:
                message = f"Configuration error in {component}"
            else:
                message = "System configuration error"
        super().__init__(message)
        self.component = component

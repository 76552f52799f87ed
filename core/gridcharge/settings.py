"""Core configuration values and types for the grid charge controller using dataclasses."""

from dataclasses import dataclass, field

from .exceptions import SystemConfigurationError

# Gateway defaults
DEFAULT_EVCC_HOST = "localhost:7070"
DEFAULT_THRESHOLD_MARGIN = 0.0  # currency/kWh added to the start threshold

# Loop defaults
DEFAULT_INTERVAL_SECONDS = 300
DEFAULT_DEBUG = False

# Band defaults
DEFAULT_SOC_LIMIT = 100  # percentage

# Sections of the legacy layout where bands sit directly under "evcc"
LEGACY_BAND_NAMES = ["morning", "afternoon"]


@dataclass
class TimeBand:
    """A named time-of-day range in which the cheapest slot is sought.

    The hours double as the inclusive slot index range of the forecast.
    """

    name: str
    start_hour: int
    end_hour: int
    soc_limit: float = DEFAULT_SOC_LIMIT  # percentage

    def __post_init__(self):
        for label, hour in (("start", self.start_hour), ("end", self.end_hour)):
            if not isinstance(hour, int) or not 0 <= hour <= 23:
                raise SystemConfigurationError(
                    component=f"band '{self.name}'",
                    message=f"Band '{self.name}' {label} hour must be 0-23, got {hour!r}",
                )
        if self.start_hour > self.end_hour:
            raise SystemConfigurationError(
                component=f"band '{self.name}'",
                message=(
                    f"Band '{self.name}' starts after it ends "
                    f"({self.start_hour}:00 > {self.end_hour}:00)"
                ),
            )
        if not 0 <= self.soc_limit <= 100:
            raise SystemConfigurationError(
                component=f"band '{self.name}'",
                message=f"Band '{self.name}' battery limit must be 0-100, got {self.soc_limit}",
            )

    def contains_hour(self, hour: int) -> bool:
        """Check if an hour of day falls inside [start_hour, end_hour)."""
        return self.start_hour <= hour < self.end_hour

    @property
    def slot_range(self) -> tuple[int, int]:
        """Inclusive forecast slot index range searched for this band."""
        return self.start_hour, self.end_hour

    @classmethod
    def from_config(cls, name: str, config: dict) -> "TimeBand":
        """Create a band from a config section with start, end and battery_limit."""
        try:
            return cls(
                name=name,
                start_hour=int(config["start"]),
                end_hour=int(config["end"]),
                soc_limit=float(
                    config.get(
                        "battery_limit", config.get("batteryLimit", DEFAULT_SOC_LIMIT)
                    )
                ),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise SystemConfigurationError(
                component=f"band '{name}'",
                message=f"Invalid band configuration for '{name}': {e!r}",
            ) from e


@dataclass
class ControllerSettings:
    """Gateway, loop and band settings, reloaded every cycle."""

    evcc_host: str = DEFAULT_EVCC_HOST
    interval: int = DEFAULT_INTERVAL_SECONDS  # seconds, 0 = single cycle
    debug: bool = DEFAULT_DEBUG
    threshold_margin: float = DEFAULT_THRESHOLD_MARGIN
    bands: list[TimeBand] = field(default_factory=list)

    def find_active_band(self, hour: int) -> TimeBand | None:
        """Return the first configured band containing the hour, if any."""
        for band in self.bands:
            if band.contains_hour(hour):
                return band
        return None

    @classmethod
    def from_config(cls, config: dict) -> "ControllerSettings":
        """Create settings from the parsed config file.

        Bands are read from ``evcc.bands``; the legacy ``evcc.morning`` and
        ``evcc.afternoon`` sections are accepted too.
        """
        if not isinstance(config, dict):
            raise SystemConfigurationError(
                component="config", message="Configuration must be a mapping"
            )

        global_config = config.get("global") or {}
        evcc_config = config.get("evcc") or {}

        host = evcc_config.get("host")
        if not host:
            raise SystemConfigurationError(
                component="evcc", message="Required setting 'evcc.host' is missing"
            )

        band_sections = dict(evcc_config.get("bands") or {})
        for name in LEGACY_BAND_NAMES:
            if name in evcc_config and name not in band_sections:
                band_sections[name] = evcc_config[name]

        bands = [
            TimeBand.from_config(name, section)
            for name, section in band_sections.items()
        ]

        try:
            return cls(
                evcc_host=str(host),
                interval=int(global_config.get("interval", DEFAULT_INTERVAL_SECONDS)),
                debug=bool(global_config.get("debug", DEFAULT_DEBUG)),
                threshold_margin=float(
                    evcc_config.get("threshold_margin", DEFAULT_THRESHOLD_MARGIN)
                ),
                bands=bands,
            )
        except (TypeError, ValueError) as e:
            raise SystemConfigurationError(
                component="global", message=f"Invalid configuration value: {e}"
            ) from e

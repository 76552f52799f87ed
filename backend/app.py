import os
from contextlib import asynccontextmanager

import log_config
import yaml

# Import endpoints router
from api import router as endpoints_router
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from dotenv import load_dotenv
from fastapi import FastAPI
from loguru import logger

# Import grid charge modules
from core.gridcharge.charge_controller import ChargeController
from core.gridcharge.evcc_api_controller import EVCCAPIController
from core.gridcharge.exceptions import SystemConfigurationError
from core.gridcharge.settings import ControllerSettings

CONFIG_SEARCH_PATHS = ["/etc/fronius-bc/config.yaml", "config.yaml"]
CYCLE_JOB_ID = "charge_cycle"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan manager for FastAPI app."""
    grid_charge_app.start()

    yield

    grid_charge_app.shutdown()


app = FastAPI(lifespan=lifespan)
app.include_router(endpoints_router)


class GridChargeApp:
    def __init__(self):
        """Initialize the grid charge application."""
        # Load environment variables
        load_dotenv("/data/options.env")

        self.test_mode = os.environ.get("EVCC_TEST_MODE", "false").lower() in (
            "true",
            "1",
            "yes",
        )

        # Startup needs a valid config, later reload failures keep the last good one
        self.settings = self._load_settings()
        log_config.set_log_level(self.settings.debug)

        self.charge_controller = ChargeController(
            self._init_evcc_controller(self.settings.evcc_host),
            settings=self.settings,
        )

        self.scheduler = BackgroundScheduler(
            {
                "apscheduler.job_defaults": {
                    "misfire_grace_time": 30,
                    "coalesce": True,
                    "max_instances": 1,
                },
            }
        )

        logger.info("-- Fronius Battery Control via EVCC --")
        logger.info("Grid charge app initialized")

    def _init_evcc_controller(self, host):
        """Create the evcc controller, honouring test mode."""
        controller = EVCCAPIController(host=host)
        if self.test_mode:
            logger.info("Enabling test mode - charge limits will only be logged")
        controller.set_test_mode(self.test_mode)
        return controller

    def _find_config_file(self):
        """Return the first existing config file, CONFIG_PATH taking precedence."""
        candidates = CONFIG_SEARCH_PATHS
        if os.environ.get("CONFIG_PATH"):
            candidates = [os.environ["CONFIG_PATH"], *CONFIG_SEARCH_PATHS]

        for path in candidates:
            if os.path.exists(path):
                return path
        raise SystemConfigurationError(
            component="config",
            message=f"No config file found, looked in {', '.join(candidates)}",
        )

    def _load_settings(self):
        """Load and validate settings from the config file and environment."""
        config_path = self._find_config_file()
        try:
            with open(config_path) as f:
                config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise SystemConfigurationError(
                component="config", message=f"Error loading {config_path}: {e}"
            ) from e

        host_override = os.environ.get("EVCC_HOST")
        if host_override:
            config.setdefault("evcc", {})["host"] = host_override

        settings = ControllerSettings.from_config(config)

        logger.debug(f"Loaded settings from {config_path}")
        logger.debug(f"Config Setting Interval={settings.interval}")
        logger.debug(f"Config Setting EVCC_Host={settings.evcc_host}")
        logger.debug(f"Config Setting Threshold_Margin={settings.threshold_margin}")
        for band in settings.bands:
            logger.debug(
                f"Config Setting {band.name}: {band.start_hour}-{band.end_hour}, "
                f"Battery_Limit={band.soc_limit}"
            )
        return settings

    def _reload_settings(self):
        """Re-read the config file, keeping the last good settings on failure."""
        try:
            settings = self._load_settings()
        except SystemConfigurationError as e:
            logger.error(f"Config reload failed, keeping previous settings: {e}")
            self.charge_controller.failure_tracker.record_failure(
                e, device_address=self.settings.evcc_host
            )
            return

        controller = None
        if settings.evcc_host != self.settings.evcc_host:
            logger.info(
                f"evcc host changed from {self.settings.evcc_host} to {settings.evcc_host}"
            )
            controller = self._init_evcc_controller(settings.evcc_host)

        if settings.debug != self.settings.debug:
            log_config.set_log_level(settings.debug)

        if settings.interval != self.settings.interval and self.scheduler.get_job(
            CYCLE_JOB_ID
        ):
            if settings.interval <= 0:
                # Nothing can bring the job back, there are no further reloads
                logger.info("Interval changed to 0, no further cycles are scheduled")
                self.scheduler.remove_job(CYCLE_JOB_ID)
            else:
                logger.info(f"Cycle interval changed to {settings.interval} seconds")
                self.scheduler.reschedule_job(
                    CYCLE_JOB_ID, trigger=IntervalTrigger(seconds=settings.interval)
                )

        self.settings = settings
        self.charge_controller.update_settings(settings, controller=controller)

    def run_cycle(self):
        """Scheduler job: reload config, then run one decision cycle."""
        self._reload_settings()
        self.charge_controller.run_scheduled_cycle()

    def start(self):
        """Run a first cycle and start the interval scheduler."""
        self.run_cycle()

        if self.settings.interval <= 0:
            logger.info("Interval is 0, no further cycles are scheduled")
            return

        self.scheduler.add_job(
            self.run_cycle,
            IntervalTrigger(seconds=self.settings.interval),
            id=CYCLE_JOB_ID,
        )
        self.scheduler.start()
        logger.info(f"Scheduler started, running every {self.settings.interval} seconds")

    def shutdown(self):
        """Stop the scheduler between cycles."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
            logger.info("Scheduler stopped")


# Global app instance
grid_charge_app = GridChargeApp()

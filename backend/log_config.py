import logging
import sys
from pathlib import Path

from loguru import logger

LOG_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <5}</level> | <cyan>{extra[module_name]}</cyan> - {message}"

# Remove default handler
logger.remove()

_handler_id = None


def add_module_name(record):
    """Ensure every record has module_name in extra."""
    if "module_name" not in record["extra"]:
        record["extra"]["module_name"] = f"{record['name']}:{record['line']}"
    return True


def set_log_level(debug: bool) -> None:
    """(Re)install the stderr sink at DEBUG or INFO level."""
    global _handler_id

    if _handler_id is not None:
        logger.remove(_handler_id)

    _handler_id = logger.add(
        sys.stderr,
        format=LOG_FORMAT,
        level="DEBUG" if debug else "INFO",
        colorize=True,
        filter=add_module_name,
    )


# Intercept standard logging
class InterceptHandler(logging.Handler):
    def emit(self, record):
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        if record.name == "root":
            module_name = record.module
        elif "." in record.name:
            module_name = record.name
        else:
            module_name = Path(record.pathname).stem

        logger.bind(module_name=f"{module_name}:{record.lineno}").opt(
            exception=record.exc_info
        ).log(level, record.getMessage())


set_log_level(debug=False)

# Route the core package's stdlib loggers through loguru
logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

# APScheduler is chatty about every job run and misfire
logging.getLogger("apscheduler.executors.default").setLevel(logging.ERROR)
logging.getLogger("apscheduler.scheduler").setLevel(logging.WARNING)
# urllib3 logs every connection at DEBUG
logging.getLogger("urllib3").setLevel(logging.INFO)

"""Logging setup for the household budget service."""
import copy
import logging
import re
from typing import Any, Dict

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
LOG_DATEFMT = "%H:%M:%S"

EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+(\.[\w-]+)+")
HEX_ID_PATTERN = re.compile(r"\b[0-9a-f]{32}\b")


def scrub(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    return HEX_ID_PATTERN.sub("[id]", EMAIL_PATTERN.sub("[email]", value))


class PIIFilter(logging.Filter):
    """Strip email addresses and record identifiers from log messages.

    Scrubs the format string and each argument separately, so formatters that
    unpack ``record.args`` (uvicorn's access log) keep working.
    Installed in production only; development logs stay verbatim.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = scrub(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(scrub(arg) for arg in record.args)
        elif isinstance(record.args, dict):
            record.args = {k: scrub(v) for k, v in record.args.items()}
        return True


def setup_logging(verbose: bool = False, production: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT)

    if production:
        pii_filter = PIIFilter()
        for handler in logging.getLogger().handlers:
            handler.addFilter(pii_filter)


def uvicorn_log_config(production: bool = False) -> Dict[str, Any]:
    """uvicorn's logging config, with the PII filter on every handler in production.

    uvicorn installs its own handlers when the server starts, so the filter has
    to be part of the config it is given.
    """
    from uvicorn.config import LOGGING_CONFIG

    config = copy.deepcopy(LOGGING_CONFIG)
    if production:
        config.setdefault("filters", {})["pii"] = {"()": PIIFilter}
        for handler in config["handlers"].values():
            handler.setdefault("filters", []).append("pii")
    return config

# rental_search/config/logging_config.py

"""Per-run timestamped logging configuration for rental_search.

Each run writes a dedicated log file inside ``logs/`` named after the
launch time (e.g. ``logs/run_20260718_093012.log``).  Every scraper runs
in its own worker thread, so file records carry the thread name next
to the ``rental_search.<area>`` logger name.

Selenium, urllib3 and webdriver-manager are chatty at DEBUG; they are
capped at WARNING so the per-run file stays readable.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from rental_search.config.settings import Settings

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS = ("selenium", "urllib3", "WDM")


def setup_logging(
    logs_dir: Path | None = None,
    console_level: int = logging.WARNING,
) -> Path:
    """Initialise the ``rental_search`` logger for the current run.

    Args:
        logs_dir: Directory for the run log; defaults to
            ``Settings.LOGS_DIR``.
        console_level: Threshold for the stderr handler.

    Returns:
        The path of the log file for this run.
    """
    target_dir = logs_dir or Settings.LOGS_DIR
    target_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = target_dir / f"run_{timestamp}.log"

    root_logger = logging.getLogger("rental_search")
    root_logger.setLevel(logging.DEBUG)

    # Repeated calls (tests, re-entrant CLI) keep the first handlers
    if root_logger.handlers:
        return log_file

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(_DETAILED_FORMAT, datefmt=_DATE_FORMAT)
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(
        logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info("Logging initialised, log file: %s", log_file)
    return log_file

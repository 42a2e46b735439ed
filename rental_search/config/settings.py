# rental_search/config/settings.py

"""Central configuration for the rental_search engine."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean flag such as ``1``/``true``/``no`` from the env."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Central configuration for the rental_search engine."""

    # --- Waits & structural bounds ---
    DEFAULT_WAIT_SECONDS: int = 10      # Used when criteria omit a wait
    MAX_PAGES: int = 50                 # Hard cap on any page sweep
    MAX_SCROLL_ROUNDS: int = 40         # Hard cap on "load more" clicks
    TAB_BATCH_SIZE: int = 10            # Secondary tabs open at once

    # --- Network capture ---
    LOG_POLL_ATTEMPTS: int = 5          # Reads of an empty network log
    LOG_POLL_DELAY: float = 2.0         # Seconds between those reads
    MAX_SESSION_RESTARTS: int = 3       # Browser restarts on empty capture
    RESTART_DELAY: float = 2.0          # Seconds before a restarted attempt

    # --- Browser ---
    HEADLESS: bool = _env_flag("RENTAL_SEARCH_HEADLESS", True)
    WINDOW_SIZE: str = "1920,1080"
    PAGE_LOAD_STRATEGY: str = "eager"
    CHROME_ARGUMENTS: list[str] = [
        "--disable-gpu",
        "--no-sandbox",
        "--disable-dev-shm-usage",
        "--disable-blink-features=AutomationControlled",
        "--lang=en-GB",
    ]

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = (
        BASE_DIR / "rental_search" / "config" / "selectors.json"
    )
    CRITERIA_PATH: Path = Path(
        os.getenv("RENTAL_SEARCH_CRITERIA", str(BASE_DIR / "criteria.json"))
    )
    RESULTS_DIR: Path = BASE_DIR / "results"
    LOGS_DIR: Path = BASE_DIR / "logs"

    # --- Sources ---
    AVAILABLE_SOURCES: list[dict[str, str]] = [
        {
            "id": "airbnb",
            "label": "Airbnb",
            "scraper": "rental_search.scrapers.airbnb_scraper.AirbnbScraper",
        },
        {
            "id": "booking",
            "label": "Booking",
            "scraper": "rental_search.scrapers.booking_scraper.BookingScraper",
        },
        {
            "id": "mediaferias",
            "label": "MediaFerias",
            "scraper": (
                "rental_search.scrapers.mediaferias_scraper"
                ".MediaFeriasScraper"
            ),
        },
        {
            "id": "vrbo",
            "label": "Vrbo",
            "scraper": "rental_search.scrapers.vrbo_scraper.VrboScraper",
        },
    ]

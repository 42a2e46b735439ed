# rental_search/storage/file_manager.py

"""Writes search results to disk as JSON and CSV."""

import csv
import json
import logging
import re
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from rental_search.config.settings import Settings
from rental_search.models.listing import Listing

logger = logging.getLogger("rental_search.storage")

CSV_HEADER = [
    "Number",
    "Name",
    "Distance (km)",
    "Price per night",
    "Total price",
    "URL",
]


def _slug(label: str) -> str:
    return re.sub(r"[^\w-]+", "_", label.strip()).strip("_") or "results"


class FileManager:
    """Writes one file per call, named after a label and the time."""

    def __init__(self, results_dir: Path | None = None) -> None:
        self.results_dir: Path = results_dir or Settings.RESULTS_DIR
        self.results_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("Results directory: %s", self.results_dir)

    def _target(self, prefix: str, label: str, suffix: str) -> Path:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        name = f"{prefix}{_slug(label)}_{timestamp}{suffix}"
        return self.results_dir / name

    def save_results(
        self, label: str, listings: Iterable[Listing],
    ) -> Path:
        """Save listings, in the given order, to a JSON file."""
        data = [listing.to_dict() for listing in listings]
        filepath = self._target("", label, ".json")

        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

        logger.info(
            "Saved %d listings for '%s' to %s", len(data), label, filepath
        )
        return filepath

    def export_csv(
        self, label: str, listings: Iterable[Listing],
    ) -> Path:
        """Export listings to a CSV file, cheapest stay first."""
        ranked = sorted(listings, key=lambda listing: listing.total_price)
        filepath = self._target("export_", label, ".csv")

        with open(filepath, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(CSV_HEADER)
            for number, listing in enumerate(ranked, 1):
                row = listing.to_dict()
                writer.writerow(
                    [
                        number,
                        row["name"],
                        row["distance_km"],
                        row["price_per_night"],
                        row["total_price"],
                        row["url"],
                    ]
                )

        logger.info(
            "Exported %d listings for '%s' to %s",
            len(ranked),
            label,
            filepath,
        )
        return filepath

"""Static snapshot provider and snapshot export."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..config import DataSourceConfig
from ..interfaces.data_provider import DataProvider
from ..parser import is_valid_dataset
from .errors import DataSourceError

logger = logging.getLogger(__name__)


class StaticProvider:
    """Read a ``{managers, loans, liquidations}`` JSON snapshot from disk."""

    def __init__(self, config: DataSourceConfig) -> None:
        self.path = Path(config.static_data_path) if config.static_data_path else None

    @property
    def source_name(self) -> str:
        return "static"

    async def fetch_payload(self) -> dict[str, list[dict[str, Any]]]:
        if self.path is None:
            raise DataSourceError("Static data path not configured")

        try:
            with open(self.path) as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise DataSourceError(f"Static data file not found: {self.path}") from e
        except json.JSONDecodeError as e:
            raise DataSourceError(f"Static data file {self.path} is not valid JSON: {e}") from e

        if not is_valid_dataset(data):
            raise DataSourceError(f"Invalid data structure in static file {self.path}")

        logger.info("Loaded static snapshot from %s", self.path)
        return {
            "managers": data["managers"],
            "loans": data["loans"],
            "liquidations": data["liquidations"],
        }


async def export_snapshot(
    provider: DataProvider, output_path: str | Path, origin: str = ""
) -> dict[str, int]:
    """Fetch everything from ``provider`` and write it as a static snapshot.

    Returns the number of records written per collection.
    """
    payload = await provider.fetch_payload()

    snapshot = {
        **payload,
        "exportedAt": datetime.now(timezone.utc).isoformat(),
        "exportedFrom": origin or provider.source_name,
    }

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(snapshot, f, indent=2)

    counts = {key: len(payload[key]) for key in ("managers", "loans", "liquidations")}
    logger.info(
        "Exported %d managers, %d loans, %d liquidations to %s",
        counts["managers"],
        counts["loans"],
        counts["liquidations"],
        output_path,
    )
    return counts

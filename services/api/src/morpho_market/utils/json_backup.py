"""JSON backups of every ingestion run (written before any database access)."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def file_timestamp(ts: datetime) -> str:
    """ISO timestamp safe for filenames: 2026-01-05T10-20-30-123456+00-00."""
    return ts.isoformat().replace(":", "-").replace(".", "-")


def save_to_json(output_dir: Path, filename: str, data: Any) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / filename
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    logger.info(f"Saved to {path}")
    return path


def write_backups(
    output_dir: str | Path,
    run_time: datetime,
    activities: list[dict[str, Any]],
    positions: list[dict[str, Any]],
    snapshot: dict[str, Any],
) -> list[Path]:
    """
    Write timestamped and *_latest copies of activities, positions and snapshot.

    Args:
        output_dir: Directory to write into (created if missing)
        run_time: Time of the run, used in the timestamped filenames
        activities: JSON-ready activity dicts
        positions: JSON-ready position dicts
        snapshot: JSON-ready market snapshot dict

    Returns:
        Paths of all files written
    """
    out = Path(output_dir)
    stamp = file_timestamp(run_time)
    payloads = {
        "activities": activities,
        "user_positions": positions,
        "market_snapshot": snapshot,
    }

    written = []
    for name, payload in payloads.items():
        written.append(save_to_json(out, f"{name}_{stamp}.json", payload))
    for name, payload in payloads.items():
        written.append(save_to_json(out, f"{name}_latest.json", payload))
    return written

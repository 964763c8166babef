#!/usr/bin/env python3
"""
KPIs Logger Module

Records each setup run to ~/.claude/kpis/events.jsonl so repeated runs
can be compared: how many plugins were attempted, which ones keep failing.
"""

import json
from collections import Counter
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from logger import get_logger

logger = get_logger(__name__)

SETUP_RUN = "setup_run"


def _count(data: dict[str, Any], key: str) -> int:
    value = data.get(key, 0)
    # bool is an int subclass
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


@dataclass(frozen=True)
class KPIEvent:
    """KPI event structure."""
    timestamp: str
    session_id: str
    event_type: str
    data: dict[str, Any]


class KPILogger:
    """Append-only JSONL log of setup runs.

    Attributes:
        kpis_dir: Directory for KPI storage
        events_file: Path to events.jsonl
    """

    def __init__(self, kpis_dir: Path | None = None):
        """
        Args:
            kpis_dir: Directory for KPI storage. Defaults to ~/.claude/kpis
        """
        self.kpis_dir = kpis_dir or Path.home() / ".claude" / "kpis"
        self.events_file = self.kpis_dir / "events.jsonl"

    def log_event(self, event: KPIEvent) -> None:
        """
        Append event to events.jsonl.

        Raises:
            OSError: If the directory or file cannot be written
        """
        self.kpis_dir.mkdir(parents=True, exist_ok=True)
        with open(self.events_file, 'a', encoding='utf-8') as f:
            f.write(json.dumps(asdict(event)) + '\n')

    def log_setup_run(
        self,
        session_id: str,
        total: int,
        succeeded: int,
        failed: int,
        duration_ms: int,
        failed_plugins: list[str] | None = None,
        aborted: bool = False,
        stage_failed: str | None = None
    ) -> KPIEvent:
        event = KPIEvent(
            timestamp=datetime.now().isoformat(),
            session_id=session_id,
            event_type=SETUP_RUN,
            data={
                "total": total,
                "succeeded": succeeded,
                "failed": failed,
                "duration_ms": duration_ms,
                "failed_plugins": failed_plugins or [],
                "aborted": aborted,
                "stage_failed": stage_failed,
            }
        )
        self.log_event(event)
        return event

    def get_recent_events(self, limit: int = 100) -> list[KPIEvent]:
        """
        Read recent events, newest first. Corrupt lines are skipped.
        """
        if not self.events_file.exists():
            return []

        events = []
        try:
            with open(self.events_file, 'r', encoding='utf-8', errors='replace') as f:
                for line in f:
                    try:
                        event = KPIEvent(**json.loads(line.strip()))
                    except (json.JSONDecodeError, TypeError):
                        continue
                    if not isinstance(event.data, dict):
                        continue
                    events.append(event)
        except OSError as e:
            logger.error(f"Failed to read KPI events from {self.events_file}: {e}")
            return []

        return list(reversed(events[-limit:]))

    def get_summary(self, top_failures: int = 5) -> dict[str, Any]:
        """
        Aggregate every recorded setup run.

        Args:
            top_failures: How many of the most frequently failing plugins to list

        Returns:
            Summary statistics dictionary
        """
        runs = [e for e in self.get_recent_events(limit=10000) if e.event_type == SETUP_RUN]

        failures: Counter[str] = Counter()
        summary: dict[str, Any] = {
            "runs": len(runs),
            "attempted": 0,
            "succeeded": 0,
            "failed": 0,
            "aborted_runs": 0,
        }

        for run in runs:
            summary["attempted"] += _count(run.data, "total")
            summary["succeeded"] += _count(run.data, "succeeded")
            summary["failed"] += _count(run.data, "failed")
            if run.data.get("aborted") or run.data.get("stage_failed"):
                summary["aborted_runs"] += 1
            failed_plugins = run.data.get("failed_plugins")
            if isinstance(failed_plugins, list):
                failures.update(str(name) for name in failed_plugins)

        summary["most_failed"] = failures.most_common(top_failures)
        return summary

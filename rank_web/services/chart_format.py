from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

from rank_web.domain.models import Event, RankMatrix

logger = logging.getLogger(__name__)


def epoch_millis(started: datetime) -> int:
    """Run start as UTC epoch milliseconds, truncated to the second."""
    if started.tzinfo is None:
        started = started.replace(tzinfo=timezone.utc)
    return int(started.timestamp()) * 1000


def format_chart(matrix: RankMatrix) -> str:
    """
    Build the chart series: one row per run,
    ``[timestamp_ms, null, rank_or_null, ...]``, plus the highest rank seen.
    The null in second position is the calendar marker slot.
    """
    max_rank = 0
    rows: List[List[Optional[int]]] = []

    for run in matrix.runs:
        row: List[Optional[int]] = [epoch_millis(run.started), None]
        for _search, rank in matrix.row(run):
            if rank is None or not rank.is_ranked:
                row.append(None)
                continue
            max_rank = max(max_rank, rank.rank)
            row.append(rank.rank)
        rows.append(row)

    payload = {
        "searches": [search.keyword for search in matrix.searches],
        "ranks": rows,
        "maxRank": max_rank,
    }
    return json.dumps(payload, ensure_ascii=False)


def _event_dict(event: Event) -> dict[str, Any]:
    return {
        "groupId": event.group_id,
        "day": event.day.isoformat(),
        "title": event.title,
        "description": event.description,
    }


def format_events(events: List[Event]) -> str:
    try:
        return json.dumps([_event_dict(e) for e in events], ensure_ascii=False)
    except (TypeError, ValueError, AttributeError):
        logger.warning("Failed to serialize %d events for chart, sending none", len(events), exc_info=True)
        return "[]"

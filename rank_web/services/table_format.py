from __future__ import annotations

import json
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Tuple

from rank_web.domain.models import Best, Event, RankMatrix, Run, Search

# Wire value for "not ranked" in the table payload. Consumers compare against
# this literal, so it stays fixed whatever the store uses internally.
TABLE_UNRANKED = 32767

CALENDAR_ROW_ID = -1

_UNRANKED_CELL = {"r": TABLE_UNRANKED, "p": None, "u": None}


def _dumps(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def _event_for_day(run: Run, events: List[Event]) -> Optional[Event]:
    # First match wins; one event per day is assumed.
    for candidate in events:
        if candidate.day == run.day:
            return candidate
    return None


def _search_attrs(search: Search) -> Dict[str, Any]:
    return {
        "id": search.search_id,
        "k": search.keyword,
        "t": search.tld or "",
        "d": search.device_code,
        "l": search.local or "",
        "dc": search.datacenter or "",
        "c": search.custom_parameters or "",
    }


def _best_block(best: Optional[Best]) -> Optional[Dict[str, Any]]:
    if best is None:
        return None
    return {
        "rank": best.rank,
        "date": best.run_day.date().isoformat() if best.run_day is not None else "?",
        "url": best.url or "",
    }


def format_table(matrix: RankMatrix, events: List[Event]) -> Tuple[str, str]:
    """
    Build the table payload: (data_json, days_json).

    data_json is a list whose first element is the calendar row
    (id -1, one event or null per run day), followed by one element per
    search carrying its attributes, its best rank and its per-run cells.
    """
    calendar: Dict[str, Any] = {"id": CALENDAR_ROW_ID, "best": None, "days": []}
    if not matrix.runs:
        return _dumps([calendar]), _dumps([])

    for run in matrix.runs:
        event = _event_for_day(run, events)
        calendar["days"].append(
            {"title": event.title, "description": event.description} if event is not None else None
        )

    data: List[Dict[str, Any]] = [calendar]
    for search in matrix.searches:
        days = []
        for run in matrix.runs:
            rank = matrix.get(run, search)
            if rank is not None and rank.is_ranked:
                days.append({"r": rank.rank, "p": rank.previous_rank, "u": rank.url})
            else:
                days.append(dict(_UNRANKED_CELL))

        data.append({
            "id": search.search_id,
            "search": _search_attrs(search),
            "best": _best_block(matrix.best.get(search.search_id)),
            "days": days,
        })

    return _dumps(data), _dumps([run.day.isoformat() for run in matrix.runs])


def calendar_spans(runs: List[Run]) -> Tuple[Dict[str, int], Dict[str, int]]:
    """Number of runs per year and per year-month, in run order (column header groups)."""
    years: Dict[str, int] = OrderedDict()
    months: Dict[str, int] = OrderedDict()
    for run in runs:
        year = str(run.day.year)
        month = run.day.strftime("%Y-%m")
        years[year] = years.get(year, 0) + 1
        months[month] = months.get(month, 0) + 1
    return years, months

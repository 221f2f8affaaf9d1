from __future__ import annotations

import logging
import re
from datetime import date, timedelta
from typing import Optional

from rank_web.domain.models import ReportWindow
from rank_web.repositories.rank_repository import RankRepository

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 30

_ISO_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_day(raw: Optional[str]) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` query value. Anything else counts as not provided."""
    raw = (raw or "").strip()
    if not _ISO_DAY.match(raw):
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def resolve_window(
    repo: RankRepository,
    module: int,
    start_raw: Optional[str],
    end_raw: Optional[str],
    *,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> Optional[ReportWindow]:
    """
    Pick the run window to report on.
    Returns None when the module has no completed run at all.
    """
    min_run = repo.find_first_completed_run(module, None)
    max_run = repo.find_last_completed_run(module, None)
    if min_run is None or max_run is None:
        return None

    min_day = min_run.day
    max_day = max_run.day
    default_start = max_day - timedelta(days=window_days)

    start_date = parse_day(start_raw)
    end_date = parse_day(end_raw)

    if start_date is None or end_date is None or end_date < start_date:
        start_date, end_date = default_start, max_day

    first_run = repo.find_first_completed_run(module, start_date)
    last_run = repo.find_last_completed_run(module, end_date)

    if first_run is None or last_run is None:
        logger.debug("No run around %s..%s, using default window", start_date, end_date)
        first_run = repo.find_first_completed_run(module, default_start)
        last_run = repo.find_last_completed_run(module, max_day)

    runs = repo.list_completed_runs(first_run.run_id, last_run.run_id)

    return ReportWindow(
        min_day=min_day,
        max_day=max_day,
        start_date=first_run.day,
        end_date=last_run.day,
        first_run=first_run,
        last_run=last_run,
        runs=runs,
    )

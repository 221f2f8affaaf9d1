from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from rank_web.domain.errors import TargetNotFoundError
from rank_web.domain.models import (
    DISPLAY_CHART,
    DISPLAY_EXPORT,
    DISPLAY_TABLE,
    DISPLAY_VARIATION,
    CsvExport,
    DisplayConfig,
    Group,
    RankMatrix,
    ReportWindow,
    Search,
    Target,
    TargetReport,
)
from rank_web.repositories.rank_repository import RankRepository
from rank_web.services.chart_format import format_chart, format_events
from rank_web.services.csv_export import EXPORT_FILENAME, iter_csv_lines
from rank_web.services.range_resolver import DEFAULT_WINDOW_DAYS, resolve_window
from rank_web.services.rank_matrix import build_rank_matrix
from rank_web.services.table_format import calendar_spans, format_table
from rank_web.services.variation_format import format_variation

logger = logging.getLogger(__name__)

TEMPLATE_DIR = "target"


def template_for(display: str) -> str:
    return f"{TEMPLATE_DIR}/{display}.html"


def resolve_display(raw: Optional[str], config: DisplayConfig) -> str:
    """Requested display mode, or the configured default when absent or unknown."""
    display = (raw or "").strip()
    if not display:
        return config.default_display
    if not config.accepts(display):
        return config.default_display
    return display


@dataclass
class TargetReportService:
    """
    Service layer: resolves the run window for a target and
    hands it to the formatter matching the display mode.
    """
    repo: RankRepository
    window_days: int = DEFAULT_WINDOW_DAYS

    def build(
        self,
        group: Group,
        target_id: int,
        searches: List[Search],
        start_raw: Optional[str],
        end_raw: Optional[str],
        display: str,
    ) -> Union[TargetReport, CsvExport]:
        target = self.repo.get_target(group.group_id, target_id)
        if target is None:
            raise TargetNotFoundError(group.group_id, target_id)

        window = None
        if searches:
            window = resolve_window(
                self.repo, group.module, start_raw, end_raw, window_days=self.window_days,
            )

        if window is None:
            logger.info("No completed run or no search for target %s, rendering empty view", target.target_id)
            return self._empty(target, searches, display)

        logger.info(
            "Target %s report display=%s window=%s..%s runs=%d",
            target.target_id, display, window.start_date, window.end_date, len(window.runs),
        )

        if display == DISPLAY_TABLE:
            return self._table(group, target, searches, window)
        if display == DISPLAY_CHART:
            return self._chart(group, target, searches, window)
        if display == DISPLAY_VARIATION:
            return self._variation(group, target, searches, window)
        if display == DISPLAY_EXPORT:
            matrix = build_rank_matrix(self.repo, group, target, searches, window.runs)
            return CsvExport(filename=EXPORT_FILENAME, lines=iter_csv_lines(matrix, target))

        raise ValueError(f"Unsupported display: {display}")

    # ------------------------------------------------------------------

    @staticmethod
    def _base_model(target: Target, searches: List[Search], window: ReportWindow, display: str) -> Dict[str, Any]:
        return dict(
            target=target,
            searches=searches,
            startDate=window.start_date.isoformat(),
            endDate=window.end_date.isoformat(),
            minDate=window.min_day.isoformat(),
            maxDate=window.max_day.isoformat(),
            display=display,
        )

    def _table(self, group: Group, target: Target, searches: List[Search], window: ReportWindow) -> TargetReport:
        matrix = build_rank_matrix(self.repo, group, target, searches, window.runs, with_best=True)
        events = self.repo.list_events(group, window.start_date, window.end_date)
        data, days = format_table(matrix, events)
        years, months = calendar_spans(window.runs)

        model = self._base_model(target, searches, window, DISPLAY_TABLE)
        model.update(data=data, days=days, years=years, months=months)
        return TargetReport(display=DISPLAY_TABLE, template=template_for(DISPLAY_TABLE), model=model)

    def _chart(self, group: Group, target: Target, searches: List[Search], window: ReportWindow) -> TargetReport:
        matrix = build_rank_matrix(self.repo, group, target, searches, window.runs)
        events = self.repo.list_events(group, window.start_date, window.end_date)

        model = self._base_model(target, searches, window, DISPLAY_CHART)
        model.update(ranksJson=format_chart(matrix), eventsJson=format_events(events))
        return TargetReport(display=DISPLAY_CHART, template=template_for(DISPLAY_CHART), model=model)

    def _variation(self, group: Group, target: Target, searches: List[Search], window: ReportWindow) -> TargetReport:
        last_run = window.last_run
        ranks = self.repo.list_variation_ranks(last_run.run_id, group.group_id, target.target_id)
        ranks_up, ranks_down, ranks_same = format_variation(ranks, searches)

        model = self._base_model(target, searches, window, DISPLAY_VARIATION)
        # only the latest run is shown
        model.update(
            startDate=last_run.day.isoformat(),
            endDate=last_run.day.isoformat(),
            ranksUp=ranks_up,
            ranksDown=ranks_down,
            ranksSame=ranks_same,
        )
        return TargetReport(display=DISPLAY_VARIATION, template=template_for(DISPLAY_VARIATION), model=model)

    @staticmethod
    def _empty(target: Target, searches: List[Search], display: str) -> TargetReport:
        fallback = DISPLAY_TABLE if display == DISPLAY_EXPORT else display
        empty_matrix = RankMatrix(target=target, runs=[], searches=list(searches))
        data, days = format_table(empty_matrix, [])

        model: Dict[str, Any] = dict(
            target=target,
            searches=searches,
            startDate="",
            endDate="",
            minDate="",
            maxDate="",
            display=fallback,
            data=data,
            days=days,
            years={},
            months={},
            ranksJson=format_chart(empty_matrix),
            eventsJson="[]",
            ranksUp=[],
            ranksDown=[],
            ranksSame=[],
        )
        return TargetReport(display=fallback, template=template_for(fallback), model=model)

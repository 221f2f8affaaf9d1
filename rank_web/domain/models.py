######## models.py
########

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterator, List, Optional

# Value the crawler stores when a target is not found in the results.
UNRANKED = 32767

DEVICE_DESKTOP = "desktop"
DEVICE_MOBILE = "mobile"

RUN_STATUS_DONE = "DONE_SUCCESS"
RUN_STATUSES_DONE = ("DONE_SUCCESS", "DONE_WITH_ERROR", "DONE_ABORTED", "DONE_CRASHED")

DISPLAY_TABLE = "table"
DISPLAY_CHART = "chart"
DISPLAY_VARIATION = "variation"
DISPLAY_EXPORT = "export"


@dataclass(frozen=True)
class Group:
    group_id: int
    name: str
    module: int


@dataclass(frozen=True)
class Target:
    target_id: int
    group_id: int
    name: str


@dataclass(frozen=True)
class Search:
    search_id: int
    keyword: str
    tld: Optional[str] = None
    device: str = DEVICE_DESKTOP
    local: Optional[str] = None
    datacenter: Optional[str] = None
    custom_parameters: Optional[str] = None

    @property
    def device_code(self) -> str:
        return "M" if self.device == DEVICE_MOBILE else "D"


@dataclass(frozen=True)
class Run:
    run_id: int
    module: int
    day: date
    started: datetime
    status: str = RUN_STATUS_DONE


@dataclass(frozen=True)
class Rank:
    run_id: int
    group_id: int
    target_id: int
    search_id: int
    rank: int
    previous_rank: int
    diff: int                   # rank - previous_rank, positive means worse
    url: Optional[str]

    @property
    def is_ranked(self) -> bool:
        return self.rank != UNRANKED


@dataclass(frozen=True)
class Best:
    group_id: int
    target_id: int
    search_id: int
    rank: int
    run_day: Optional[datetime]
    url: Optional[str]


@dataclass(frozen=True)
class Event:
    group_id: int
    day: date
    title: str
    description: str


@dataclass(frozen=True)
class DisplayConfig:
    default_display: str
    valid_displays: frozenset

    def accepts(self, display: str) -> bool:
        return display in self.valid_displays or display == DISPLAY_EXPORT


@dataclass(frozen=True)
class ReportWindow:
    min_day: date
    max_day: date
    start_date: date
    end_date: date
    first_run: Run
    last_run: Run
    runs: List[Run]


@dataclass
class RankMatrix:
    """
    Run x Search grid of rank rows for one target.
    Cells are None when the store holds no row for the pair.
    """
    target: Target
    runs: List[Run]
    searches: List[Search]
    cells: Dict[int, Dict[int, Optional[Rank]]] = field(default_factory=dict)
    best: Dict[int, Optional[Best]] = field(default_factory=dict)

    def get(self, run: Run, search: Search) -> Optional[Rank]:
        return self.cells.get(run.run_id, {}).get(search.search_id)

    def row(self, run: Run) -> Iterator[tuple[Search, Optional[Rank]]]:
        for search in self.searches:
            yield search, self.get(run, search)


@dataclass(frozen=True)
class TargetRank:
    now: int
    prev: int
    url: Optional[str]

    @property
    def rank_text(self) -> str:
        if self.now == UNRANKED:
            return "-"
        return str(self.now)

    @property
    def diff_text(self) -> str:
        if self.prev == UNRANKED and self.now != UNRANKED:
            return "in"
        if self.prev != UNRANKED and self.now == UNRANKED:
            return "out"
        diff = self.prev - self.now
        if diff == 0:
            return "="
        if diff > 0:
            return f"+{diff}"
        return str(diff)

    @property
    def diff_class(self) -> str:
        first = self.diff_text[0]
        if first in ("+", "i"):
            return "plus"
        if first in ("-", "o"):
            return "minus"
        return ""


@dataclass(frozen=True)
class TargetVariation:
    search: Search
    rank: Rank

    @property
    def target_rank(self) -> TargetRank:
        return TargetRank(now=self.rank.rank, prev=self.rank.previous_rank, url=self.rank.url)


@dataclass(frozen=True)
class TargetReport:
    display: str                # "table" | "chart" | "variation"
    template: str
    model: Dict[str, Any]


@dataclass(frozen=True)
class CsvExport:
    filename: str
    lines: Iterator[str]

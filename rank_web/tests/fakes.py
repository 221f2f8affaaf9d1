from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Tuple

from rank_web.domain.models import (
    UNRANKED,
    Best,
    DisplayConfig,
    Event,
    Group,
    Rank,
    Run,
    Search,
    Target,
)
from rank_web.repositories.rank_repository import RankRepository

MODULE = 1
GROUP_ID = 10
TARGET_ID = 100


# -----------------------------
# Builders
# -----------------------------
def make_group(group_id: int = GROUP_ID, module: int = MODULE) -> Group:
    return Group(group_id=group_id, name="Shop sites", module=module)


def make_target(target_id: int = TARGET_ID, group_id: int = GROUP_ID, name: str = "www.example.com") -> Target:
    return Target(target_id=target_id, group_id=group_id, name=name)


def make_search(search_id: int, keyword: str = "", **kwargs) -> Search:
    return Search(search_id=search_id, keyword=keyword or f"keyword {search_id}", **kwargs)


def make_run(run_id: int, day: date, module: int = MODULE) -> Run:
    return Run(run_id=run_id, module=module, day=day, started=datetime.combine(day, time(6, 30)))


def daily_runs(first_day: date, count: int, first_id: int = 1) -> List[Run]:
    return [make_run(first_id + i, first_day + timedelta(days=i)) for i in range(count)]


def make_rank(
    run: Run,
    search: Search,
    rank: int,
    previous_rank: int = UNRANKED,
    *,
    url: Optional[str] = None,
    target_id: int = TARGET_ID,
    group_id: int = GROUP_ID,
) -> Rank:
    if url is None and rank != UNRANKED:
        url = f"https://www.example.com/{search.search_id}"
    return Rank(
        run_id=run.run_id,
        group_id=group_id,
        target_id=target_id,
        search_id=search.search_id,
        rank=rank,
        previous_rank=previous_rank,
        diff=rank - previous_rank,
        url=url,
    )


# -----------------------------
# Test double
# -----------------------------
class FakeRankRepository(RankRepository):
    def __init__(
        self,
        runs: Optional[List[Run]] = None,
        ranks: Optional[List[Rank]] = None,
        best: Optional[List[Best]] = None,
        events: Optional[List[Event]] = None,
        groups: Optional[List[Group]] = None,
        targets: Optional[List[Target]] = None,
        searches: Optional[List[Search]] = None,
        config: Optional[DisplayConfig] = None,
    ):
        self.runs = sorted(runs or [], key=lambda r: (r.day, r.run_id))
        self.ranks: Dict[Tuple[int, int, int, int], Rank] = {
            (r.run_id, r.group_id, r.target_id, r.search_id): r for r in (ranks or [])
        }
        self.best = {(b.group_id, b.target_id, b.search_id): b for b in (best or [])}
        self.events = list(events or [])
        self.groups = {g.group_id: g for g in (groups or [make_group()])}
        self.targets = list(targets if targets is not None else [make_target()])
        self.searches = list(searches or [])
        self.config = config
        self.rank_queries = 0

    def find_first_completed_run(self, module, min_day):
        for run in self.runs:
            if run.module == module and (min_day is None or run.day >= min_day):
                return run
        return None

    def find_last_completed_run(self, module, max_day):
        for run in reversed(self.runs):
            if run.module == module and (max_day is None or run.day <= max_day):
                return run
        return None

    def list_completed_runs(self, first_run_id, last_run_id):
        return [r for r in self.runs if first_run_id <= r.run_id <= last_run_id]

    def get_rank(self, run_id, group_id, target_id, search_id):
        self.rank_queries += 1
        return self.ranks.get((run_id, group_id, target_id, search_id))

    def get_best_rank(self, group_id, target_id, search_id):
        return self.best.get((group_id, target_id, search_id))

    def list_variation_ranks(self, run_id, group_id, target_id):
        return [
            r for (rid, gid, tid, _sid), r in self.ranks.items()
            if rid == run_id and gid == group_id and tid == target_id
        ]

    def list_events(self, group, start_date, end_date):
        return [
            e for e in self.events
            if e.group_id == group.group_id and start_date <= e.day <= end_date
        ]

    def get_config(self, fallback):
        return self.config or fallback

    def get_group(self, group_id):
        return self.groups.get(group_id)

    def get_target(self, group_id, target_id):
        for t in self.targets:
            if t.group_id == group_id and t.target_id == target_id:
                return t
        return None

    def list_targets(self, group_id):
        return [t for t in self.targets if t.group_id == group_id]

    def list_searches(self, group_id):
        return list(self.searches)


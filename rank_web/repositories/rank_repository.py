from __future__ import annotations

from datetime import date
from typing import List, Optional

from rank_web.domain.models import Best, DisplayConfig, Event, Group, Rank, Run, Search, Target


class RankRepository:
    """
    Repository interface: the read-only queries the report builder needs.
    Implemented by adapters (SQL Server) and by fakes in tests.
    """

    # runs

    def find_first_completed_run(self, module: int, min_day: Optional[date]) -> Optional[Run]:
        """Earliest completed run, on or after ``min_day`` when given."""
        raise NotImplementedError

    def find_last_completed_run(self, module: int, max_day: Optional[date]) -> Optional[Run]:
        """Latest completed run, on or before ``max_day`` when given."""
        raise NotImplementedError

    def list_completed_runs(self, first_run_id: int, last_run_id: int) -> List[Run]:
        """Completed runs with ids in ``[first_run_id, last_run_id]``, ordered by day."""
        raise NotImplementedError

    # ranks

    def get_rank(self, run_id: int, group_id: int, target_id: int, search_id: int) -> Optional[Rank]:
        raise NotImplementedError

    def get_best_rank(self, group_id: int, target_id: int, search_id: int) -> Optional[Best]:
        raise NotImplementedError

    def list_variation_ranks(self, run_id: int, group_id: int, target_id: int) -> List[Rank]:
        raise NotImplementedError

    # annotations / config

    def list_events(self, group: Group, start_date: date, end_date: date) -> List[Event]:
        raise NotImplementedError

    def get_config(self, fallback: DisplayConfig) -> DisplayConfig:
        raise NotImplementedError

    # lookups used by the web layer

    def get_group(self, group_id: int) -> Optional[Group]:
        raise NotImplementedError

    def get_target(self, group_id: int, target_id: int) -> Optional[Target]:
        raise NotImplementedError

    def list_targets(self, group_id: int) -> List[Target]:
        raise NotImplementedError

    def list_searches(self, group_id: int) -> List[Search]:
        raise NotImplementedError

from __future__ import annotations

from typing import List

from rank_web.domain.models import Group, RankMatrix, Run, Search, Target
from rank_web.repositories.rank_repository import RankRepository


def build_rank_matrix(
    repo: RankRepository,
    group: Group,
    target: Target,
    searches: List[Search],
    runs: List[Run],
    *,
    with_best: bool = False,
) -> RankMatrix:
    """
    Fetch every (run, search) rank row for the target once.
    Formatters only read the resulting matrix.
    """
    matrix = RankMatrix(target=target, runs=list(runs), searches=list(searches))

    for run in matrix.runs:
        matrix.cells[run.run_id] = {
            search.search_id: repo.get_rank(run.run_id, group.group_id, target.target_id, search.search_id)
            for search in matrix.searches
        }

    if with_best:
        for search in matrix.searches:
            matrix.best[search.search_id] = repo.get_best_rank(target.group_id, target.target_id, search.search_id)

    return matrix

from __future__ import annotations

from typing import Dict, List, Tuple

from rank_web.domain.models import Rank, Search, TargetVariation


def format_variation(
    ranks: List[Rank],
    searches: List[Search],
) -> Tuple[List[TargetVariation], List[TargetVariation], List[TargetVariation]]:
    """
    Split the latest run's ranks into (improved, worsened, unchanged).

    ``diff`` is rank - previous_rank, so a positive diff is a worse position.
    Ranks for searches not in ``searches`` are dropped.
    """
    searches_by_id: Dict[int, Search] = {s.search_id: s for s in searches}

    ranks_up: List[TargetVariation] = []
    ranks_down: List[TargetVariation] = []
    ranks_same: List[TargetVariation] = []

    for rank in ranks:
        search = searches_by_id.get(rank.search_id)
        if search is None:
            continue

        variation = TargetVariation(search=search, rank=rank)
        if rank.diff > 0:
            ranks_down.append(variation)
        elif rank.diff < 0:
            ranks_up.append(variation)
        else:
            ranks_same.append(variation)

    # smallest change first in both moving buckets
    ranks_down.sort(key=lambda v: v.rank.diff)
    ranks_up.sort(key=lambda v: v.rank.diff, reverse=True)
    ranks_same.sort(key=lambda v: v.rank.rank)

    return ranks_up, ranks_down, ranks_same

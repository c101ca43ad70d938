"""
Candidate pair selection
"""

import itertools
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Set
from battle_seoul.core.utils import utcnow
from battle_seoul.models.contender import Category
from battle_seoul.schemas.contender_schemas import ContenderRead
from battle_seoul.schemas.matching_schemas import (
    MatchingFailureReason,
    MatchingWeights,
    MatchProposal,
    SelectionResult,
)
from battle_seoul.services.scoring import is_rejected, score_pair


def group_by_category(contenders: Iterable[ContenderRead]) -> Dict[Category, List[ContenderRead]]:
    pool: Dict[Category, List[ContenderRead]] = defaultdict(list)
    for contender in contenders:
        pool[contender.category].append(contender)
    return dict(pool)


def select_candidate_pairs(
    pool: Mapping[Category, List[ContenderRead]],
    max_matches: int = 3,
    weights: Optional[MatchingWeights] = None,
    now: Optional[datetime] = None,
) -> SelectionResult:
    """Best-first, non-overlapping pairs, at most max_matches of them.

    Pairs never cross categories. Every contender appears in at most one
    proposal of the batch; a higher-scored pair claims its contenders first.
    """
    if max_matches < 1:
        raise ValueError("max_matches must be a positive integer")

    if sum(len(contenders) for contenders in pool.values()) < 2:
        return SelectionResult(reason=MatchingFailureReason.INSUFFICIENT_CONTENDERS)

    now = now or utcnow()
    scored = []
    for category, contenders in pool.items():
        same_category = [contender for contender in contenders if contender.category == category]
        for a, b in itertools.combinations(same_category, 2):
            score = score_pair(a, b, weights=weights, now=now)
            if not is_rejected(score):
                scored.append((score, a, b))

    # ties resolve on the pair's ids so the ranking is reproducible
    scored.sort(key=lambda entry: (-entry[0], min(entry[1].id, entry[2].id), max(entry[1].id, entry[2].id)))

    used: Set[int] = set()
    proposals: List[MatchProposal] = []
    for score, a, b in scored:
        if len(proposals) >= max_matches:
            break
        if a.id in used or b.id in used:
            continue
        used.update((a.id, b.id))
        proposals.append(MatchProposal(contender_a=a, contender_b=b, score=score))

    if not proposals:
        return SelectionResult(reason=MatchingFailureReason.NO_VALID_MATCHES)
    return SelectionResult(proposals=proposals)

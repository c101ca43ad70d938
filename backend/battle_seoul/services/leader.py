"""
Derived leader and live-status figures for a battle
"""

from battle_seoul.models.battle import BattleSide, TIE
from battle_seoul.schemas.battle_schemas import CurrentLeader, LiveStatus


def _percent(part: int, total: int) -> int:
    # half-up, 1/8 -> 13
    return int(part * 100 / total + 0.5)


def compute_current_leader(item_a_votes: int, item_b_votes: int) -> CurrentLeader:
    """Leader is the side with strictly more votes; percentage is its share"""
    total = item_a_votes + item_b_votes
    if item_a_votes == item_b_votes or total == 0:
        return CurrentLeader(winner=TIE, percentage=50, margin=0)
    if item_a_votes > item_b_votes:
        winner, leading = BattleSide.ITEM_A.value, item_a_votes
    else:
        winner, leading = BattleSide.ITEM_B.value, item_b_votes
    return CurrentLeader(
        winner=winner,
        percentage=_percent(leading, total),
        margin=abs(item_a_votes - item_b_votes),
    )


def calculate_live_status(item_a_votes: int, item_b_votes: int) -> LiveStatus:
    """waiting / competitive / leading (>10% margin) / dominant (>20% margin)"""
    total = item_a_votes + item_b_votes
    if total == 0:
        return LiveStatus(status="waiting", percentage={"itemA": 50, "itemB": 50}, margin=0)

    percentage_a = _percent(item_a_votes, total)
    margin = abs(item_a_votes - item_b_votes)
    if margin > total * 0.2:
        status = "dominant"
    elif margin > total * 0.1:
        status = "leading"
    else:
        status = "competitive"
    return LiveStatus(
        status=status,
        percentage={"itemA": percentage_a, "itemB": 100 - percentage_a},
        margin=margin,
    )

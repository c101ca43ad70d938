"""
Cooldown state store
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import update
from sqlalchemy.orm import Session
from battle_seoul.core.utils import utcnow
from battle_seoul.models.matching_state import MatchingState, SMART_MATCHING_KEY

class CooldownStore:
    """Last matching run, persisted next to contenders and battles"""

    def __init__(self, db: Session, key: str = SMART_MATCHING_KEY):
        self.db = db
        self.key = key

    def get_last_matching_run(self) -> Optional[datetime]:
        state = self.db.get(MatchingState, self.key)
        return state.last_run_at if state else None

    def set_last_matching_run(self, timestamp: Optional[datetime]) -> None:
        state = self.db.get(MatchingState, self.key)
        if state is None:
            state = MatchingState(key=self.key)
            self.db.add(state)
        state.last_run_at = timestamp
        self.db.flush()

    def compare_and_set(self, expected: Optional[datetime], timestamp: Optional[datetime]) -> bool:
        """Set last_run_at only if it still equals expected.

        A single conditional UPDATE, so of two runs racing from the same
        expected value exactly one wins. The very first claim inserts the
        row; a concurrent first insert fails with IntegrityError.
        """
        if expected is None and self.db.get(MatchingState, self.key) is None:
            self.db.add(MatchingState(key=self.key, last_run_at=timestamp))
            self.db.flush()
            return True

        if expected is None:
            unchanged = MatchingState.last_run_at.is_(None)
        else:
            unchanged = MatchingState.last_run_at == expected
        result = self.db.execute(
            update(MatchingState)
            .where(MatchingState.key == self.key, unchanged)
            .values(last_run_at=timestamp, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

"""
Domain exceptions

Expected outcomes (cooldown, already voted, ...) are returned as result
values, not raised. Exceptions here cover transaction aborts and fatal
persistence problems.
"""


class BattleSeoulError(Exception):
    """Base class for application errors"""


class ContenderUnavailableError(BattleSeoulError):
    """A contender re-read inside a transaction is missing or already matched"""

    def __init__(self, contender_id: int, status=None):
        self.contender_id = contender_id
        self.status = status
        super().__init__(f"contender {contender_id} is not available (status={status})")


class MatchingUnavailableError(BattleSeoulError):
    """Every pair commit of a run failed on the database"""


class VotingUnavailableError(BattleSeoulError):
    """A vote could not be committed after all retries"""


class MediaDetectionError(BattleSeoulError):
    """An uploaded URL does not belong to a supported platform"""

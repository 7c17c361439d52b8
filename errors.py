"""
Error types raised by the ranking engine
"""
from typing import Optional


class RankingError(Exception):
    """Base class for ranking engine errors"""
    retryable = False


class NotFoundError(RankingError):
    """A referenced spot, territory or catch does not exist"""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} '{record_id}' not found")


class InvalidCatchError(RankingError):
    """Catch input rejected before it reaches the ranking engine"""


class TitleContentionError(RankingError):
    """
    Optimistic title update lost the race on every attempt.
    The catch itself is saved; only its title contention is undecided.
    """
    retryable = True

    def __init__(self, spot_id: str, catch_id: str, attempts: int, catch=None):
        self.spot_id = spot_id
        self.catch_id = catch_id
        self.attempts = attempts
        self.catch = catch
        super().__init__(
            f"Title update for spot '{spot_id}' conflicted {attempts} times (catch '{catch_id}')"
        )

    def with_catch(self, catch) -> 'TitleContentionError':
        self.catch = catch
        return self


def describe(error: Exception) -> Optional[str]:
    """Short machine-readable name used in API error bodies"""
    if isinstance(error, NotFoundError):
        return 'not_found'
    if isinstance(error, InvalidCatchError):
        return 'invalid_catch'
    if isinstance(error, TitleContentionError):
        return 'title_contention'
    return None

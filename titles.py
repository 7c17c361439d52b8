"""
Spot title resolution

A catch takes a spot's title only if its normalized size beats the current
best by more than the margin. The spot row is never locked: each attempt reads
the spot with its version, decides, and commits only if the version is
unchanged. On a conflict the decision is redone against the fresh row.
"""
import logging
from dataclasses import replace
from typing import Optional

from config import Config
from errors import NotFoundError, TitleContentionError
from models import Catch, Spot, TitleResult, TitleChangedEvent, parse_timestamp, utcnow
from rules import beats, qualifies

logger = logging.getLogger(__name__)


class SpotTitleResolver:
    """Decides and applies title changes for one catch at a time"""

    def __init__(self, spot_store, margin: Optional[float] = None, max_attempts: Optional[int] = None):
        self.spot_store = spot_store
        self.margin = Config.TITLE_MARGIN if margin is None else margin
        self.max_attempts = Config.TITLE_MAX_ATTEMPTS if max_attempts is None else max_attempts

    def resolve(self, catch: Catch, spot_id: Optional[str] = None) -> TitleResult:
        """
        Contend a catch for its spot's title.

        Returns an unchanged result for private catches, catches without a
        spot, and catches that do not beat the current best. Raises
        NotFoundError if the spot is missing and TitleContentionError if
        every attempt lost the version race.
        """
        spot_id = spot_id or catch.spot_id
        if spot_id is None or not qualifies(catch):
            return TitleResult.unchanged(spot_id)

        new_size = catch.normalized_size

        for attempt in range(1, self.max_attempts + 1):
            spot = self.spot_store.get(spot_id)
            if spot is None:
                raise NotFoundError('Spot', spot_id)

            holder = spot.title_holder()
            if not beats(new_size, spot.current_best_normalized(), self.margin):
                return TitleResult.unchanged(spot_id, holder, attempts=attempt, spot=spot)

            fields = self._title_fields(catch, spot)
            if self.spot_store.conditional_update(spot_id, spot.version, fields):
                return self._changed(catch, spot, fields, holder, attempt)

            logger.info(
                "Title update conflict on spot %s for catch %s (attempt %d/%d)",
                spot_id, catch.id, attempt, self.max_attempts
            )

        logger.error(
            "Giving up title resolution for catch %s on spot %s after %d attempts",
            catch.id, spot_id, self.max_attempts
        )
        raise TitleContentionError(spot_id, catch.id, self.max_attempts)

    @staticmethod
    def _title_fields(catch: Catch, spot: Spot) -> dict:
        # Best size is stored as recorded, not normalized
        return {
            'current_king_user_id': catch.user_id,
            'current_best_catch_id': catch.id,
            'current_best_size': catch.size_value,
            'current_best_unit': catch.size_unit,
            'updated_at': utcnow().isoformat(),
            'version': spot.version + 1,
        }

    @staticmethod
    def _changed(catch: Catch, spot: Spot, fields: dict, holder: Optional[str], attempt: int) -> TitleResult:
        spot_after = replace(
            spot,
            current_king_user_id=catch.user_id,
            current_best_catch_id=catch.id,
            current_best_size=catch.size_value,
            current_best_unit=catch.size_unit,
            updated_at=parse_timestamp(fields['updated_at']),
            version=fields['version'],
        )

        event = None
        if holder is not None and holder != catch.user_id:
            event = TitleChangedEvent(spot_id=spot.id, new_owner_id=catch.user_id, previous_owner_id=holder)

        logger.info(
            "Spot %s title: %s -> %s (%.2f %s)",
            spot.id, holder, catch.user_id, catch.size_value, catch.size_unit
        )

        return TitleResult(
            changed=True,
            spot_id=spot.id,
            holder_id=catch.user_id,
            previous_holder_id=holder,
            territory_id=spot.territory_id,
            spot_before=spot,
            spot_after=spot_after,
            attempts=attempt,
            event=event,
        )

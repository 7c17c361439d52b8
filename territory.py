"""
Territory rulership

The ruler of a territory is the angler holding the most spot titles in it.
Equal crown counts are broken by the summed best size of the titled spots,
then by user id so repeated calls always agree.
"""
import logging
from collections import defaultdict
from typing import Iterable, Optional

from errors import NotFoundError
from models import Spot, TerritoryRuling, TerritoryControl

logger = logging.getLogger(__name__)


def calculate_ruler(spots: Iterable[Spot]) -> TerritoryRuling:
    """
    Compute crown counts and the ruler from current spot state.

    The tie-break total sums current_best_size as recorded, without unit
    conversion, so spots stored in inches and centimeters mix raw values.
    """
    crown_counts = defaultdict(int)
    total_sizes = defaultdict(float)

    for spot in spots:
        king_id = spot.title_holder()
        if king_id is None:
            continue
        crown_counts[king_id] += 1
        if spot.current_best_size is not None:
            total_sizes[king_id] += spot.current_best_size

    standings = sorted(
        crown_counts,
        key=lambda user_id: (-crown_counts[user_id], -total_sizes[user_id], user_id),
    )

    return TerritoryRuling(
        ruler_id=standings[0] if standings else None,
        crown_counts=dict(crown_counts),
        total_sizes={user_id: total_sizes[user_id] for user_id in standings},
        standings=standings,
    )


class TerritoryService:
    """Read-side territory control lookups"""

    def __init__(self, territory_store, profile_store=None):
        self.territory_store = territory_store
        self.profile_store = profile_store

    def get_territory_control(self, territory_id: str, viewer_id: Optional[str] = None) -> TerritoryControl:
        territory = self.territory_store.get(territory_id)
        if territory is None:
            raise NotFoundError('Territory', territory_id)

        spots = self.territory_store.list_spots_for_territory(territory_id)
        ruling = calculate_ruler(spots)

        ruler = None
        if ruling.ruler_id is not None and self.profile_store is not None:
            ruler = self.profile_store.get(ruling.ruler_id)

        return TerritoryControl(
            territory=territory,
            spots=spots,
            ruler_id=ruling.ruler_id,
            ruler=ruler,
            crown_counts=ruling.crown_counts,
            viewer_crowns=ruling.crown_counts.get(viewer_id, 0) if viewer_id else 0,
        )

    def ruler_change(self, territory_id: str, spot_before: Spot, spot_after: Spot):
        """
        Ruler before and after a committed title change at one spot.
        Both rulers use the same member read, with the changed spot replaced
        by its pre-commit and post-commit snapshot respectively.
        A territory that no longer exists has no ruler on either side.
        """
        if self.territory_store.get(territory_id) is None:
            logger.warning("Spot %s points at missing territory %s", spot_after.id, territory_id)
            return None, None

        spots = self.territory_store.list_spots_for_territory(territory_id)
        if not any(s.id == spot_after.id for s in spots):
            spots.append(spot_after)

        def with_snapshot(snapshot):
            return [snapshot if s.id == snapshot.id else s for s in spots]

        before = calculate_ruler(with_snapshot(spot_before)).ruler_id
        after = calculate_ruler(with_snapshot(spot_after)).ruler_id
        return before, after

"""
Leaderboards for spots and for the whole map
"""
import logging
from collections import defaultdict
from typing import Dict, List, Optional

from config import Config
from errors import NotFoundError
from models import Catch, Profile, LeaderboardEntry, GlobalLeaderboardEntry
from rules import qualifies
from territory import calculate_ruler

logger = logging.getLogger(__name__)


def best_catch_per_user(catches: List[Catch]) -> Dict[str, Catch]:
    """Each angler's largest qualifying catch; the earlier catch wins an exact tie"""
    best: Dict[str, Catch] = {}
    for catch in sorted(catches, key=lambda c: (c.created_at, c.id)):
        if not qualifies(catch):
            continue
        existing = best.get(catch.user_id)
        if existing is None or catch.normalized_size > existing.normalized_size:
            best[catch.user_id] = catch
    return best


class LeaderboardBuilder:
    """Builds ranked views from spot, catch and territory records"""

    def __init__(self, spot_store, catch_store, territory_store, profile_store=None):
        self.spot_store = spot_store
        self.catch_store = catch_store
        self.territory_store = territory_store
        self.profile_store = profile_store

    def _profile(self, user_id: str) -> Optional[Profile]:
        if self.profile_store is None:
            return None
        return self.profile_store.get(user_id)

    def spot_leaderboard(self, spot_id: str, limit: Optional[int] = None) -> List[LeaderboardEntry]:
        """
        Best qualifying catch per angler at a spot, largest first.
        Equal normalized sizes share a rank (dense ranking).
        """
        limit = Config.SPOT_LEADERBOARD_LIMIT if limit is None else limit

        spot = self.spot_store.get(spot_id)
        if spot is None:
            raise NotFoundError('Spot', spot_id)
        king_id = spot.title_holder()

        ranked = sorted(
            best_catch_per_user(self.catch_store.list_by_spot(spot_id)).values(),
            key=lambda c: (-c.normalized_size, c.created_at, c.id),
        )

        entries = []
        rank = 0
        previous_size = None
        for catch in ranked[:max(limit, 0)]:
            if catch.normalized_size != previous_size:
                rank += 1
                previous_size = catch.normalized_size
            entries.append(LeaderboardEntry(
                rank=rank,
                user_id=catch.user_id,
                user=self._profile(catch.user_id),
                catch=catch,
                is_current_king=catch.user_id == king_id,
            ))

        return entries

    def global_leaderboard(self, limit: Optional[int] = None) -> List[GlobalLeaderboardEntry]:
        """Anglers ranked by crowns held across all spots, then by summed best size"""
        limit = Config.GLOBAL_LEADERBOARD_LIMIT if limit is None else limit

        all_spots = self.spot_store.list_all()
        ruling = calculate_ruler(all_spots)

        spots_by_territory = defaultdict(list)
        for spot in all_spots:
            if spot.territory_id is not None:
                spots_by_territory[spot.territory_id].append(spot)

        territories_ruled = defaultdict(int)
        known = set()
        for territory in self.territory_store.list_all():
            known.add(territory.id)
            ruler_id = calculate_ruler(spots_by_territory.get(territory.id, [])).ruler_id
            if ruler_id is not None:
                territories_ruled[ruler_id] += 1

        orphaned = sorted(set(spots_by_territory) - known)
        if orphaned:
            logger.warning("Spots reference missing territories %s; not counted for rulership", orphaned)

        entries = []
        for index, user_id in enumerate(ruling.standings[:max(limit, 0)]):
            entries.append(GlobalLeaderboardEntry(
                rank=index + 1,
                user_id=user_id,
                user=self._profile(user_id),
                crown_count=ruling.crown_counts[user_id],
                territories_ruled=territories_ruled[user_id],
                total_catch_size=ruling.total_sizes.get(user_id, 0.0),
            ))

        return entries

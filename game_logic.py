"""
Game logic for spot titles and territory control
"""
import logging
from collections import Counter
from typing import Optional, List, Callable

from errors import NotFoundError, TitleContentionError
from leaderboard import LeaderboardBuilder
from models import (
    Catch, CatchResult, Profile, Spot, TerritoryControl, LeaderboardEntry,
    GlobalLeaderboardEntry, TitleChangedEvent, UserStats,
)
from stores import SupabaseSpotStore, SupabaseCatchStore, SupabaseTerritoryStore, SupabaseProfileStore
from territory import TerritoryService, calculate_ruler
from titles import SpotTitleResolver

logger = logging.getLogger(__name__)


class GameService:
    """King-of-the-spot game handler"""

    def __init__(self, spot_store, catch_store, territory_store, profile_store=None,
                 notifier: Optional[Callable[[TitleChangedEvent], None]] = None,
                 resolver: Optional[SpotTitleResolver] = None):
        self.spot_store = spot_store
        self.catch_store = catch_store
        self.territory_store = territory_store
        self.profile_store = profile_store
        self.notifier = notifier
        self.resolver = resolver or SpotTitleResolver(spot_store)
        self.territories = TerritoryService(territory_store, profile_store)
        self.leaderboards = LeaderboardBuilder(spot_store, catch_store, territory_store, profile_store)

    @classmethod
    def from_supabase(cls, supabase_client, notifier=None) -> 'GameService':
        spot_store = SupabaseSpotStore(supabase_client)
        return cls(
            spot_store=spot_store,
            catch_store=SupabaseCatchStore(supabase_client),
            territory_store=SupabaseTerritoryStore(supabase_client, spot_store),
            profile_store=SupabaseProfileStore(supabase_client),
            notifier=notifier,
        )

    def submit_catch(self, catch: Catch) -> CatchResult:
        """
        Main game action: log a catch and contend it for its spot's title.

        The catch is saved before title resolution and stays saved if
        resolution fails; a TitleContentionError carries the saved catch.
        """
        if catch.spot_id is not None and self.spot_store.get(catch.spot_id) is None:
            raise NotFoundError('Spot', catch.spot_id)

        saved = self.catch_store.insert(catch)
        return self._contend(saved)

    def contest_title(self, catch_id: str) -> CatchResult:
        """Retry title resolution for an already saved catch"""
        catch = self.catch_store.get(catch_id)
        if catch is None:
            raise NotFoundError('Catch', catch_id)
        return self._contend(catch)

    def _contend(self, catch: Catch) -> CatchResult:
        if not catch.qualifies or catch.spot_id is None:
            return CatchResult.regular(catch)

        try:
            title = self.resolver.resolve(catch)
        except TitleContentionError as e:
            logger.error("Catch %s saved but its title contention is undecided: %s", catch.id, e)
            raise e.with_catch(catch)

        if not title.changed:
            return CatchResult.regular(catch, previous_king_id=title.holder_id)

        result = CatchResult(
            catch=catch,
            is_new_king=True,
            previous_king_id=title.previous_holder_id,
            event=title.event,
        )

        if title.territory_recompute:
            before, after = self.territories.ruler_change(
                title.territory_id, title.spot_before, title.spot_after
            )
            if before != after:
                result.territory_control_changed = True
                result.new_territory_ruler_id = after
                logger.info("Territory %s ruler: %s -> %s", title.territory_id, before, after)

        if title.event is not None:
            self._publish(title.event)

        return result

    def _publish(self, event: TitleChangedEvent):
        if self.notifier is None:
            return
        try:
            self.notifier(event)
        except Exception:
            logger.exception("Failed to publish title change for spot %s", event.spot_id)

    def get_king(self, spot_id: str) -> Optional[Profile]:
        spot = self.spot_store.get(spot_id)
        if spot is None:
            raise NotFoundError('Spot', spot_id)
        king_id = spot.title_holder()
        if king_id is None or self.profile_store is None:
            return None
        return self.profile_store.get(king_id)

    def get_spot_leaderboard(self, spot_id: str, limit: Optional[int] = None) -> List[LeaderboardEntry]:
        return self.leaderboards.spot_leaderboard(spot_id, limit)

    def get_global_leaderboard(self, limit: Optional[int] = None) -> List[GlobalLeaderboardEntry]:
        return self.leaderboards.global_leaderboard(limit)

    def get_territory_control(self, territory_id: str, viewer_id: Optional[str] = None) -> TerritoryControl:
        return self.territories.get_territory_control(territory_id, viewer_id)

    def get_crowned_spots(self, user_id: str) -> List[Spot]:
        return [s for s in self.spot_store.list_by_king(user_id) if s.title_holder() == user_id]

    def get_crown_count(self, user_id: str) -> int:
        return len(self.get_crowned_spots(user_id))

    def get_ruled_territories_count(self, user_id: str) -> int:
        count = 0
        for territory in self.territory_store.list_all():
            spots = self.territory_store.list_spots_for_territory(territory.id)
            if calculate_ruler(spots).ruler_id == user_id:
                count += 1
        return count

    def get_user_stats(self, user_id: str) -> UserStats:
        """Catch and crown statistics for a profile page"""
        catches = self.catch_store.list_by_user(user_id)
        if not catches:
            return UserStats(
                crowned_spots=self.get_crown_count(user_id),
                ruled_territories=self.get_ruled_territories_count(user_id),
            )

        largest = max(catches, key=lambda c: c.normalized_size)
        species_counts = Counter(c.species for c in catches)
        # Most caught species, alphabetical among equals
        favorite = min(species_counts, key=lambda s: (-species_counts[s], s))

        return UserStats(
            total_catches=len(catches),
            public_catches=sum(1 for c in catches if c.qualifies),
            crowned_spots=self.get_crown_count(user_id),
            ruled_territories=self.get_ruled_territories_count(user_id),
            largest_catch=largest.size_value,
            largest_catch_unit=largest.size_unit,
            favorite_species=favorite,
        )

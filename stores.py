"""
Supabase-backed record stores used by the ranking engine
"""
import logging
from typing import Optional, List, Dict, Any

from config import Config
from models import Catch, Spot, Territory, Profile

logger = logging.getLogger(__name__)


def _first(response) -> Optional[Dict[str, Any]]:
    if response is not None and response.data:
        return response.data[0]
    return None


class SupabaseSpotStore:
    """Spot rows, updated only through a version-checked conditional update"""

    def __init__(self, supabase_client):
        self.supabase = supabase_client

    def get(self, spot_id: str) -> Optional[Spot]:
        response = self.supabase.table(Config.SPOTS_TABLE)\
            .select('*')\
            .eq('id', spot_id)\
            .limit(1)\
            .execute()

        row = _first(response)
        return Spot.from_row(row) if row else None

    def conditional_update(self, spot_id: str, expected_version: int, fields: Dict[str, Any]) -> bool:
        """
        Apply fields only if the row still carries expected_version.
        Returns False on a version conflict (no row matched).
        """
        response = self.supabase.table(Config.SPOTS_TABLE)\
            .update(fields)\
            .eq('id', spot_id)\
            .eq('version', expected_version)\
            .execute()

        return bool(response.data)

    def list_all(self) -> List[Spot]:
        response = self.supabase.table(Config.SPOTS_TABLE).select('*').execute()
        return [Spot.from_row(row) for row in (response.data or [])]

    def list_by_king(self, user_id: str) -> List[Spot]:
        response = self.supabase.table(Config.SPOTS_TABLE)\
            .select('*')\
            .eq('current_king_user_id', user_id)\
            .execute()

        return [Spot.from_row(row) for row in (response.data or [])]

    def list_for_territory(self, territory_id: str) -> List[Spot]:
        response = self.supabase.table(Config.SPOTS_TABLE)\
            .select('*')\
            .eq('territory_id', territory_id)\
            .execute()

        return [Spot.from_row(row) for row in (response.data or [])]


class SupabaseCatchStore:
    """Catch rows; catches are inserted once and never updated here"""

    def __init__(self, supabase_client):
        self.supabase = supabase_client

    def get(self, catch_id: str) -> Optional[Catch]:
        response = self.supabase.table(Config.CATCHES_TABLE)\
            .select('*')\
            .eq('id', catch_id)\
            .limit(1)\
            .execute()

        row = _first(response)
        return Catch.from_row(row) if row else None

    def list_by_spot(self, spot_id: str) -> List[Catch]:
        response = self.supabase.table(Config.CATCHES_TABLE)\
            .select('*')\
            .eq('spot_id', spot_id)\
            .order('created_at')\
            .execute()

        return [Catch.from_row(row) for row in (response.data or [])]

    def list_by_user(self, user_id: str) -> List[Catch]:
        response = self.supabase.table(Config.CATCHES_TABLE)\
            .select('*')\
            .eq('user_id', user_id)\
            .order('created_at', desc=True)\
            .execute()

        return [Catch.from_row(row) for row in (response.data or [])]

    def insert(self, catch: Catch) -> Catch:
        """Save a catch and return the stored record"""
        try:
            response = self.supabase.table(Config.CATCHES_TABLE)\
                .insert(catch.to_row())\
                .execute()
        except Exception:
            logger.exception("Error saving catch %s", catch.id)
            raise

        row = _first(response)
        return Catch.from_row(row) if row else catch


class SupabaseTerritoryStore:
    """Territory rows; member spots are looked up by their territory_id"""

    def __init__(self, supabase_client, spot_store: SupabaseSpotStore):
        self.supabase = supabase_client
        self.spot_store = spot_store

    def get(self, territory_id: str) -> Optional[Territory]:
        response = self.supabase.table(Config.TERRITORIES_TABLE)\
            .select('*')\
            .eq('id', territory_id)\
            .limit(1)\
            .execute()

        row = _first(response)
        return Territory.from_row(row) if row else None

    def list_all(self) -> List[Territory]:
        response = self.supabase.table(Config.TERRITORIES_TABLE).select('*').execute()
        return [Territory.from_row(row) for row in (response.data or [])]

    def list_spots_for_territory(self, territory_id: str) -> List[Spot]:
        return self.spot_store.list_for_territory(territory_id)


class SupabaseProfileStore:
    """Read-only access to angler profiles"""

    def __init__(self, supabase_client):
        self.supabase = supabase_client

    def get(self, user_id: str) -> Optional[Profile]:
        response = self.supabase.table(Config.PROFILES_TABLE)\
            .select('id, username, avatar_url')\
            .eq('id', user_id)\
            .limit(1)\
            .execute()

        row = _first(response)
        return Profile.from_row(row) if row else None

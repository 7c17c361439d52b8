import pytest

from fake_supabase import FakeSupabase
from game_logic import GameService
from stores import SupabaseSpotStore, SupabaseCatchStore, SupabaseTerritoryStore, SupabaseProfileStore


@pytest.fixture()
def supabase():
    return FakeSupabase()


@pytest.fixture()
def spot_store(supabase):
    return SupabaseSpotStore(supabase)


@pytest.fixture()
def catch_store(supabase):
    return SupabaseCatchStore(supabase)


@pytest.fixture()
def territory_store(supabase, spot_store):
    return SupabaseTerritoryStore(supabase, spot_store)


@pytest.fixture()
def profile_store(supabase):
    return SupabaseProfileStore(supabase)


@pytest.fixture()
def events():
    return []


@pytest.fixture()
def game(supabase, events):
    return GameService.from_supabase(supabase, notifier=events.append)

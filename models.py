"""
Data models for the spot ranking game
"""
import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from errors import InvalidCatchError
from rules import normalize_size, qualifies, VISIBILITIES, PUBLIC

logger = logging.getLogger(__name__)


def parse_timestamp(value) -> Optional[datetime]:
    """Parse a Supabase timestamptz string"""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace('Z', '+00:00'))


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Profile:
    """Angler profile"""
    id: str
    username: str
    avatar_url: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Profile':
        return cls(id=row['id'], username=row.get('username') or '', avatar_url=row.get('avatar_url'))

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'username': self.username, 'avatar_url': self.avatar_url}


@dataclass(frozen=True)
class Catch:
    """Catch model, immutable once logged"""
    id: str
    user_id: str
    spot_id: Optional[str]
    species: str
    size_value: float
    size_unit: str
    visibility: str
    created_at: datetime
    photo_url: Optional[str] = None
    notes: Optional[str] = None
    measured_with_ar: bool = False

    @property
    def normalized_size(self) -> float:
        return normalize_size(self.size_value, self.size_unit)

    @property
    def qualifies(self) -> bool:
        return qualifies(self)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Catch':
        return cls(
            id=row['id'],
            user_id=row['user_id'],
            spot_id=row.get('spot_id'),
            species=row.get('species') or '',
            size_value=float(row['size_value']),
            size_unit=row.get('size_unit') or 'cm',
            visibility=row.get('visibility') or PUBLIC,
            created_at=parse_timestamp(row.get('created_at')) or utcnow(),
            photo_url=row.get('photo_url'),
            notes=row.get('notes'),
            measured_with_ar=bool(row.get('measured_with_ar', False)),
        )

    @classmethod
    def from_input(cls, user_id: str, payload: Dict[str, Any]) -> 'Catch':
        """Build a new catch from request input, rejecting invalid sizes and visibilities"""
        species = str(payload.get('species') or '').strip()
        if not species:
            raise InvalidCatchError("Species is required")

        try:
            size_value = float(payload.get('size_value'))
        except (TypeError, ValueError):
            raise InvalidCatchError("size_value must be a number")
        if not math.isfinite(size_value) or size_value <= 0:
            raise InvalidCatchError("size_value must be greater than zero")

        size_unit = str(payload.get('size_unit') or 'cm').strip()
        visibility = payload.get('visibility') or PUBLIC
        if visibility not in VISIBILITIES:
            raise InvalidCatchError(f"Unknown visibility: {visibility}")

        return cls(
            id=str(uuid.uuid4()),
            user_id=user_id,
            spot_id=payload.get('spot_id') or None,
            species=species,
            size_value=size_value,
            size_unit=size_unit,
            visibility=visibility,
            created_at=utcnow(),
            photo_url=payload.get('photo_url'),
            notes=payload.get('notes') or None,
            measured_with_ar=bool(payload.get('measured_with_ar', False)),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'spot_id': self.spot_id,
            'species': self.species,
            'size_value': self.size_value,
            'size_unit': self.size_unit,
            'visibility': self.visibility,
            'created_at': format_timestamp(self.created_at),
            'photo_url': self.photo_url,
            'notes': self.notes,
            'measured_with_ar': self.measured_with_ar,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.to_row()
        data['normalized_size_cm'] = self.normalized_size
        return data


@dataclass
class Spot:
    """Fishing spot with its current title state"""
    id: str
    name: str = ''
    territory_id: Optional[str] = None
    current_king_user_id: Optional[str] = None
    current_best_catch_id: Optional[str] = None
    current_best_size: Optional[float] = None
    current_best_unit: Optional[str] = None
    updated_at: Optional[datetime] = None
    version: int = 0

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Spot':
        best_size = row.get('current_best_size')
        spot = cls(
            id=row['id'],
            name=row.get('name') or '',
            territory_id=row.get('territory_id'),
            current_king_user_id=row.get('current_king_user_id'),
            current_best_catch_id=row.get('current_best_catch_id'),
            current_best_size=float(best_size) if best_size is not None else None,
            current_best_unit=row.get('current_best_unit'),
            updated_at=parse_timestamp(row.get('updated_at')),
            version=int(row.get('version') or 0),
        )
        if not spot.is_consistent:
            logger.warning(
                "Spot %s has inconsistent title state (king=%s, best_catch=%s); treating as untitled",
                spot.id, spot.current_king_user_id, spot.current_best_catch_id
            )
        return spot

    @property
    def is_consistent(self) -> bool:
        return (self.current_king_user_id is None) == (self.current_best_catch_id is None)

    def title_holder(self) -> Optional[str]:
        """King of this spot, or None when untitled or the title fields disagree"""
        if not self.is_consistent:
            return None
        return self.current_king_user_id

    def current_best_normalized(self) -> float:
        if not self.is_consistent or self.current_king_user_id is None:
            return 0.0
        return normalize_size(self.current_best_size, self.current_best_unit)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'territory_id': self.territory_id,
            'current_king_user_id': self.current_king_user_id,
            'current_best_catch_id': self.current_best_catch_id,
            'current_best_size': self.current_best_size,
            'current_best_unit': self.current_best_unit,
            'updated_at': format_timestamp(self.updated_at),
            'version': self.version,
        }


@dataclass
class Territory:
    """Group of spots that can be ruled"""
    id: str
    name: str = ''
    spot_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Territory':
        return cls(id=row['id'], name=row.get('name') or '', spot_ids=list(row.get('spot_ids') or []))

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'spot_ids': list(self.spot_ids)}


@dataclass(frozen=True)
class TitleChangedEvent:
    """Emitted when a spot's title passes from one angler to another"""
    spot_id: str
    new_owner_id: str
    previous_owner_id: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'spot_id': self.spot_id,
            'new_owner_id': self.new_owner_id,
            'previous_owner_id': self.previous_owner_id,
        }


@dataclass
class TitleResult:
    """Outcome of contending a catch for its spot's title"""
    changed: bool
    spot_id: Optional[str]
    holder_id: Optional[str]
    previous_holder_id: Optional[str] = None
    territory_id: Optional[str] = None
    spot_before: Optional[Spot] = None
    spot_after: Optional[Spot] = None
    attempts: int = 0
    event: Optional[TitleChangedEvent] = None

    @property
    def territory_recompute(self) -> bool:
        return self.changed and self.territory_id is not None

    @classmethod
    def unchanged(cls, spot_id: Optional[str], holder_id: Optional[str] = None,
                  attempts: int = 0, spot: Optional[Spot] = None) -> 'TitleResult':
        return cls(
            changed=False,
            spot_id=spot_id,
            holder_id=holder_id,
            previous_holder_id=holder_id,
            territory_id=spot.territory_id if spot else None,
            spot_before=spot,
            spot_after=spot,
            attempts=attempts,
        )


@dataclass
class CatchResult:
    """Result of submitting a catch"""
    catch: Catch
    is_new_king: bool
    previous_king_id: Optional[str]
    territory_control_changed: bool = False
    new_territory_ruler_id: Optional[str] = None
    event: Optional[TitleChangedEvent] = None

    @classmethod
    def regular(cls, catch: Catch, previous_king_id: Optional[str] = None) -> 'CatchResult':
        return cls(catch=catch, is_new_king=False, previous_king_id=previous_king_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'catch': self.catch.to_dict(),
            'is_new_king': self.is_new_king,
            'previous_king_id': self.previous_king_id,
            'territory_control_changed': self.territory_control_changed,
            'new_territory_ruler_id': self.new_territory_ruler_id,
            'event': self.event.to_dict() if self.event else None,
        }


@dataclass
class TerritoryRuling:
    """Derived ruler state of a territory"""
    ruler_id: Optional[str]
    crown_counts: Dict[str, int]
    total_sizes: Dict[str, float]
    standings: List[str]


@dataclass
class TerritoryControl:
    """Territory with its computed ruler"""
    territory: Territory
    spots: List[Spot]
    ruler_id: Optional[str]
    ruler: Optional[Profile]
    crown_counts: Dict[str, int]
    viewer_crowns: int = 0

    @property
    def total_spots(self) -> int:
        return len(self.spots)

    @property
    def ruler_crown_count(self) -> int:
        if self.ruler_id is None:
            return 0
        return self.crown_counts.get(self.ruler_id, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'territory': self.territory.to_dict(),
            'spots': [s.to_dict() for s in self.spots],
            'ruler_id': self.ruler_id,
            'ruler': self.ruler.to_dict() if self.ruler else None,
            'ruler_crown_count': self.ruler_crown_count,
            'crown_counts': dict(self.crown_counts),
            'viewer_crowns': self.viewer_crowns,
            'total_spots': self.total_spots,
        }


@dataclass
class LeaderboardEntry:
    """Per-spot leaderboard row"""
    rank: int
    user_id: str
    user: Optional[Profile]
    catch: Catch
    is_current_king: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rank': self.rank,
            'user_id': self.user_id,
            'user': self.user.to_dict() if self.user else None,
            'catch': self.catch.to_dict(),
            'is_current_king': self.is_current_king,
        }


@dataclass
class GlobalLeaderboardEntry:
    """Global leaderboard row, ranked by crowns"""
    rank: int
    user_id: str
    user: Optional[Profile]
    crown_count: int
    territories_ruled: int
    total_catch_size: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rank': self.rank,
            'user_id': self.user_id,
            'user': self.user.to_dict() if self.user else None,
            'crown_count': self.crown_count,
            'territories_ruled': self.territories_ruled,
            'total_catch_size': self.total_catch_size,
        }


@dataclass
class UserStats:
    """Profile statistics"""
    total_catches: int = 0
    public_catches: int = 0
    crowned_spots: int = 0
    ruled_territories: int = 0
    largest_catch: Optional[float] = None
    largest_catch_unit: Optional[str] = None
    favorite_species: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_catches': self.total_catches,
            'public_catches': self.public_catches,
            'crowned_spots': self.crowned_spots,
            'ruled_territories': self.ruled_territories,
            'largest_catch': self.largest_catch,
            'largest_catch_unit': self.largest_catch_unit,
            'favorite_species': self.favorite_species,
        }

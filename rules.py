"""
Size normalization and title eligibility rules
"""
from typing import Optional

# Length units and their size in centimeters
CM_PER_UNIT = {
    'cm': 1.0,
    'mm': 0.1,
    'm': 100.0,
    'in': 2.54,
    'inch': 2.54,
    'inches': 2.54,
    'ft': 30.48,
    'feet': 30.48,
}

PUBLIC = 'public'
FRIENDS_ONLY = 'friends_only'
PRIVATE = 'private'

VISIBILITIES = (PUBLIC, FRIENDS_ONLY, PRIVATE)
QUALIFYING_VISIBILITIES = frozenset((PUBLIC, FRIENDS_ONLY))


def normalize_size(value: Optional[float], unit: Optional[str]) -> float:
    """
    Convert a size to centimeters for comparison.
    Units outside the length table (weights, unknown strings) are returned as-is.
    """
    if value is None:
        return 0.0
    factor = CM_PER_UNIT.get((unit or '').strip().lower())
    if factor is None:
        return float(value)
    return float(value) * factor


def qualifies(catch) -> bool:
    """Only public and friends-only catches contend for titles"""
    return catch.visibility in QUALIFYING_VISIBILITIES


def beats(new_size: float, current_best: float, margin: float) -> bool:
    """A new normalized size takes the title only by strictly exceeding best + margin"""
    return new_size > current_best + margin

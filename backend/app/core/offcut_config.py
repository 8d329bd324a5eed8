"""Offcut Status Configuration and Policy

This module defines valid enum values for offcuts and their collaborators,
the allowed lifecycle transitions, and accessors for the business constants
(safety margins, discard threshold) that live in Settings.
"""
from enum import Enum
from typing import Dict, List, Set

from app.core.settings import settings


# =============================================================================
# Materials
# =============================================================================

class MaterialCategory(str, Enum):
    """Sheet material families"""
    PLYWOOD = "PLYWOOD"
    MDF = "MDF"
    ACRYLIC = "ACRYLIC"
    MIRROR_ACRYLIC = "MIRROR_ACRYLIC"
    OTHER = "OTHER"


# =============================================================================
# Offcuts
# =============================================================================

class OffcutShapeType(str, Enum):
    RECTANGLE = "RECTANGLE"
    IRREGULAR = "IRREGULAR"


class OffcutCondition(str, Enum):
    GOOD = "GOOD"
    OK = "OK"
    DAMAGED = "DAMAGED"


class OffcutSource(str, Enum):
    """Where an offcut came from"""
    MANUAL = "MANUAL"
    FROM_ORDER_ITEM = "FROM_ORDER_ITEM"
    FROM_BATCH = "FROM_BATCH"


class OffcutUsageType(str, Enum):
    FULL = "FULL"
    PARTIAL = "PARTIAL"


class OffcutStatus(str, Enum):
    """Valid status values for Offcuts"""
    AVAILABLE = "AVAILABLE"
    RESERVED = "RESERVED"
    USED = "USED"
    DISCARDED = "DISCARDED"


# Allowed transitions: current_status -> set of allowed next statuses
# AVAILABLE -> DISCARDED covers soft-delete and a partial use that leaves a sliver
OFFCUT_STATUS_TRANSITIONS: Dict[str, Set[str]] = {
    OffcutStatus.AVAILABLE: {
        OffcutStatus.RESERVED,
        OffcutStatus.USED,
        OffcutStatus.DISCARDED,
    },
    OffcutStatus.RESERVED: {
        OffcutStatus.USED,
        OffcutStatus.DISCARDED,
    },
    OffcutStatus.USED: {
        OffcutStatus.DISCARDED,  # soft-delete only
    },
    OffcutStatus.DISCARDED: set(),  # Terminal state
}

# Statuses from which an offcut can still be consumed
CONSUMABLE_STATUSES: Set[str] = {OffcutStatus.AVAILABLE, OffcutStatus.RESERVED}


def get_allowed_offcut_transitions(current_status: str) -> List[str]:
    """Get list of allowed next statuses for an offcut"""
    return sorted(s.value for s in OFFCUT_STATUS_TRANSITIONS.get(current_status, set()))


def is_valid_offcut_transition(current_status: str, new_status: str) -> bool:
    """Check if an offcut status transition is valid"""
    if current_status == new_status:
        return True
    allowed = OFFCUT_STATUS_TRANSITIONS.get(current_status, set())
    return new_status in allowed


# =============================================================================
# Policy
# =============================================================================

def get_safety_margin(category: str) -> float:
    """Fractional area buffer required on top of the bare minimum for a material category."""
    key = getattr(category, "value", category)
    return settings.offcut_safety_margins.get(key, settings.OFFCUT_MARGIN_DEFAULT)


def get_discard_fraction() -> float:
    return settings.OFFCUT_DISCARD_FRACTION

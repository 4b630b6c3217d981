"""
Core Business Logic Package.

Contains business logic that operates on pure data models.
Separated from models to maintain clean architecture.

Exports:
    State transitions: can_granule_transition, validate_granule_transition,
        get_execution_ancestry
    Calculations: tally_granule_statuses, derive_pdr_status
"""

# State transitions
from .transitions import (
    can_granule_transition,
    validate_granule_transition,
    get_execution_ancestry
)

# Calculations
from .calculations import (
    tally_granule_statuses,
    derive_pdr_status
)

__all__ = [
    # State transitions
    'can_granule_transition',
    'validate_granule_transition',
    'get_execution_ancestry',

    # Calculations
    'tally_granule_statuses',
    'derive_pdr_status'
]

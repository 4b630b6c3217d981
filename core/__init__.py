"""
Core Granule Operations Components.

Contains the data models, pure business rules and error codes shared by
every layer, separated from storage and transport concerns.

Structure:
    models/: Pure data structures (no business logic)
    logic/: Business logic separated from models
    errors.py: Error codes, retry classification, HTTP mapping
"""

from . import models
from . import logic

__all__ = [
    'models',
    'logic'
]

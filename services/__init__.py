"""
Granule Services - Explicit Exports (No Registration Magic!)

Components, leaves first:
    file_location      resolve_destinations, build_url_mapping
    conflict_detector  ConflictDetector
    metadata_rewriter  MetadataRewriter, detect_metadata_format
    granule_mover      GranuleMover (uses the three above)
    granule_lifecycle  GranuleLifecycle (actions, delete, workflow events)
    bulk_operations    BulkOperationService

Services depend only on interfaces.repository; concrete adapters are
wired in function_app.py.
"""

from .file_location import resolve_destinations, build_url_mapping
from .conflict_detector import ConflictDetector
from .metadata_rewriter import MetadataRewriter, detect_metadata_format
from .granule_mover import GranuleMover
from .granule_lifecycle import GranuleLifecycle, REINGEST_OVERWRITE_WARNING
from .bulk_operations import BulkOperationService

__all__ = [
    'resolve_destinations',
    'build_url_mapping',
    'ConflictDetector',
    'MetadataRewriter',
    'detect_metadata_format',
    'GranuleMover',
    'GranuleLifecycle',
    'REINGEST_OVERWRITE_WARNING',
    'BulkOperationService',
]

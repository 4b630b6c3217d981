"""
Conflict Detector.

Read-only existence checks for move targets, fanned out over a thread
pool. A non-empty result means the move must not start.

The check is point-in-time: an object created after it and before the
copy is overwritten and flagged duplicate_found by the mover.

Exports:
    ConflictDetector
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from core.models import PlannedMove
from exceptions import GranuleConflictError
from interfaces.repository import IGranuleStore, IObjectStore
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "ConflictDetector")


class ConflictDetector:
    """Finds planned targets that already hold an object."""

    def __init__(
        self,
        object_store: IObjectStore,
        max_parallel: int = 10,
        granule_store: Optional[IGranuleStore] = None
    ):
        """
        Args:
            object_store: Store queried with object_exists
            max_parallel: Thread pool size
            granule_store: When given, conflicts are logged with the
                granule that records the existing object
        """
        self.object_store = object_store
        self.max_parallel = max(1, max_parallel)
        self.granule_store = granule_store

    def find_existing_at_destination(self, moves: Sequence[PlannedMove]) -> List[PlannedMove]:
        """
        Planned moves whose target already exists.

        Files already at their target are not checked. Input order is
        preserved in the result.
        """
        candidates = [m for m in moves if m.changes_location]
        if not candidates:
            return []

        if len(candidates) == 1:
            exists = [self.object_store.object_exists(candidates[0].target)]
        else:
            workers = min(self.max_parallel, len(candidates))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                # map() yields in submission order
                exists = list(executor.map(
                    lambda m: self.object_store.object_exists(m.target),
                    candidates
                ))

        existing = [move for move, found in zip(candidates, exists) if found]
        if existing:
            self._log_owners(existing)
        return existing

    def ensure_no_conflicts(self, moves: Sequence[PlannedMove]) -> None:
        """
        Raises:
            GranuleConflictError: With the colliding file names in plan order
        """
        existing = self.find_existing_at_destination(moves)
        if existing:
            raise GranuleConflictError([m.file_name for m in existing])

    def _log_owners(self, existing: Sequence[PlannedMove]) -> None:
        for move in existing:
            owner = None
            if self.granule_store is not None:
                folder = move.target.key.rsplit("/", 1)[0] if "/" in move.target.key else ""
                for granule_id, recorded in self.granule_store.list_files_at_location(
                    move.target.bucket, folder
                ):
                    if recorded.key == move.target.key:
                        owner = granule_id
                        break
            logger.warning(
                f"Destination {move.target} for {move.file_name} already exists"
                + (f" (recorded by granule {owner})" if owner else "")
            )

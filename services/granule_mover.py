"""
Granule Move Orchestrator.

Relocates a granule's files according to destination rules in five
stages, each joined before the next starts:

    resolve  -> target per file (services.file_location)
    check    -> refuse if any target already exists (ConflictDetector)
    move     -> copy to target, delete source, per file in parallel
    rewrite  -> fix URLs in the granule's CMR metadata, re-publish if live
    persist  -> save the granule record with the final file locations

Failure policy:
    - resolve/check failures leave storage and the record untouched
      (ValidationError, GranuleConflictError propagate unchanged).
    - Any later failure, including one that is not a BusinessLogicError,
      raises MoveError naming the stage with the moved and
      failed file names. Moved files are never rolled back; the record
      is saved with whatever locations actually changed, so a retry with
      the same destinations skips them.
    - A catalog re-publish failure raises CatalogError after the record
      has been saved.

Exports:
    GranuleMover
"""

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Sequence, Tuple

from config import StorageConfig
from core.models import DestinationRule, GranuleFile, GranuleRecord, MoveResult, PlannedMove
from exceptions import BusinessLogicError, CatalogError, GranuleConflictError, MoveError, ValidationError
from interfaces.repository import ICatalogClient, IGranuleStore, IObjectStore
from util_logger import LoggerFactory, ComponentType

from .conflict_detector import ConflictDetector
from .file_location import build_url_mapping, resolve_destinations
from .metadata_rewriter import MetadataRewriter, detect_metadata_format

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "GranuleMover")


class _FileMoveFailure(Exception):
    """One file failed; copied tells whether the target now holds it."""

    def __init__(self, file_name: str, cause: BaseException, copied: bool):
        super().__init__(f"{file_name}: {cause}")
        self.file_name = file_name
        self.cause = cause
        self.copied = copied


class GranuleMover:
    """
    Coordinates resolver, conflict detector and metadata rewriter.

    Stateless between calls; one instance serves concurrent requests.
    """

    def __init__(
        self,
        object_store: IObjectStore,
        granule_store: IGranuleStore,
        storage: StorageConfig,
        catalog: Optional[ICatalogClient] = None,
        conflict_detector: Optional[ConflictDetector] = None,
        rewriter: Optional[MetadataRewriter] = None
    ):
        self.object_store = object_store
        self.granule_store = granule_store
        self.storage = storage
        self.catalog = catalog
        self.conflict_detector = conflict_detector or ConflictDetector(
            object_store, storage.max_parallel, granule_store
        )
        self.rewriter = rewriter or MetadataRewriter()

    def move(
        self,
        granule: GranuleRecord,
        destinations: Sequence[DestinationRule],
        timeout: Optional[float] = None
    ) -> MoveResult:
        """
        Move granule files to their resolved destinations.

        Args:
            granule: Current granule record (not mutated)
            destinations: Ordered destination rules
            timeout: Seconds for the whole move; stages and file copies
                not started by the deadline are skipped

        Returns:
            MoveResult with the updated granule

        Raises:
            ValidationError: A file has no applicable rule
            GranuleConflictError: A target already exists; nothing touched
            MoveError: move, rewrite or persist stage failed
            CatalogError: Files moved and saved but re-publish failed
        """
        deadline = time.monotonic() + timeout if timeout else None
        granule_id = granule.granule_id
        logger.info(f"Moving granule {granule_id} ({len(granule.files)} files)")

        # Stage 1: resolve
        self._check_deadline(deadline, "resolve")
        plan = resolve_destinations(granule.files, destinations)

        # plan[i] describes granule.files[i]
        pending = [(i, m) for i, m in enumerate(plan) if m.changes_location]
        unchanged = [m.file_name for m in plan if not m.changes_location]
        if not pending:
            logger.info(f"Granule {granule_id} already at its destinations; nothing to move")
            return MoveResult(granule=granule, plan=plan, unchanged=unchanged)

        # Stage 2: check
        self._check_deadline(deadline, "check")
        try:
            self.conflict_detector.ensure_no_conflicts(plan)
        except (GranuleConflictError, ValidationError):
            raise
        except BusinessLogicError as e:
            raise MoveError("check", cause=e) from e

        # Stage 3: move
        self._check_deadline(deadline, "move")
        relocated, duplicates, failures = self._move_files(granule.files, pending, deadline)

        updated = granule.model_copy(deep=True)
        updated.files = [relocated.get(i, f) for i, f in enumerate(granule.files)]
        moved_names = [m.file_name for i, m in pending if i in relocated]

        if failures:
            failed_names = [f.file_name for f in failures]
            logger.error(
                f"Move of granule {granule_id} failed for {failed_names}; moved {moved_names}"
            )
            # Record what did move so a retry does not see these copies as conflicts
            if relocated:
                self._persist(updated, moved_names, failed_names)
            first = failures[0].cause
            raise MoveError("move", cause=first, moved=moved_names, failed=failed_names) from first

        # Stage 4: rewrite
        rewritten_docs: Dict[str, bytes] = {}
        try:
            self._check_deadline(deadline, "rewrite", moved_names)
            url_mapping = build_url_mapping([m for _, m in pending], self.storage)
            for metadata_file in updated.metadata_files():
                document = self.rewriter.rewrite_file(self.object_store, metadata_file, url_mapping)
                if document is not None:
                    rewritten_docs[metadata_file.file_name] = document
        except MoveError:
            self._persist(updated, moved_names, [])
            raise
        except Exception as e:
            logger.error(f"Metadata rewrite failed for granule {granule_id}: {e}")
            self._persist(updated, moved_names, [])
            raise MoveError("rewrite", cause=e, moved=moved_names) from e

        catalog_error: Optional[CatalogError] = None
        if updated.published and rewritten_docs and self.catalog is not None:
            file_name, document = next(iter(rewritten_docs.items()))
            try:
                updated.cmr_link = self.catalog.publish_granule(
                    updated, document, detect_metadata_format(file_name, document)
                )
            except CatalogError as e:
                catalog_error = e
            except Exception as e:
                catalog_error = CatalogError(f"Re-publish of {granule_id} failed: {type(e).__name__}: {e}")
                catalog_error.__cause__ = e

        # Stage 5: persist (always entered once files have moved)
        saved = self._persist(updated, moved_names, [])

        if catalog_error is not None:
            logger.error(
                f"Granule {granule_id} files moved but CMR re-publish failed: {catalog_error}"
            )
            raise catalog_error

        logger.info(
            f"Moved granule {granule_id}: {len(moved_names)} moved, {len(unchanged)} unchanged, "
            f"{len(rewritten_docs)} metadata rewritten"
        )
        return MoveResult(
            granule=saved,
            plan=plan,
            moved=moved_names,
            unchanged=unchanged,
            duplicates=duplicates,
            metadata_rewritten=list(rewritten_docs)
        )

    # ========================================================================
    # STAGE HELPERS
    # ========================================================================

    def _move_files(
        self,
        files: Sequence[GranuleFile],
        pending: Sequence[Tuple[int, PlannedMove]],
        deadline: Optional[float]
    ) -> Tuple[Dict[int, GranuleFile], List[str], List[_FileMoveFailure]]:
        """
        Fan out copy+delete per file and join.

        Returns:
            (file index -> relocated file, duplicate names, failures in plan order)
        """
        duplicate_by_index: Dict[int, bool] = {}
        failures: Dict[int, _FileMoveFailure] = {}

        workers = max(1, min(self.storage.max_parallel, len(pending)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self._move_one, move, deadline): index
                for index, move in pending
            }
            for future in as_completed(futures):
                index = futures[future]
                try:
                    duplicate_by_index[index] = future.result()
                except _FileMoveFailure as failure:
                    failures[index] = failure
                    if failure.copied:
                        duplicate_by_index[index] = False

        relocated: Dict[int, GranuleFile] = {}
        duplicates: List[str] = []
        for index, move in pending:
            if index not in duplicate_by_index:
                continue
            duplicate = duplicate_by_index[index]
            relocated[index] = files[index].at(move.target, duplicate_found=duplicate)
            if duplicate:
                duplicates.append(move.file_name)

        ordered_failures = [failures[i] for i, _ in pending if i in failures]
        return relocated, duplicates, ordered_failures

    def _move_one(self, move: PlannedMove, deadline: Optional[float]) -> bool:
        """
        Copy then delete one file.

        Returns:
            True if an object appeared at the target after the conflict
            check and was overwritten
        """
        if deadline is not None and time.monotonic() > deadline:
            raise _FileMoveFailure(
                move.file_name, TimeoutError("move deadline passed before copy"), copied=False
            )
        try:
            duplicate = self.object_store.object_exists(move.target)
            if duplicate:
                logger.warning(
                    f"{move.target} appeared after the conflict check; overwriting with {move.file_name}"
                )
            self.object_store.copy_object(move.source, move.target)
        except Exception as e:
            raise _FileMoveFailure(move.file_name, e, copied=False) from e

        try:
            if not self.object_store.delete_object(move.source):
                logger.warning(f"Source {move.source} was already absent after copy")
        except Exception as e:
            raise _FileMoveFailure(move.file_name, e, copied=True) from e

        logger.debug(f"Moved {move.source} → {move.target}")
        return duplicate

    def _persist(self, granule: GranuleRecord, moved: List[str], failed: List[str]) -> GranuleRecord:
        try:
            return self.granule_store.save(granule)
        except Exception as e:
            logger.error(f"Failed to save granule {granule.granule_id} after move: {e}")
            raise MoveError("persist", cause=e, moved=moved, failed=failed) from e

    @staticmethod
    def _check_deadline(deadline: Optional[float], stage: str, moved: Optional[List[str]] = None) -> None:
        if deadline is not None and time.monotonic() > deadline:
            raise MoveError(
                stage,
                cause=TimeoutError(f"move deadline exceeded before {stage}"),
                moved=moved
            )

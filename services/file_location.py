"""
File Location Resolver.

Maps each granule file to its target location under ordered destination
rules. Pure function: no I/O, same inputs always give the same plan.

Routing:
    - Rules are tried in caller order; the first rule whose regex is
      found in the file's fileName decides bucket and key
      ("{filepath}/{fileName}").
    - A CMR metadata file (.cmr.xml / .cmr.json) that no rule matches
      stays where it is; it is rewritten in place after the move.
    - Any other file that no rule matches fails the whole resolution.

Exports:
    resolve_destinations: files + rules -> List[PlannedMove]
    build_url_mapping: moved files -> {old URL: new URL}
"""

from typing import Dict, Iterable, List, Optional, Sequence

from config import StorageConfig
from core.models import DestinationRule, GranuleFile, PlannedMove
from exceptions import ValidationError
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "FileLocationResolver")


def _first_match(file_name: str, destinations: Sequence[DestinationRule]) -> Optional[DestinationRule]:
    for rule in destinations:
        if rule.matches(file_name):
            return rule
    return None


def resolve_destinations(
    files: Sequence[GranuleFile],
    destinations: Sequence[DestinationRule]
) -> List[PlannedMove]:
    """
    Resolve the target location of every file.

    Args:
        files: The granule's current files, in record order
        destinations: Ordered destination rules

    Returns:
        One PlannedMove per file, in the same order as files

    Raises:
        ValidationError: A non-metadata file has no applicable rule, or
            two files resolve to the same target
    """
    plan: List[PlannedMove] = []
    unmatched: List[str] = []

    for granule_file in files:
        rule = _first_match(granule_file.file_name, destinations)
        if rule is not None:
            target = rule.target_for(granule_file.file_name)
        elif granule_file.is_cmr_metadata:
            target = granule_file.location
        else:
            unmatched.append(granule_file.file_name)
            continue
        plan.append(PlannedMove(
            file_name=granule_file.file_name,
            source=granule_file.location,
            target=target
        ))

    if unmatched:
        raise ValidationError(
            f"No applicable destination rule for files: {', '.join(unmatched)}"
        )

    seen: Dict[str, str] = {}
    for move in plan:
        target_key = str(move.target)
        if target_key in seen:
            raise ValidationError(
                f"Files {seen[target_key]} and {move.file_name} resolve to the same "
                f"destination {target_key}"
            )
        seen[target_key] = move.file_name

    logger.debug(
        f"Resolved {len(plan)} files, "
        f"{sum(1 for m in plan if m.changes_location)} change location"
    )
    return plan


def build_url_mapping(moves: Iterable[PlannedMove], storage: StorageConfig) -> Dict[str, str]:
    """
    Old -> new URL for every file whose location changes.

    Both the public distribution URL and the s3:// form are mapped, since
    either may appear in CMR metadata.
    """
    mapping: Dict[str, str] = {}
    for move in moves:
        if not move.changes_location:
            continue
        mapping[storage.distribution_url(move.source.bucket, move.source.key)] = \
            storage.distribution_url(move.target.bucket, move.target.key)
        mapping[f"s3://{move.source}"] = f"s3://{move.target}"
    return mapping

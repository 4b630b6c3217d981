"""
Business Calculations for PDRs.

Contains calculation logic separated from data models.
All functions are pure and operate on model data.

Exports:
    tally_granule_statuses: Count granule statuses into PdrStats
    derive_pdr_status: Aggregate PDR status from its stats
"""

from typing import Iterable, Mapping, Union

from ..models.enums import GranuleStatus, PdrStatus
from ..models.execution import PdrStats


def tally_granule_statuses(
    statuses: Union[Iterable[GranuleStatus], Mapping[GranuleStatus, int]]
) -> PdrStats:
    """
    Build PdrStats from a list of statuses or a status -> count mapping.

    Args:
        statuses: Individual granule statuses or pre-aggregated counts

    Returns:
        PdrStats with running/completed/failed counts
    """
    counts = {status: 0 for status in GranuleStatus}
    if isinstance(statuses, Mapping):
        for status, count in statuses.items():
            counts[GranuleStatus(status)] += count
    else:
        for status in statuses:
            counts[GranuleStatus(status)] += 1
    return PdrStats(
        running=counts[GranuleStatus.RUNNING],
        completed=counts[GranuleStatus.COMPLETED],
        failed=counts[GranuleStatus.FAILED]
    )


def derive_pdr_status(stats: PdrStats) -> PdrStatus:
    """
    Aggregate status of a PDR.

    Terminal only when no granule remains running; then failed if any
    granule failed, completed otherwise.

    Args:
        stats: Granule status tally

    Returns:
        PdrStatus
    """
    if stats.running > 0:
        return PdrStatus.RUNNING
    if stats.failed > 0:
        return PdrStatus.FAILED
    return PdrStatus.COMPLETED

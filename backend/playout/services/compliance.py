# backend/playout/services/compliance.py

from typing import Dict, List, Optional

from pydantic import BaseModel

from playout.db.store import PlayoutStore
from playout.models.approval_models import ApprovalStatus
from playout.models.flight_models import (
    ActiveFlight,
    EligibleCreative,
    FlightAllocation,
    FlightCreativeCandidate,
    normalize_weight,
)


class ComplianceResult(BaseModel):
    requires_pre_approval: bool
    eligible: List[EligibleCreative] = []


def requires_pre_approval(store: PlayoutStore, region_code: str) -> bool:
    """Unknown regions do not require pre-approval."""
    region = store.get_region(region_code)
    return bool(region and region.requires_pre_approval)


def is_compliant(
    approval_status: Optional[str],
    approval_code: Optional[str],
    pre_approval_required: bool,
) -> bool:
    """
    A creative may be shown in a region only with an approved approval there,
    and, if the region requires pre-approval, a non-empty approval code.
    """
    if approval_status != ApprovalStatus.APPROVED.value:
        return False

    if pre_approval_required:
        return bool(approval_code and approval_code.strip())

    return True


def filter_eligible(
    candidates: List[FlightCreativeCandidate],
    pre_approval_required: bool,
) -> List[EligibleCreative]:
    """
    Keeps compliant candidates and merges them per creative.

    The same creative referenced by several flights keeps one allocation per
    flight; its total weight is the sum of those allocations.
    Output order follows the first appearance of each creative.
    """
    by_creative: Dict[str, EligibleCreative] = {}

    for row in candidates:
        if not is_compliant(row.approval_status, row.approval_code, pre_approval_required):
            continue

        weight = normalize_weight(row.weight)
        entry = by_creative.get(row.creative_id)
        if entry is None:
            entry = EligibleCreative(
                creative_id=row.creative_id,
                campaign_id=row.campaign_id,
                file_url=row.file_url,
                duration_seconds=row.duration_seconds,
                allocations=[],
            )
            by_creative[row.creative_id] = entry

        entry.allocations.append(FlightAllocation(flight_id=row.flight_id, weight=weight))

    return list(by_creative.values())


def resolve_eligible_creatives(
    store: PlayoutStore,
    region_code: str,
    flights: List[ActiveFlight],
) -> ComplianceResult:
    pre_approval = requires_pre_approval(store, region_code)

    if not flights:
        return ComplianceResult(requires_pre_approval=pre_approval, eligible=[])

    candidates = store.find_flight_creatives([f.id for f in flights], region_code)
    return ComplianceResult(
        requires_pre_approval=pre_approval,
        eligible=filter_eligible(candidates, pre_approval),
    )

# backend/playout/services/approval_service.py

from datetime import datetime, timezone
from typing import Optional

from playout.db.unit_of_work import UnitOfWorkFactory, unit_of_work
from playout.errors import NotFoundError, ValidationError
from playout.logging_config import get_logger
from playout.models.approval_models import ApprovalStatus, CreativeApproval, CreativeStatus
from playout.schemas.schemas import ApprovalUpdateIn

logger = get_logger(__name__)


class ApprovalService:
    """
    Compliance officer decisions on a creative for one region.
    """

    def __init__(self, uow: UnitOfWorkFactory = unit_of_work) -> None:
        self._uow = uow

    def set_creative_approval(
        self,
        creative_id: str,
        region_code: str,
        decision: ApprovalUpdateIn,
        now: Optional[datetime] = None,
    ) -> CreativeApproval:
        """
        Upserts the (creative, region) approval.

        - approved in a pre-approval region needs an approval_code
        - approved promotes the creative itself to approved,
          unless it was explicitly rejected
        """
        now = now or datetime.now(timezone.utc)
        code = decision.approval_code.strip() if decision.approval_code else None

        with self._uow() as store:
            creative_status = store.get_creative_status(creative_id)
            if creative_status is None:
                raise NotFoundError(f"Creative not found: {creative_id}")

            region = store.get_region(region_code)
            if region is None:
                raise NotFoundError(f"Region not found: {region_code}")

            approved = decision.status == ApprovalStatus.APPROVED
            if approved and region.requires_pre_approval and not code:
                raise ValidationError(f"Region {region_code} requires an approval_code for approval")

            approval = CreativeApproval(
                creative_id=creative_id,
                region_code=region.code,
                status=decision.status,
                approval_code=code,
                approved_by_user_id=decision.approved_by_user_id,
                approved_at=now if approved else None,
                rejected_reason=decision.rejected_reason,
            )
            store.upsert_creative_approval(approval)

            if approved and creative_status != CreativeStatus.REJECTED.value:
                store.set_creative_status(creative_id, CreativeStatus.APPROVED.value)

        logger.info(
            "creative_approval_changed",
            creative_id=creative_id,
            region=region_code,
            approval_status=decision.status.value,
        )
        return approval

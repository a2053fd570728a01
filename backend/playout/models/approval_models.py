# backend/playout/models/approval_models.py

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CreativeStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class CreativeApproval(BaseModel):
    """
    Compliance record, unique per (creative, region).
    approval_code is mandatory for approved records in regions
    that require regulator pre-approval.
    """

    creative_id: str
    region_code: str
    status: ApprovalStatus = ApprovalStatus.PENDING
    approval_code: Optional[str] = None
    approved_by_user_id: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_reason: Optional[str] = None

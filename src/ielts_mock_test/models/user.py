"""User record resolved from the identity provider."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class SubscriptionTier(StrEnum):
    FREE = "free"
    PREMIUM = "premium"


class QualificationStatus(BaseModel):
    has_passed: bool = False
    attempts: int = 0
    last_attempt_at: datetime | None = None
    passed_at: datetime | None = None
    premium_access_method: str | None = None  # "exam" or "subscription"
    next_attempt_available_at: datetime | None = None


class User(BaseModel):
    user_id: str
    email: str = ""
    name: str = ""
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE
    session_token: str | None = None
    qualification: QualificationStatus = Field(default_factory=QualificationStatus)

    @property
    def is_premium(self) -> bool:
        return self.subscription_tier == SubscriptionTier.PREMIUM

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional, Tuple
from datetime import datetime
from uuid import UUID
from sentinel.models.revocation import RevocationCategory


class ResolvedDuration(BaseModel):
    seconds: int = Field(..., ge=0)
    permanent: bool

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_permanent_has_no_seconds(self):
        if self.permanent and self.seconds != 0:
            raise ValueError("permanent durations carry no seconds")
        if not self.permanent and self.seconds == 0:
            raise ValueError("temporary durations need a positive number of seconds")
        return self


class RevocationCreate(BaseModel):
    """Validated input for one revocation, before any duration policy runs."""

    identity: UUID
    display_name: str = Field(..., min_length=1, max_length=64)
    operator: Optional[str] = Field(None, max_length=64)
    category: RevocationCategory = RevocationCategory.TEMPORARY
    reason_names: List[str] = Field(default_factory=list)
    remaining_seconds_hint: int = Field(default=0, ge=0)
    notice: Optional[str] = None

    model_config = {"frozen": True}

    @field_validator("display_name")
    @classmethod
    def strip_display_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("display name must not be blank")
        return value

    @field_validator("notice")
    @classmethod
    def blank_notice_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value


class RevocationRecord(BaseModel):
    id: int
    identity: UUID
    display_name: str
    operator: Optional[str]
    category: RevocationCategory
    reason_names: Tuple[str, ...]
    remaining_seconds: int = Field(..., ge=0)
    notice: Optional[str]
    created_at: datetime
    expires_at: Optional[datetime]
    active: bool

    model_config = {"from_attributes": True, "frozen": True}

    @model_validator(mode="after")
    def check_expiry_matches_category(self):
        if self.category == RevocationCategory.PERMANENT:
            if self.expires_at is not None or self.remaining_seconds != 0:
                raise ValueError("permanent revocations never expire")
        elif self.expires_at is None:
            raise ValueError(f"{self.category.value} revocations need an expiry")
        return self

    @property
    def is_permanent(self) -> bool:
        return self.expires_at is None

    def remaining_at(self, now: datetime) -> Optional[int]:
        """Seconds left at ``now``; None when the revocation never expires."""
        if self.expires_at is None:
            return None
        return max(0, int((self.expires_at - now).total_seconds()))

    def is_blocking(self, now: datetime) -> bool:
        # the active flag lags real time by up to one sweep interval
        if not self.active:
            return False
        return self.expires_at is None or self.expires_at > now

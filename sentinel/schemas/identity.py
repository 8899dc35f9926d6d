from pydantic import BaseModel
from typing import Optional, Tuple
from datetime import datetime
from uuid import UUID

from sentinel.schemas.revocation import RevocationRecord


class ResolvedIdentity(BaseModel):
    stable_id: UUID
    display_name: str

    model_config = {"frozen": True}


class IdentityRecord(BaseModel):
    id: UUID
    display_name: str
    addresses: Tuple[str, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"frozen": True}

    def as_resolved(self) -> ResolvedIdentity:
        return ResolvedIdentity(stable_id=self.id, display_name=self.display_name)


class LoginDecision(BaseModel):
    allowed: bool
    revocation: Optional[RevocationRecord] = None
    remaining_seconds: Optional[int] = None  # None with a revocation = permanent

    model_config = {"frozen": True}

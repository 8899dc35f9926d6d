from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from sentinel.models.reason import ReasonCategory


class ReasonRecord(BaseModel):
    id: int
    name: str
    category: ReasonCategory
    duration_seconds: int = Field(..., ge=0)
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True, "frozen": True}

    @property
    def is_permanent(self) -> bool:
        return self.duration_seconds == 0

from sqlalchemy import BigInteger, Column, DateTime, Enum, Integer, String, UniqueConstraint
import enum

from sentinel.core.clock import utcnow
from sentinel.db.base_class import Base


class ReasonCategory(str, enum.Enum):
    BAN = "ban"
    MUTE = "mute"
    REPORT = "report"


class Reason(Base):
    """Catalog entry: what breaking a named rule costs, in seconds (0 = permanent)."""

    __tablename__ = "sentinel_reasons"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(128), nullable=False)
    category = Column(Enum(ReasonCategory, name="reason_category"), nullable=False)
    duration_seconds = Column("duration", BigInteger, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("name", "category", name="uq_sentinel_reasons_name_category"),
    )

    def __repr__(self) -> str:
        return f"<Reason {self.category.value}:{self.name} duration={self.duration_seconds}>"

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column in the schema stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

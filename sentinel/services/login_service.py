from typing import Optional
from uuid import UUID

import structlog

from sentinel.core.clock import Clock, utcnow
from sentinel.core.exceptions import StorageFailure
from sentinel.schemas.identity import LoginDecision
from sentinel.services.identity_service import IdentityDirectory
from sentinel.services.revocation_service import RevocationEngine

logger = structlog.get_logger()


def format_duration(seconds: Optional[int]) -> str:
    """Render a remaining duration as ``"1d 2h 3m"``; None reads as permanent."""
    if seconds is None:
        return "permanent"
    seconds = max(0, int(seconds))
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes = seconds // 60
    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes or not parts:
        parts.append(f"{minutes}m")
    return " ".join(parts)


class LoginGate:
    """Decides at connect time whether an identity may enter.

    Blocking is judged against the clock, not the active flag alone, so a ban
    that expired since the last sweep no longer keeps anyone out.
    """

    def __init__(
        self,
        engine: RevocationEngine,
        directory: Optional[IdentityDirectory] = None,
        clock: Clock = utcnow,
        fail_open: bool = True,
    ):
        self._engine = engine
        self._directory = directory
        self._clock = clock
        self._fail_open = fail_open

    def check(self, identity: UUID, display_name: str, address: Optional[str] = None) -> LoginDecision:
        if self._directory is not None:
            try:
                self._directory.register_or_update(identity, display_name, address)
            except StorageFailure:
                logger.warning("login_register_failed", identity=str(identity))

        try:
            revocation = self._engine.get_blocking(identity)
        except StorageFailure:
            logger.error("login_ban_check_failed", identity=str(identity), fail_open=self._fail_open)
            return LoginDecision(allowed=self._fail_open)

        if revocation is None:
            return LoginDecision(allowed=True)

        remaining = revocation.remaining_at(self._clock())
        logger.info(
            "login_denied",
            identity=str(identity),
            revocation_id=revocation.id,
            remaining_seconds=remaining,
        )
        return LoginDecision(allowed=False, revocation=revocation, remaining_seconds=remaining)

from datetime import timedelta
from typing import Iterable, List, Optional, Sequence
import enum

import pydantic
import structlog

from sentinel.core.clock import Clock, utcnow
from sentinel.core.exceptions import (
    IdentityNotFoundError,
    SentinelConfigurationError,
    UnknownReasonError,
    ValidationError,
)
from sentinel.models.reason import ReasonCategory
from sentinel.models.revocation import RevocationCategory
from sentinel.schemas.identity import ResolvedIdentity
from sentinel.schemas.revocation import ResolvedDuration, RevocationCreate, RevocationRecord
from sentinel.services.identity_service import IdentityResolver, require_identity
from sentinel.services.reason_service import ReasonCatalog, canonical_reason_name
from sentinel.services.revocation_store import RevocationStore

logger = structlog.get_logger()


class ManualDurationPolicy(str, enum.Enum):
    LONGER_WINS = "longer_wins"  # operators may lengthen a reason's duration, never shorten it
    CALLER_WINS = "caller_wins"


def _dedupe(names: Iterable[str]) -> List[str]:
    seen = []
    for name in names:
        if name not in seen:
            seen.append(name)
    return seen


class RevocationEngine:
    """Ban lifecycle: duration policy, one active ban per identity, reversal and expiry.

    Every method may block on the database. Nothing here holds a lock or a
    transaction across calls; each operation is one short transaction in the
    store.
    """

    def __init__(
        self,
        reasons: ReasonCatalog,
        store: RevocationStore,
        resolver: Optional[IdentityResolver] = None,
        clock: Clock = utcnow,
        manual_policy: ManualDurationPolicy = ManualDurationPolicy.LONGER_WINS,
    ):
        self._reasons = reasons
        self._store = store
        self._resolver = resolver
        self._clock = clock
        self._manual_policy = ManualDurationPolicy(manual_policy)

    # ---------------------------------------------------------------- duration

    def resolve_duration(self, reason_names: Optional[Sequence[str]]) -> ResolvedDuration:
        """Most severe reason wins: the longest duration, and any permanent reason makes it permanent."""
        names = list(reason_names or [])
        if not names:
            raise ValidationError("At least one ban reason is required")

        catalog = {reason.name: reason for reason in self._reasons.load_all(ReasonCategory.BAN)}
        unknown = _dedupe(
            "<blank>" if not (name or "").strip() else name
            for name in names
            if canonical_reason_name(name) not in catalog
        )
        if unknown:
            raise UnknownReasonError(unknown)

        longest = 0
        for name in names:
            duration = catalog[canonical_reason_name(name)].duration_seconds
            if duration == 0:
                return ResolvedDuration(seconds=0, permanent=True)
            longest = max(longest, duration)
        return ResolvedDuration(seconds=longest, permanent=False)

    # ---------------------------------------------------------------- create

    def create_auto(
        self,
        identity,
        display_name: str,
        operator: Optional[str],
        reason_names: Sequence[str],
        notice: Optional[str] = None,
    ) -> RevocationRecord:
        """Create a ban whose duration comes entirely from its reasons."""
        payload = self._validate(
            identity=identity,
            display_name=display_name,
            operator=operator,
            reason_names=list(reason_names or []),
            notice=notice,
        )
        duration = self.resolve_duration(payload.reason_names)
        category = RevocationCategory.PERMANENT if duration.permanent else RevocationCategory.TEMPORARY
        return self._persist(payload, category, duration.seconds)

    def create_manual(
        self,
        identity,
        display_name: str,
        operator: Optional[str],
        category: RevocationCategory,
        reason_names: Sequence[str],
        remaining_seconds_hint: int = 0,
        notice: Optional[str] = None,
    ) -> RevocationRecord:
        """Create a ban with an operator-chosen category and duration.

        A permanent reason forces a permanent ban whatever the caller asked
        for. Otherwise a temporary ban lasts ``max(hint, reason duration)``
        under the default policy.
        """
        payload = self._validate(
            identity=identity,
            display_name=display_name,
            operator=operator,
            category=category,
            reason_names=list(reason_names or []),
            remaining_seconds_hint=max(0, int(remaining_seconds_hint or 0)),
            notice=notice,
        )
        if payload.category == RevocationCategory.ADDRESS_SCOPED:
            raise ValidationError("Address-scoped revocations are not supported")

        duration = self.resolve_duration(payload.reason_names)
        if duration.permanent or payload.category == RevocationCategory.PERMANENT:
            return self._persist(payload, RevocationCategory.PERMANENT, 0)

        if self._manual_policy == ManualDurationPolicy.LONGER_WINS:
            remaining = max(payload.remaining_seconds_hint, duration.seconds)
        else:
            remaining = payload.remaining_seconds_hint or duration.seconds
        return self._persist(payload, RevocationCategory.TEMPORARY, remaining)

    def ban_offline_auto(
        self,
        name_or_id: str,
        operator: Optional[str],
        reason_names: Sequence[str],
        notice: Optional[str] = None,
    ) -> RevocationRecord:
        """``create_auto`` for a target known only by name or id string."""
        target = self._resolve_target(name_or_id)
        return self.create_auto(target.stable_id, target.display_name, operator, reason_names, notice)

    def ban_offline(
        self,
        name_or_id: str,
        operator: Optional[str],
        category: RevocationCategory,
        reason_names: Sequence[str],
        remaining_seconds_hint: int = 0,
        notice: Optional[str] = None,
    ) -> RevocationRecord:
        target = self._resolve_target(name_or_id)
        return self.create_manual(
            target.stable_id,
            target.display_name,
            operator,
            category,
            reason_names,
            remaining_seconds_hint,
            notice,
        )

    # ---------------------------------------------------------------- read

    def exists_active(self, identity) -> bool:
        return self._store.exists_active(require_identity(identity))

    def get_active(self, identity) -> Optional[RevocationRecord]:
        return self._store.get_active(require_identity(identity))

    def get_blocking(self, identity) -> Optional[RevocationRecord]:
        """The active ban that blocks ``identity`` right now, checked against the clock."""
        revocation = self.get_active(identity)
        if revocation is None or not revocation.is_blocking(self._clock()):
            return None
        return revocation

    def get(self, revocation_id: int) -> Optional[RevocationRecord]:
        return self._store.get(revocation_id)

    def list_all(self, active_only: bool = False, limit: Optional[int] = None) -> List[RevocationRecord]:
        return self._store.list_all(active_only=active_only, limit=limit)

    def list_for(self, identity) -> List[RevocationRecord]:
        return self._store.list_for(require_identity(identity))

    def list_for_name(self, display_name: str) -> List[RevocationRecord]:
        return self._store.list_for_name(display_name)

    # ---------------------------------------------------------------- mutate

    def reverse(self, revocation_id: int) -> bool:
        """Lift one ban. Unknown or already inactive ids are a no-op, not an error."""
        changed = self._store.deactivate(revocation_id)
        if changed:
            logger.info("revocation_reversed", revocation_id=revocation_id)
        return changed

    def reverse_all(self, identity) -> int:
        identity = require_identity(identity)
        count = self._store.deactivate_all(identity)
        if count:
            logger.info("revocations_reversed", identity=str(identity), count=count)
        return count

    def adjust_remaining(self, revocation_id: int, new_remaining_seconds: int) -> bool:
        """Restart an active ban's clock at ``new_remaining_seconds`` from now.

        0 expires the ban immediately. Making a ban permanent is
        ``make_permanent``, never a 0 here.
        """
        seconds = max(0, int(new_remaining_seconds))
        now = self._clock()
        if seconds == 0:
            values = {
                "remaining_seconds": 0,
                "expires_at": now,
                "category": RevocationCategory.TEMPORARY,
                "active": False,
            }
        else:
            values = {
                "remaining_seconds": seconds,
                "expires_at": now + timedelta(seconds=seconds),
                "category": RevocationCategory.TEMPORARY,
            }
        changed = self._store.update_active(revocation_id, **values)
        if changed:
            logger.info("revocation_adjusted", revocation_id=revocation_id, remaining_seconds=seconds)
        return changed

    def make_permanent(self, revocation_id: int) -> bool:
        changed = self._store.update_active(
            revocation_id,
            remaining_seconds=0,
            expires_at=None,
            category=RevocationCategory.PERMANENT,
        )
        if changed:
            logger.info("revocation_made_permanent", revocation_id=revocation_id)
        return changed

    def update_notice(self, revocation_id: int, notice: Optional[str]) -> bool:
        return self._store.set_notice(revocation_id, notice)

    def sweep_expired(self) -> int:
        """Deactivate every active ban whose expiry has passed."""
        count = self._store.deactivate_expired(self._clock())
        if count:
            logger.info("revocations_swept", count=count)
        return count

    # ---------------------------------------------------------------- helpers

    @staticmethod
    def _validate(**fields) -> RevocationCreate:
        try:
            return RevocationCreate(**fields)
        except pydantic.ValidationError as exc:
            problems = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
            raise ValidationError("Invalid revocation: " + "; ".join(problems), errors=problems) from exc

    def _resolve_target(self, name_or_id: str) -> ResolvedIdentity:
        if self._resolver is None:
            raise SentinelConfigurationError("Offline bans need an identity resolver")
        target = self._resolver.resolve(name_or_id)
        if target is None:
            raise IdentityNotFoundError(name_or_id)
        return target

    def _persist(self, payload: RevocationCreate, category: RevocationCategory, remaining: int) -> RevocationRecord:
        now = self._clock()
        expires_at = None if category == RevocationCategory.PERMANENT else now + timedelta(seconds=remaining)
        revocation = self._store.create(
            identity=payload.identity,
            display_name=payload.display_name,
            operator=payload.operator,
            category=category,
            reason_names=_dedupe(canonical_reason_name(name) for name in payload.reason_names),
            remaining_seconds=remaining,
            notice=payload.notice,
            created_at=now,
            expires_at=expires_at,
        )
        logger.info(
            "revocation_created",
            revocation_id=revocation.id,
            identity=str(revocation.identity),
            operator=revocation.operator,
            category=category.value,
            remaining_seconds=remaining,
        )
        return revocation

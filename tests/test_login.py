import uuid

from sentinel.core.exceptions import StorageFailure
from sentinel.models.reason import ReasonCategory
from sentinel.services.login_service import LoginGate, format_duration


def _gate(revocations, directory, clock, fail_open=True) -> LoginGate:
    return LoginGate(revocations, directory, clock=clock, fail_open=fail_open)


def test_unbanned_identity_is_admitted_and_registered(revocations, directory, clock):
    player = uuid.uuid4()

    decision = _gate(revocations, directory, clock).check(player, "Alice", "10.0.0.1")

    assert decision.allowed is True
    assert decision.revocation is None
    assert directory.load_by_id(player).addresses == ("10.0.0.1",)


def test_temporary_ban_denies_with_remaining_time(revocations, reasons, directory, clock):
    reasons.save("spam", ReasonCategory.BAN, 3600)
    player = uuid.uuid4()
    ban = revocations.create_auto(player, "Alice", "Mod1", ["spam"])
    clock.advance(600)

    decision = _gate(revocations, directory, clock).check(player, "Alice")

    assert decision.allowed is False
    assert decision.revocation.id == ban.id
    assert decision.remaining_seconds == 3000


def test_permanent_ban_denies_without_remaining_time(revocations, reasons, directory, clock):
    reasons.save("cheating", ReasonCategory.BAN, 0)
    player = uuid.uuid4()
    revocations.create_auto(player, "Alice", "Mod1", ["cheating"])

    decision = _gate(revocations, directory, clock).check(player, "Alice")

    assert decision.allowed is False
    assert decision.remaining_seconds is None


def test_expired_but_unswept_ban_does_not_block(revocations, reasons, directory, clock):
    reasons.save("spam", ReasonCategory.BAN, 60)
    player = uuid.uuid4()
    revocations.create_auto(player, "Alice", "Mod1", ["spam"])
    clock.advance(61)

    decision = _gate(revocations, directory, clock).check(player, "Alice")

    assert decision.allowed is True
    assert revocations.get_active(player) is not None


class _BrokenEngine:
    def get_blocking(self, identity):
        raise StorageFailure("revocation_get_active", "TimeoutError", identity=str(identity))


def test_storage_failure_follows_fail_open_setting(clock):
    player = uuid.uuid4()

    assert _gate(_BrokenEngine(), None, clock, fail_open=True).check(player, "Alice").allowed is True
    assert _gate(_BrokenEngine(), None, clock, fail_open=False).check(player, "Alice").allowed is False


def test_format_duration():
    assert format_duration(None) == "permanent"
    assert format_duration(0) == "0m"
    assert format_duration(59) == "0m"
    assert format_duration(3600) == "1h"
    assert format_duration(90061) == "1d 1h 1m"
    assert format_duration(172800 + 300) == "2d 5m"

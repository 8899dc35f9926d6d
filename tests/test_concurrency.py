import threading
import uuid

from sentinel.core.exceptions import ConflictError
from sentinel.models.reason import ReasonCategory
from sentinel.services.reason_service import ReasonCatalog
from sentinel.services.revocation_service import RevocationEngine


def _run_concurrently(count: int, target) -> list:
    barrier = threading.Barrier(count)
    outcomes = [None] * count

    def worker(index: int) -> None:
        barrier.wait()
        try:
            outcomes[index] = target(index)
        except Exception as exc:  # collected for assertions
            outcomes[index] = exc

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return outcomes


def test_concurrent_bans_for_one_identity_admit_exactly_one(revocations: RevocationEngine, reasons: ReasonCatalog):
    reasons.save("spam", ReasonCategory.BAN, 3600)
    player = uuid.uuid4()

    outcomes = _run_concurrently(
        8, lambda i: revocations.create_auto(player, "Alice", f"Mod{i}", ["spam"], "")
    )

    created = [o for o in outcomes if not isinstance(o, Exception)]
    conflicts = [o for o in outcomes if isinstance(o, ConflictError)]
    assert len(created) == 1
    assert len(conflicts) == 7
    assert revocations.get_active(player).id == created[0].id
    assert len(revocations.list_for(player)) == 1


def test_concurrent_bans_for_different_identities_are_independent(
    revocations: RevocationEngine, reasons: ReasonCatalog
):
    reasons.save("spam", ReasonCategory.BAN, 3600)
    players = [uuid.uuid4() for _ in range(6)]

    outcomes = _run_concurrently(
        6, lambda i: revocations.create_auto(players[i], f"Player{i}", "Mod1", ["spam"])
    )

    assert not [o for o in outcomes if isinstance(o, Exception)]
    assert len(revocations.list_all(active_only=True)) == 6


def test_sweeps_racing_each_other_do_not_double_count(
    revocations: RevocationEngine, reasons: ReasonCatalog, clock
):
    reasons.save("spam", ReasonCategory.BAN, 60)
    for i in range(5):
        revocations.create_auto(uuid.uuid4(), f"Player{i}", "Mod1", ["spam"])
    clock.advance(120)

    outcomes = _run_concurrently(4, lambda i: revocations.sweep_expired())

    assert not [o for o in outcomes if isinstance(o, Exception)]
    assert sum(outcomes) == 5
    assert revocations.list_all(active_only=True) == []

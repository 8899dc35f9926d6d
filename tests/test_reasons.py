import pytest

from sentinel.core.exceptions import ValidationError
from sentinel.models.reason import ReasonCategory
from sentinel.services.reason_service import ReasonCatalog


def test_save_inserts_then_overwrites_duration(reasons: ReasonCatalog):
    created = reasons.save("spam", ReasonCategory.BAN, 3600)
    assert created.id is not None
    assert created.duration_seconds == 3600

    updated = reasons.save("spam", ReasonCategory.BAN, 7200)
    assert updated.id == created.id
    assert reasons.load("spam", ReasonCategory.BAN).duration_seconds == 7200
    assert len(reasons.load_all(ReasonCategory.BAN)) == 1


def test_same_name_in_different_categories_is_two_reasons(reasons: ReasonCatalog):
    reasons.save("spam", ReasonCategory.BAN, 3600)
    reasons.save("spam", ReasonCategory.MUTE, 600)

    assert reasons.load("spam", ReasonCategory.BAN).duration_seconds == 3600
    assert reasons.load("spam", ReasonCategory.MUTE).duration_seconds == 600
    assert not reasons.exists("spam", ReasonCategory.REPORT)


def test_names_are_canonicalised_on_write_and_lookup(reasons: ReasonCatalog):
    reasons.save("  Hacking ", ReasonCategory.BAN, 0)

    loaded = reasons.load("HACKING", ReasonCategory.BAN)
    assert loaded is not None
    assert loaded.name == "hacking"
    assert loaded.is_permanent
    assert reasons.exists("hacking", ReasonCategory.BAN)

    reasons.save("HACKING", ReasonCategory.BAN, 60)
    assert [r.name for r in reasons.load_all()] == ["hacking"]


def test_delete_reports_whether_a_row_was_removed(reasons: ReasonCatalog):
    reasons.save("spam", ReasonCategory.BAN, 3600)

    assert reasons.delete("Spam", ReasonCategory.BAN) is True
    assert reasons.delete("spam", ReasonCategory.BAN) is False
    assert reasons.load("spam", ReasonCategory.BAN) is None


def test_load_all_sorts_by_name_and_filters_by_category(reasons: ReasonCatalog):
    reasons.save("toxicity", ReasonCategory.BAN, 600)
    reasons.save("advertising", ReasonCategory.BAN, 1800)
    reasons.save("caps", ReasonCategory.MUTE, 300)

    assert [r.name for r in reasons.load_all(ReasonCategory.BAN)] == ["advertising", "toxicity"]
    assert [r.name for r in reasons.load_all()] == ["advertising", "caps", "toxicity"]
    assert reasons.load_all(ReasonCategory.REPORT) == []


def test_negative_duration_is_rejected(reasons: ReasonCatalog):
    with pytest.raises(ValidationError):
        reasons.save("spam", ReasonCategory.BAN, -1)
    assert reasons.load("spam", ReasonCategory.BAN) is None


def test_load_missing_reason_returns_none(reasons: ReasonCatalog):
    assert reasons.load("nothing", ReasonCategory.BAN) is None

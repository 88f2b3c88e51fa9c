import pytest

from app.services.lifecycle import can_transition, sources_for


@pytest.mark.parametrize(
    "current,target",
    [
        ("pending", "confirmed"),
        ("pending", "rejected"),
        ("confirmed", "synced"),
        ("synced", "completed"),
        ("pending", "dismissed"),
    ],
)
def test_reminder_allowed(current, target):
    assert can_transition("reminder", current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        ("synced", "pending"),
        ("confirmed", "pending"),
        ("rejected", "confirmed"),
        ("completed", "pending"),
        ("confirmed", "rejected"),
        ("pending", "deleted"),
    ],
)
def test_reminder_forbidden(current, target):
    assert not can_transition("reminder", current, target)


def test_event_machine():
    assert can_transition("event", "pending", "confirmed")
    assert can_transition("event", "synced", "deleted")
    assert can_transition("event", "confirmed", "rejected")
    assert not can_transition("event", "synced", "pending")
    assert not can_transition("event", "deleted", "confirmed")
    assert not can_transition("event", "pending", "completed")


def test_sources_for():
    assert sources_for("reminder", "rejected") == {"pending"}
    assert sources_for("reminder", "completed") == {"pending", "confirmed", "synced"}
    assert sources_for("event", "rejected") == {"pending", "confirmed", "synced"}
    assert sources_for("event", "pending") == frozenset()
    with pytest.raises(ValueError):
        sources_for("task", "pending")


def test_unknown_kind():
    with pytest.raises(ValueError):
        can_transition("task", "pending", "confirmed")

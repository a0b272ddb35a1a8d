import pytest

from hub_simulator import InvalidArgumentError, RosterStore


def test_join_assigns_ids_in_join_order():
    roster = RosterStore()
    alice = roster.join("Alice")
    bob = roster.join("Bob")

    assert alice != bob
    assert roster.list() == ["Alice", "Bob"]
    assert roster.get("Bob").id == bob


def test_join_is_idempotent():
    roster = RosterStore()
    first = roster.join("Alice")
    second = roster.join("Alice")

    assert first == second
    assert roster.list() == ["Alice"]
    assert len(roster) == 1


def test_join_strips_whitespace():
    roster = RosterStore()
    roster.join("  Alice ")
    assert "Alice" in roster


@pytest.mark.parametrize("name", ["", "   ", None, "a" * 65, "bad\x00name"])
def test_join_rejects_invalid_names(name):
    roster = RosterStore()
    with pytest.raises(InvalidArgumentError):
        roster.join(name)
    assert roster.list() == []


def test_leave():
    roster = RosterStore()
    roster.join("Alice")
    roster.join("Bob")

    assert roster.leave("Alice") is True
    assert roster.leave("Alice") is False
    assert roster.leave("Nobody") is False
    assert roster.list() == ["Bob"]


def test_rejoin_after_leave_goes_to_end():
    roster = RosterStore()
    roster.join("Alice")
    roster.join("Bob")
    roster.leave("Alice")
    roster.join("Alice")

    assert roster.list() == ["Bob", "Alice"]

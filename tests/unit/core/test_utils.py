# tests/unit/core/test_utils.py
from marketplace.core.utils import (
    format_price,
    is_thread_participant,
    is_valid_object_id,
    new_object_id,
    other_participant,
    thread_id_for,
    thread_participants,
)

A = "a" * 24
B = "b" * 24


def test_thread_id_is_symmetric():
    assert thread_id_for(A, B) == thread_id_for(B, A) == f"{A}_{B}"


def test_thread_participants_split():
    assert thread_participants(f"{A}_{B}") == (A, B)
    assert thread_participants("no-separator") is None
    assert thread_participants(f"{A}_") is None
    assert thread_participants("") is None


def test_participant_check_compares_halves_not_substrings():
    assert is_thread_participant(f"{A}_{B}", A)
    assert not is_thread_participant(f"{A}_{B}", A[:10])
    assert not is_thread_participant(f"x{A}_{B}", A)


def test_other_participant():
    assert other_participant(f"{A}_{B}", A) == B
    assert other_participant(f"{A}_{B}", B) == A
    assert other_participant(f"{A}_{B}", "c" * 24) is None


def test_object_ids():
    generated = new_object_id()
    assert is_valid_object_id(generated)
    assert not is_valid_object_id("not-an-id")
    assert not is_valid_object_id(None)


def test_format_price_has_two_decimals():
    assert format_price(20) == "20.00"
    assert format_price(3 * 0.1) == "0.30"

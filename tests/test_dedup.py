"""Tests for optimistic/confirmed message reconciliation."""

from chat_mirror.core import Role, Status
from chat_mirror.dedup import is_confirmed, reconcile

from conftest import make_message


def temp(id, content):
    return make_message(id, content=content, status=Status.SENDING, is_temp=True)


def test_matching_user_message_drops_pending():
    pending = [temp(1, "hi")]
    confirmed = [make_message(99, role=Role.USER, content="hi")]
    assert reconcile(confirmed, pending) == []


def test_unmatched_pending_survives():
    pending = [temp(1, "hi"), temp(2, "still waiting")]
    confirmed = [make_message(99, content="hi")]
    assert [p.id for p in reconcile(confirmed, pending)] == [2]


def test_assistant_message_with_same_text_does_not_confirm():
    pending = [temp(1, "hi")]
    confirmed = [make_message(99, role=Role.ASSISTANT, content="hi")]
    assert reconcile(confirmed, pending) == pending


def test_match_is_exact_string_equality():
    pending = [temp(1, "Hi")]
    confirmed = [make_message(99, content="hi"), make_message(100, content="Hi ")]
    assert reconcile(confirmed, pending) == pending


def test_synthetic_id_is_ignored():
    pending = [temp(99, "hello")]
    confirmed = [make_message(99, content="something else")]
    assert reconcile(confirmed, pending) == pending


def test_duplicate_texts_both_match_one_confirmation():
    # Known ambiguity: one stored "ok" confirms every pending "ok", even
    # if the second one has not reached the store yet.
    pending = [temp(1, "ok"), temp(2, "ok")]
    confirmed = [make_message(99, content="ok")]
    assert reconcile(confirmed, pending) == []


def test_empty_inputs():
    assert reconcile([], []) == []
    pending = [temp(1, "x")]
    assert reconcile([], pending) == pending


def test_is_confirmed():
    confirmed = [make_message(1, content="hi"), make_message(2, role=Role.ASSISTANT, content="yo")]
    assert is_confirmed("hi", confirmed) is True
    assert is_confirmed("yo", confirmed) is False

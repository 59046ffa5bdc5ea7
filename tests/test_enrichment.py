import copy
from dataclasses import dataclass, field

import pytest

from vassistant.enrichment import ReferenceField, ReferenceLayout, collect_ids, enrich
from vassistant.errors import StoreFailure
from vassistant.records import Expense, GroupMember, Participant, UserView


def _user(user_id, name=None):
    return UserView(user_id=user_id, username=user_id, display_name=name or user_id.upper(), role="member")


class RecordingFetch:
    def __init__(self, users):
        self.users = {user.user_id: user for user in users}
        self.calls = []

    def __call__(self, user_ids):
        self.calls.append(list(user_ids))
        return {user_id: self.users[user_id] for user_id in user_ids if user_id in self.users}


def _expense(expense_id, paid_by, created_by, *participants):
    return Expense(
        expense_id=expense_id,
        paid_by=paid_by,
        created_by=created_by,
        participants=[Participant(user_id=user_id) for user_id in participants],
    )


def test_collects_distinct_ids_across_roots_and_children():
    expenses = [
        _expense("e1", "u1", "u3", "u1", "u2"),
        _expense("e2", "u2", "u3", "u1", "u2", ""),
    ]

    assert collect_ids(expenses) == {"u1", "u2", "u3"}


def test_single_batched_fetch_for_all_references():
    expenses = [
        _expense("e1", "u1", "u3", "u1", "u2"),
        _expense("e2", "u2", "u3", "u1", "u2"),
    ]
    fetch = RecordingFetch([_user("u1"), _user("u2"), _user("u3")])

    enrich(expenses, fetch)

    assert fetch.calls == [["u1", "u2", "u3"]]
    assert expenses[0].paid_by_user.display_name == "U1"
    assert expenses[0].created_by_user.display_name == "U3"
    assert [p.user.user_id for p in expenses[0].participants] == ["u1", "u2"]
    assert expenses[1].paid_by_user.user_id == "u2"


def test_no_references_means_no_fetch():
    expenses = [_expense("e1", "", ""), Expense(expense_id="e2")]
    fetch = RecordingFetch([_user("u1")])

    assert enrich(expenses, fetch) == {}
    assert fetch.calls == []


def test_empty_entity_list_means_no_fetch():
    fetch = RecordingFetch([])

    enrich([], fetch)

    assert fetch.calls == []


def test_unresolved_ids_keep_empty_views_and_order():
    expenses = [
        _expense("e2", "u2", "u1", "u1", "u2"),
        _expense("e1", "u1", "", "u2", "u1"),
    ]
    fetch = RecordingFetch([_user("u1")])

    resolved = enrich(expenses, fetch)

    assert list(resolved) == ["u1"]
    assert [expense.expense_id for expense in expenses] == ["e2", "e1"]
    assert expenses[0].paid_by_user == UserView()
    assert expenses[0].created_by_user.user_id == "u1"
    assert [p.user_id for p in expenses[0].participants] == ["u1", "u2"]
    assert expenses[0].participants[0].user.user_id == "u1"
    assert expenses[0].participants[1].user == UserView()
    assert expenses[1].participants[0].user.is_empty()
    assert expenses[1].created_by_user.is_empty()


def test_populated_fields_match_resolved_ids():
    members = [GroupMember(user_id=f"u{index}", group_id="g") for index in range(1, 6)]
    fetch = RecordingFetch([_user("u2"), _user("u4")])

    enrich(members, fetch)

    populated = [member.user_id for member in members if not member.user.is_empty()]
    assert populated == ["u2", "u4"]
    assert sum(1 for member in members if member.user.is_empty()) == 3


def test_running_twice_gives_same_result():
    expenses = [_expense("e1", "u1", "u3", "u1", "u2")]
    fetch = RecordingFetch([_user("u1"), _user("u3")])

    enrich(expenses, fetch)
    once = copy.deepcopy(expenses)
    enrich(expenses, fetch)

    assert expenses == once


def test_fetch_failure_propagates():
    def failing(user_ids):
        raise StoreFailure("BatchGetItem", "vassistant-users", "ProvisionedThroughputExceededException")

    with pytest.raises(StoreFailure):
        enrich([_expense("e1", "u1", "")], failing)


def test_explicit_layout_for_plain_records():
    @dataclass
    class Comment:
        author: str
        author_view: dict = field(default_factory=dict)

    comments = [Comment("a"), Comment("b")]
    layout = ReferenceLayout(fields=(ReferenceField("author", "author_view"),), empty=dict)

    enrich(comments, lambda ids: {"a": {"name": "Ada"}}, layout=layout)

    assert comments[0].author_view == {"name": "Ada"}
    assert comments[1].author_view == {}


def test_records_without_layout_are_rejected():
    class Opaque:
        pass

    with pytest.raises(TypeError):
        collect_ids([Opaque()])

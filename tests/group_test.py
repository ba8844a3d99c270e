# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Scipp contributors (https://github.com/scipp)
import threading

import pytest

from crossbus.group import FILTER, SELECTION, Group, GroupMembership
from crossbus.variable import UNSET, ChangeEvent


def membership(handle_id: str, keys, group: str = 'cars') -> GroupMembership:
    return GroupMembership(
        handle_id=handle_id, group_name=group, key_universe=frozenset(keys)
    )


@pytest.fixture
def group() -> Group:
    return Group('cars')


def test_fresh_group_reads_empty_selection_and_no_filter(group: Group) -> None:
    assert group.read_selection() == frozenset()
    assert group.read_filter() is None
    assert group.member_count == 0


def test_var_is_created_lazily_and_reused(group: Group) -> None:
    assert group.variable_names == ()
    variable = group.var('zoom')
    assert group.var('zoom') is variable
    assert variable.group == 'cars'
    assert variable.name == 'zoom'
    assert variable.get() is UNSET


def test_standard_variables(group: Group) -> None:
    assert group.selection is group.var(SELECTION)
    assert group.filter is group.var(FILTER)


def test_read_selection_converts_to_frozenset(group: Group) -> None:
    group.selection.set(['k1', 'k3'])
    assert group.read_selection() == frozenset({'k1', 'k3'})


def test_cleared_selection_reads_empty(group: Group) -> None:
    group.selection.set({'k1'})
    group.selection.set(None)
    assert group.read_selection() == frozenset()


def test_attach_and_detach(group: Group) -> None:
    group.attach(membership('a', ['k1', 'k2']))
    group.attach(membership('b', ['k2', 'k3']))

    assert group.member_count == 2
    assert group.membership('a').key_universe == {'k1', 'k2'}
    assert group.key_universe() == {'k1', 'k2', 'k3'}

    group.detach('a')
    assert [m.handle_id for m in group.members] == ['b']
    assert group.key_universe() == {'k2', 'k3'}


def test_detach_unknown_handle_is_noop(group: Group) -> None:
    group.detach('missing')
    assert group.member_count == 0


def test_attach_rejects_other_group(group: Group) -> None:
    with pytest.raises(ValueError, match='other'):
        group.attach(membership('a', ['k1'], group='other'))


def test_attach_rejects_duplicate_handle(group: Group) -> None:
    group.attach(membership('a', ['k1']))
    with pytest.raises(ValueError, match='already attached'):
        group.attach(membership('a', ['k2']))


def test_detach_retracts_filter_contribution(group: Group) -> None:
    group.attach(membership('a', ['k1', 'k2', 'k3']))
    group.attach(membership('b', ['k1', 'k2', 'k3']))
    group.aggregator.contribute('a', {'k1'})
    group.aggregator.contribute('b', {'k1', 'k2'})
    assert group.read_filter() == {'k1'}

    group.detach('a')

    assert group.read_filter() == {'k1', 'k2'}
    assert group.aggregator.contribution('a') is None


def test_attaching_member_republishes_active_filter(group: Group) -> None:
    group.attach(membership('a', ['k1', 'k2']))
    group.aggregator.contribute('a', {'k1'})
    events: list[ChangeEvent] = []
    group.filter.subscribe(events.append)

    group.attach(membership('b', ['x1', 'x2']))

    assert len(events) == 1
    assert group.read_filter() == {'k1', 'x1', 'x2'}


def test_attaching_member_without_filter_does_not_publish(group: Group) -> None:
    events: list[ChangeEvent] = []
    group.filter.subscribe(events.append)
    group.attach(membership('a', ['k1']))
    assert events == []
    assert group.filter.get() is UNSET


def test_transaction_batches_notifications(group: Group) -> None:
    events: list[ChangeEvent] = []
    group.selection.subscribe(events.append)
    group.var('zoom').subscribe(events.append)

    with group.transaction():
        group.selection.set({'k1'})
        group.var('zoom').set(2)
        group.selection.set({'k2'})
        # Values are visible, notifications are not sent yet
        assert group.read_selection() == {'k2'}
        assert events == []

    assert [(e.name, e.value) for e in events] == [
        ('selection', {'k2'}),
        ('zoom', 2),
    ]
    assert events[0].old_value is UNSET


def test_transaction_nested_batches_correctly(group: Group) -> None:
    events: list[ChangeEvent] = []
    group.selection.subscribe(events.append)

    with group.transaction():
        group.selection.set({'k1'})
        with group.transaction():
            group.selection.set({'k2'})
        assert events == []

    assert [e.value for e in events] == [{'k2'}]


def test_transaction_exception_still_notifies(group: Group) -> None:
    events: list[ChangeEvent] = []
    group.selection.subscribe(events.append)

    with pytest.raises(ValueError, match='test error'), group.transaction():
        group.selection.set({'k1'})
        raise ValueError('test error')

    assert [e.value for e in events] == [{'k1'}]


def test_empty_transaction_no_notifications(group: Group) -> None:
    events: list[ChangeEvent] = []
    group.selection.subscribe(events.append)
    with group.transaction():
        pass
    assert events == []


def test_publishes_from_threads_are_serialized(group: Group) -> None:
    seen: list[int] = []
    overlapping: list[int] = []
    in_callback = threading.Event()

    def record(event: ChangeEvent) -> None:
        if in_callback.is_set():
            overlapping.append(event.value)
        in_callback.set()
        seen.append(event.value)
        in_callback.clear()

    group.selection.subscribe(record)
    threads = [
        threading.Thread(target=group.selection.set, args=(i,)) for i in range(20)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(seen) == list(range(20))
    assert overlapping == []
    assert group.selection.get() == seen[-1]


def test_unlocked_group_works_single_threaded() -> None:
    group = Group('fast', thread_safe=False)
    group.selection.set({'k1'})
    assert group.read_selection() == {'k1'}


def test_repr(group: Group) -> None:
    assert repr(group) == "Group('cars', members=0, selection=unset)"
    group.selection.set({'k1', 'k2'})
    assert repr(group) == "Group('cars', members=0, selection=2)"


def test_transaction_inside_dispatch_keeps_last_write(group: Group) -> None:
    events: list[ChangeEvent] = []

    def republish(event: ChangeEvent) -> None:
        if event.value == {'k1'}:
            group.selection.set({'k2'})
            with group.transaction():
                group.selection.set({'k3'})

    group.selection.subscribe(republish)
    group.selection.subscribe(events.append)

    group.selection.set({'k1'})

    assert [e.value for e in events] == [{'k1'}, {'k2'}, {'k3'}]
    assert events[-1].value == group.selection.get() == {'k3'}


def test_detach_keeps_seen_keys(group: Group) -> None:
    group.attach(membership('a', ['x', 'k1']))
    group.detach('a')
    assert group.key_universe() == frozenset()
    assert group.seen_keys() == {'x', 'k1'}

import logging
from datetime import date, datetime

from recurcal.models import CalendarEvent, EventRecurrence, RecurrenceEndType, RecurrenceFrequency
from recurcal.recurrence import create_event_instances, generate_instances
from recurcal.series import EditScope, MutationAction, plan_delete, plan_edit, root_id


def make_root(**rec):
    return CalendarEvent(
        id='root1',
        title='Standup',
        start=datetime(2024, 1, 1, 9, 0),
        end=datetime(2024, 1, 1, 9, 15),
        recurrence=EventRecurrence(frequency=RecurrenceFrequency.DAILY, **rec),
    )


def instance_on(root, day):
    return [e for e in expand(root, date(2024, 1, 1), date(2024, 1, 31)) if e.start.day == day][0]


def expand(root, lo=date(2024, 1, 1), hi=date(2024, 1, 5)):
    return create_event_instances(root, generate_instances(root, root.recurrence, lo, hi))


def apply(root, mutations):
    """Wendet UPDATE-Mutationen der Wurzel lokal an (ohne Datenbank)."""
    for m in mutations:
        if m.action == MutationAction.UPDATE and m.event_id == root.id:
            for k, v in m.updates.items():
                setattr(root, k, v)
    return root


def test_root_id():
    root = make_root()
    assert root_id(root) == 'root1'
    assert root_id(instance_on(root, 3)) == 'root1'
    plain = CalendarEvent(id='p', title='x', start=datetime(2024, 1, 1))
    assert root_id(plain) == 'p'


def test_delete_this_hides_only_that_day():
    root = make_root()
    muts = plan_delete(root, instance_on(root, 3), EditScope.THIS)
    assert [m.action for m in muts] == [MutationAction.UPDATE]
    apply(root, muts)
    assert [e.start.day for e in expand(root)] == [1, 2, 4, 5]


def test_delete_this_and_future_truncates():
    root = make_root()
    apply(root, plan_delete(root, instance_on(root, 3), EditScope.THIS_AND_FUTURE))
    assert root.recurrence.end_type == RecurrenceEndType.ON_DATE
    assert root.recurrence.end_date == date(2024, 1, 2)
    assert [e.start.day for e in expand(root, hi=date(2024, 1, 31))] == [1, 2]


def test_delete_this_and_future_moves_existing_end_forward():
    root = make_root(end_type=RecurrenceEndType.ON_DATE, end_date=date(2024, 1, 2))
    apply(root, plan_delete(root, instance_on(root, 2), EditScope.THIS_AND_FUTURE))
    assert root.recurrence.end_date == date(2024, 1, 1)


def test_delete_all_removes_root():
    root = make_root()
    muts = plan_delete(root, instance_on(root, 4), 'all')
    assert len(muts) == 1
    assert muts[0].action == MutationAction.DELETE
    assert muts[0].event_id == 'root1'


def test_edit_this_changes_single_occurrence():
    root = make_root()
    apply(root, plan_edit(root, instance_on(root, 2), {'title': 'Retro'}, EditScope.THIS))
    titles = [e.title for e in expand(root)]
    assert titles == ['Standup', 'Retro', 'Standup', 'Standup', 'Standup']
    assert root.title == 'Standup'


def test_edit_this_twice_merges_changes():
    root = make_root()
    target = instance_on(root, 2)
    apply(root, plan_edit(root, target, {'title': 'Retro'}, EditScope.THIS))
    apply(root, plan_edit(root, target, {'location': 'Room 4'}, EditScope.THIS))
    assert len(root.recurrence.modifications) == 1
    second = expand(root)[1]
    assert second.title == 'Retro'
    assert second.location == 'Room 4'


def test_edit_all_shifts_series_by_instance_delta():
    root = make_root()
    target = instance_on(root, 3)
    changes = {'start': datetime(2024, 1, 3, 10, 0), 'end': datetime(2024, 1, 3, 10, 15), 'title': 'Daily'}
    apply(root, plan_edit(root, target, changes, EditScope.ALL))
    # Die Wurzel bleibt am 1. Januar, nur eine Stunde später
    assert root.start == datetime(2024, 1, 1, 10, 0)
    assert root.end == datetime(2024, 1, 1, 10, 15)
    assert all(e.start.hour == 10 and e.title == 'Daily' for e in expand(root))


def test_edit_this_and_future_default_edits_whole_series(caplog):
    root = make_root()
    with caplog.at_level(logging.WARNING):
        muts = plan_edit(root, instance_on(root, 3), {'title': 'Sync'}, EditScope.THIS_AND_FUTURE)
    assert len(muts) == 1
    apply(root, muts)
    assert all(e.title == 'Sync' for e in expand(root))
    assert "thisAndFuture" in caplog.text


def test_edit_this_and_future_split():
    root = make_root()
    muts = plan_edit(root, instance_on(root, 3), {'title': 'Sync'}, EditScope.THIS_AND_FUTURE,
                     split_series=True, new_id='root2')
    assert [m.action for m in muts] == [MutationAction.UPDATE, MutationAction.CREATE]
    new_root = muts[1].event
    assert new_root.id == 'root2'
    assert new_root.start == datetime(2024, 1, 3, 9, 0)
    assert new_root.end == datetime(2024, 1, 3, 9, 15)
    assert new_root.title == 'Sync'
    assert new_root.is_series_root

    apply(root, muts)
    assert root.recurrence.end_date == date(2024, 1, 2)
    old_days = [e.start.day for e in expand(root)]
    new_days = [e.start.day for e in expand(new_root)]
    assert old_days == [1, 2]
    assert new_days == [3, 4, 5]


def test_split_carries_remaining_occurrences():
    root = make_root(end_type=RecurrenceEndType.AFTER_OCCURRENCES, occurrences=5)
    muts = plan_edit(root, instance_on(root, 3), {}, EditScope.THIS_AND_FUTURE,
                     split_series=True, new_id='root2')
    new_root = muts[1].event
    assert new_root.recurrence.occurrences == 3
    assert [e.start.day for e in expand(new_root, hi=date(2024, 1, 31))] == [3, 4, 5]


def test_plain_event_edit_and_delete():
    plain = CalendarEvent(id='p', title='Dentist', start=datetime(2024, 2, 1, 8, 0))
    muts = plan_edit(plain, plain, {'title': 'Dentist (moved)'}, EditScope.THIS)
    assert muts[0].action == MutationAction.UPDATE
    assert muts[0].updates == {'title': 'Dentist (moved)'}
    assert plan_delete(plain, plain, EditScope.THIS)[0].action == MutationAction.DELETE

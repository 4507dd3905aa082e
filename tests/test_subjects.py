# tests/test_subjects.py
import json

import pytest

from progress_tracker.errors import StoreNotLoadedError, ValidationError
from progress_tracker.models import ItemType, Status
from progress_tracker.storage import SUBJECTS_KEY
from progress_tracker.subjects import (
    SYNC_FAILED, SYNC_IDLE, SYNC_SYNCED, SubjectStore, deserialize_subjects,
    serialize_subjects,
)


@pytest.fixture
def store(fake_storage):
    s = SubjectStore(fake_storage)
    s.load()
    return s


def test_operations_require_load(fake_storage):
    store = SubjectStore(fake_storage)
    assert not store.is_loaded
    with pytest.raises(StoreNotLoadedError):
        store.add_subject("Physics", "PHY", 1, 1)
    with pytest.raises(StoreNotLoadedError):
        store.is_duplicate_code("PHY")
    with pytest.raises(StoreNotLoadedError):
        _ = store.subjects


def test_load_empty_storage(fake_storage):
    store = SubjectStore(fake_storage)
    assert store.load() == []
    assert store.is_loaded
    assert store.subjects == ()


@pytest.mark.parametrize("raw", [
    "not json",
    '{"id": "x"}',
    '[{"id": "x"}]',
    '[{"id": "x", "name": "n", "code": "C", "assignments": [{"id": "a", "label": "A", "status": "bogus"}],'
    ' "experiments": [], "createdAt": 1}]',
    "[1, 2]",
    '[{"id": "x", "name": "n", "code": "C", "assignments": [], "experiments": [], "createdAt": 1e400}]',
    "[" * 100000 + "]" * 100000,
], ids=["not-json", "object", "missing-fields", "bad-status", "not-dicts", "infinite-created-at", "deep-nesting"])
def test_load_malformed_document_yields_empty(fake_storage, raw):
    fake_storage.data[SUBJECTS_KEY] = raw
    store = SubjectStore(fake_storage)
    assert store.load() == []
    assert store.subjects == ()


def test_load_read_failure_yields_empty(fake_storage):
    fake_storage.data[SUBJECTS_KEY] = "[]"
    fake_storage.fail_reads = True
    store = SubjectStore(fake_storage)
    assert store.load() == []


def test_add_subject(store):
    subject = store.add_subject("Data Structures", "cs201", 5, 3)
    assert subject.code == "CS201"
    assert subject.name == "Data Structures"
    assert [a.label for a in subject.assignments] == [f"Assignment {n}" for n in range(1, 6)]
    assert [e.label for e in subject.experiments] == ["Experiment 1", "Experiment 2", "Experiment 3"]
    assert all(i.status == Status.NOT_GIVEN for i in subject.assignments + subject.experiments)
    assert subject.created_at > 0
    assert store.subjects == (subject,)


def test_add_subject_trims_input(store):
    subject = store.add_subject("  Physics  ", "  phy101 ", 1, 1)
    assert subject.name == "Physics"
    assert subject.code == "PHY101"


def test_add_subject_persists(store, fake_storage):
    subject = store.add_subject("Physics", "PHY", 2, 1)
    saved = json.loads(fake_storage.data[SUBJECTS_KEY])
    assert saved[0]["id"] == subject.id
    assert saved[0]["totalAssignments"] == 2
    assert saved[0]["totalExperiments"] == 1
    assert store.sync_status == SYNC_SYNCED


@pytest.mark.parametrize("name, code", [
    ("", "CS1"),
    ("   ", "CS1"),
    ("Name", ""),
    ("Name", "   "),
    ("x" * 51, "CS1"),
    ("Name", "C" * 16),
])
def test_add_subject_validation(store, fake_storage, name, code):
    with pytest.raises(ValidationError):
        store.add_subject(name, code, 1, 1)
    assert store.subjects == ()
    assert fake_storage.writes == 0


@pytest.mark.parametrize("count", [-1, 1.5, "3", True])
def test_add_subject_rejects_bad_counts(store, count):
    with pytest.raises(ValidationError):
        store.add_subject("Name", "CS1", count, 1)


def test_add_subject_duplicate_code(store):
    store.add_subject("Physics", "phy101", 1, 1)
    with pytest.raises(ValidationError):
        store.add_subject("Physics II", "PHY101", 1, 1)
    assert len(store.subjects) == 1


def test_zero_counts_allowed(store):
    subject = store.add_subject("Reading", "RD1", 0, 0)
    assert subject.assignments == ()
    assert subject.experiments == ()


def test_is_duplicate_code_case_permutations(store):
    store.add_subject("Data Structures", "cs201", 1, 1)
    store.add_subject("Physics", "Phy101", 1, 1)
    for code in ("CS201", "cs201", "Cs201", "cS201", " cs201 ", "phy101", "PHY101"):
        assert store.is_duplicate_code(code)
    for code in ("CS202", "PHY", "cs2010"):
        assert not store.is_duplicate_code(code)


def test_is_duplicate_code_matches_stored_upper_case_form(store):
    store.add_subject("A", "ss", 1, 1)
    assert store.is_duplicate_code("ß")
    with pytest.raises(ValidationError):
        store.add_subject("B", "ß", 1, 1)
    assert [s.code for s in store.subjects] == ["SS"]


def test_is_duplicate_code_exclude_self(store):
    subject = store.add_subject("Physics", "PHY", 1, 1)
    assert not store.is_duplicate_code("phy", exclude_id=subject.id)


def test_is_duplicate_code_does_not_write(store, fake_storage):
    store.add_subject("Physics", "PHY", 1, 1)
    writes = fake_storage.writes
    store.is_duplicate_code("PHY")
    assert fake_storage.writes == writes


def test_delete_subject(store, fake_storage):
    a = store.add_subject("A", "A1", 1, 1)
    b = store.add_subject("B", "B1", 1, 1)
    store.delete_subject(a.id)
    assert store.subjects == (b,)
    assert [s["id"] for s in json.loads(fake_storage.data[SUBJECTS_KEY])] == [b.id]


def test_delete_missing_subject_is_noop(store):
    a = store.add_subject("A", "A1", 1, 1)
    store.delete_subject("does-not-exist")
    assert store.subjects == (a,)


def test_update_item_status(store):
    subject = store.add_subject("A", "A1", 2, 2)
    target = subject.assignments[1]
    store.update_item_status(subject.id, target.id, ItemType.ASSIGNMENT, Status.COMPLETE)
    updated = store.get_subject(subject.id)
    assert updated.assignments[1].status == Status.COMPLETE
    assert updated.assignments[1].id == target.id
    assert updated.assignments[0] == subject.assignments[0]
    assert updated.experiments == subject.experiments


def test_update_item_status_wrong_type_is_noop(store):
    subject = store.add_subject("A", "A1", 1, 1)
    store.update_item_status(subject.id, subject.assignments[0].id, ItemType.EXPERIMENT, Status.CHECKED)
    assert store.get_subject(subject.id) == subject


def test_update_item_status_missing_targets_are_noop(store):
    subject = store.add_subject("A", "A1", 1, 1)
    store.update_item_status("missing", subject.assignments[0].id, ItemType.ASSIGNMENT, Status.CHECKED)
    store.update_item_status(subject.id, "missing", ItemType.ASSIGNMENT, Status.CHECKED)
    assert store.subjects == (subject,)


def test_cycle_item_status(store):
    subject = store.add_subject("A", "A1", 1, 0)
    item_id = subject.assignments[0].id
    assert store.cycle_item_status(subject.id, item_id, ItemType.ASSIGNMENT) == Status.INCOMPLETE
    seen = [store.cycle_item_status(subject.id, item_id, ItemType.ASSIGNMENT) for _ in range(3)]
    assert seen == [Status.COMPLETE, Status.CHECKED, Status.NOT_GIVEN]
    assert store.get_subject(subject.id).assignments[0].status == Status.NOT_GIVEN


def test_cycle_item_status_missing(store):
    subject = store.add_subject("A", "A1", 1, 0)
    assert store.cycle_item_status("missing", "x", ItemType.ASSIGNMENT) is None
    assert store.cycle_item_status(subject.id, "x", ItemType.ASSIGNMENT) is None


def test_update_subject_shrink_keeps_first_items(store):
    subject = store.add_subject("A", "A1", 5, 1)
    first = subject.assignments[0]
    store.update_item_status(subject.id, first.id, ItemType.ASSIGNMENT, Status.CHECKED)
    updated = store.update_subject(subject.id, total_assignments=2)
    assert [a.id for a in updated.assignments] == [a.id for a in subject.assignments[:2]]
    assert updated.assignments[0].status == Status.CHECKED
    assert updated.experiments == subject.experiments
    assert store.get_subject(subject.id) == updated


def test_update_subject_grow_appends_items(store):
    subject = store.add_subject("A", "A1", 5, 1)
    store.update_item_status(subject.id, subject.assignments[4].id, ItemType.ASSIGNMENT, Status.COMPLETE)
    before = store.get_subject(subject.id)
    updated = store.update_subject(subject.id, total_assignments=7)
    assert updated.assignments[:5] == before.assignments
    assert [a.label for a in updated.assignments[5:]] == ["Assignment 6", "Assignment 7"]
    assert all(a.status == Status.NOT_GIVEN for a in updated.assignments[5:])


def test_update_subject_shrink_then_grow_does_not_restore(store):
    subject = store.add_subject("A", "A1", 3, 0)
    store.update_subject(subject.id, total_assignments=1)
    updated = store.update_subject(subject.id, total_assignments=3)
    assert updated.assignments[0].id == subject.assignments[0].id
    assert updated.assignments[1].id != subject.assignments[1].id
    assert updated.assignments[2].label == "Assignment 3"


def test_update_subject_code(store, fake_storage):
    subject = store.add_subject("A", "A1", 1, 1)
    updated = store.update_subject(subject.id, code="  b2 ")
    assert updated.code == "B2"
    assert updated.name == "A"
    assert json.loads(fake_storage.data[SUBJECTS_KEY])[0]["code"] == "B2"


def test_update_subject_code_validation(store):
    a = store.add_subject("A", "A1", 1, 1)
    store.add_subject("B", "B1", 1, 1)
    with pytest.raises(ValidationError):
        store.update_subject(a.id, code="   ")
    with pytest.raises(ValidationError):
        store.update_subject(a.id, code="b1")
    # keeping its own code in another case is fine
    assert store.update_subject(a.id, code="a1").code == "A1"
    assert store.get_subject(a.id).code == "A1"


def test_update_subject_missing_is_noop(store, fake_storage):
    store.add_subject("A", "A1", 1, 1)
    writes = fake_storage.writes
    assert store.update_subject("missing", code="Z") is None
    assert fake_storage.writes == writes


def test_reset_all_data_then_reload(store, fake_storage):
    store.add_subject("A", "A1", 1, 1)
    store.add_subject("B", "B1", 1, 1)
    store.reset_all_data()
    assert store.subjects == ()
    restarted = SubjectStore(fake_storage)
    assert restarted.load() == []


def test_sorted_and_recent_subjects(store, monkeypatch):
    clock = iter([1000, 3000, 2000, 4000])
    monkeypatch.setattr("progress_tracker.subjects.now_ms", lambda: next(clock))
    a = store.add_subject("A", "A1", 1, 1)
    b = store.add_subject("B", "B1", 1, 1)
    c = store.add_subject("C", "C1", 1, 1)
    d = store.add_subject("D", "D1", 1, 1)
    assert store.subjects == (a, b, c, d)
    assert store.sorted_subjects() == [d, b, c, a]
    assert store.recent_subjects() == [d, b, c]


def test_stats_only_subject(store):
    subject = store.add_subject("A", "A1", 2, 2)
    store.update_item_status(subject.id, subject.assignments[0].id, ItemType.ASSIGNMENT, Status.COMPLETE)
    store.update_item_status(subject.id, subject.experiments[1].id, ItemType.EXPERIMENT, Status.CHECKED)
    stats = store.stats
    assert stats.total_items == 4
    assert stats.completed_items == 2
    assert stats.checked_items == 1
    assert stats.completion_percentage == 50


def test_subscribe_and_unsubscribe(store):
    seen = []
    unsubscribe = store.subscribe(lambda s: seen.append(len(s.subjects)))
    store.add_subject("A", "A1", 1, 1)
    store.add_subject("B", "B1", 1, 1)
    unsubscribe()
    store.reset_all_data()
    assert seen == [1, 2]
    unsubscribe()  # second call is harmless


def test_listener_sees_state_before_write(fake_storage):
    store = SubjectStore(fake_storage)
    store.load()
    observed = []
    store.subscribe(lambda s: observed.append((len(s.subjects), fake_storage.data.get(SUBJECTS_KEY))))
    store.add_subject("A", "A1", 1, 1)
    count, persisted = observed[0]
    assert count == 1
    assert persisted is None


def test_write_failure_keeps_memory(store, fake_storage):
    assert store.sync_status == SYNC_IDLE
    fake_storage.fail_writes = True
    subject = store.add_subject("A", "A1", 1, 1)
    assert store.subjects == (subject,)
    assert store.sync_status == SYNC_FAILED
    assert SUBJECTS_KEY not in fake_storage.data

    fake_storage.fail_writes = False
    assert store.flush() is True
    assert store.sync_status == SYNC_SYNCED
    assert json.loads(fake_storage.data[SUBJECTS_KEY])[0]["id"] == subject.id


def test_round_trip(store):
    a = store.add_subject("Data Structures", "cs201", 5, 3)
    store.add_subject("Physics", "phy", 2, 0)
    store.update_item_status(a.id, a.experiments[2].id, ItemType.EXPERIMENT, Status.INCOMPLETE)
    assert deserialize_subjects(serialize_subjects(store.subjects)) == list(store.subjects)


def test_reload_from_storage(store, fake_storage):
    store.add_subject("Data Structures", "cs201", 2, 1)
    restarted = SubjectStore(fake_storage)
    assert restarted.load() == list(store.subjects)


def test_update_item_status_missing_targets_do_not_write_or_notify(store, fake_storage):
    subject = store.add_subject("A", "A1", 1, 1)
    writes = fake_storage.writes
    seen = []
    store.subscribe(lambda s: seen.append(s))
    store.update_item_status("missing", subject.assignments[0].id, ItemType.ASSIGNMENT, Status.CHECKED)
    store.update_item_status(subject.id, "missing", ItemType.ASSIGNMENT, Status.CHECKED)
    store.update_item_status(subject.id, subject.assignments[0].id, ItemType.EXPERIMENT, Status.CHECKED)
    assert fake_storage.writes == writes
    assert seen == []

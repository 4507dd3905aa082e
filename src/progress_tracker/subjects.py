"""Subject store: in-memory collection written through to key-value storage."""
import json
import logging
from dataclasses import replace
from typing import Callable

from progress_tracker.dashboard import Stats, get_stats
from progress_tracker.errors import StoreNotLoadedError, ValidationError
from progress_tracker.models import (
    ItemType, Status, Subject, generate_id, make_items, now_ms, resize_items,
)
from progress_tracker.storage import SUBJECTS_KEY, Storage

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 50
MAX_CODE_LENGTH = 15

SYNC_IDLE = "idle"
SYNC_SYNCED = "synced"
SYNC_FAILED = "failed"

Listener = Callable[["SubjectStore"], None]


def serialize_subjects(subjects) -> str:
    return json.dumps([s.to_dict() for s in subjects])


def deserialize_subjects(raw: str) -> list[Subject]:
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError(f"expected a list of subjects, got {type(data).__name__}")
    return [Subject.from_dict(d) for d in data]


def _normalize_code(code: str) -> str:
    return code.strip().upper()


def _check_count(value, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"Number of {what} must be a non-negative integer.")
    return value


class SubjectStore:
    """Owns the subject collection.

    Every mutation updates memory first, notifies subscribers, then writes the
    whole collection to storage. A failed write is logged by the storage
    adapter and recorded in ``sync_status``; memory is never rolled back.
    """

    def __init__(self, storage: Storage):
        self.storage = storage
        self._subjects: list[Subject] = []
        self._loaded = False
        self._listeners: list[Listener] = []
        self.sync_status = SYNC_IDLE

    # -- lifecycle --

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load(self) -> list[Subject]:
        raw = self.storage.get(SUBJECTS_KEY)
        subjects: list[Subject] = []
        if raw:
            try:
                subjects = deserialize_subjects(raw)
            except (ValueError, KeyError, TypeError, OverflowError, RecursionError) as e:
                logger.warning("Discarding unreadable subjects document: %s", e)
                subjects = []
        self._subjects = subjects
        self._loaded = True
        logger.debug("Loaded %d subjects", len(subjects))
        self._notify()
        return list(subjects)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(store)` after every load and mutation. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def flush(self) -> bool:
        """Write the current collection again, e.g. after a failed write."""
        self._require_loaded()
        return self._write()

    # -- reads --

    @property
    def subjects(self) -> tuple[Subject, ...]:
        self._require_loaded()
        return tuple(self._subjects)

    def get_subject(self, subject_id: str) -> Subject | None:
        self._require_loaded()
        return next((s for s in self._subjects if s.id == subject_id), None)

    def sorted_subjects(self) -> list[Subject]:
        """Newest first."""
        self._require_loaded()
        return sorted(self._subjects, key=lambda s: s.created_at, reverse=True)

    def recent_subjects(self, limit: int = 3) -> list[Subject]:
        return self.sorted_subjects()[:limit]

    def is_duplicate_code(self, code: str, exclude_id: str | None = None) -> bool:
        self._require_loaded()
        # Compare the stored (upper-cased) form; "ß" upper-cases to "SS".
        wanted = _normalize_code(code).casefold()
        return any(s.code.casefold() == wanted for s in self._subjects if s.id != exclude_id)

    @property
    def stats(self) -> Stats:
        self._require_loaded()
        return get_stats(self._subjects)

    # -- mutations --

    def add_subject(self, name: str, code: str, total_assignments: int, total_experiments: int) -> Subject:
        self._require_loaded()
        name = (name or "").strip()
        code = (code or "").strip()
        if not name:
            raise ValidationError("Please enter a subject name.")
        if not code:
            raise ValidationError("Please enter a subject code.")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Subject name must be at most {MAX_NAME_LENGTH} characters.")
        if len(code) > MAX_CODE_LENGTH:
            raise ValidationError(f"Subject code must be at most {MAX_CODE_LENGTH} characters.")
        _check_count(total_assignments, "assignments")
        _check_count(total_experiments, "experiments")
        if self.is_duplicate_code(code):
            raise ValidationError("A subject with this code already exists.")

        subject = Subject(
            id=generate_id(),
            name=name,
            code=code.upper(),
            assignments=tuple(make_items(ItemType.ASSIGNMENT, 0, total_assignments)),
            experiments=tuple(make_items(ItemType.EXPERIMENT, 0, total_experiments)),
            created_at=now_ms(),
        )
        self._commit([*self._subjects, subject])
        logger.info("Added subject %s (%s)", subject.code, subject.id)
        return subject

    def delete_subject(self, subject_id: str) -> None:
        self._require_loaded()
        self._commit([s for s in self._subjects if s.id != subject_id])

    def update_item_status(self, subject_id: str, item_id: str, item_type: ItemType, new_status: Status) -> None:
        self._require_loaded()
        item_type = ItemType(item_type)
        new_status = Status(new_status)
        subject = self.get_subject(subject_id)
        if subject is None or not any(i.id == item_id for i in subject.items(item_type)):
            return
        subject = subject.with_items(
            item_type,
            (replace(i, status=new_status) if i.id == item_id else i for i in subject.items(item_type)),
        )
        self._commit([subject if s.id == subject_id else s for s in self._subjects])

    def cycle_item_status(self, subject_id: str, item_id: str, item_type: ItemType) -> Status | None:
        """Advance one item one step along the status cycle. Returns the new status."""
        subject = self.get_subject(subject_id)
        if subject is None:
            return None
        item = next((i for i in subject.items(item_type) if i.id == item_id), None)
        if item is None:
            return None
        new_status = item.status.next()
        self.update_item_status(subject_id, item_id, item_type, new_status)
        return new_status

    def update_subject(
        self,
        subject_id: str,
        code: str | None = None,
        total_assignments: int | None = None,
        total_experiments: int | None = None,
    ) -> Subject | None:
        self._require_loaded()
        subject = self.get_subject(subject_id)
        if subject is None:
            return None

        if code is not None:
            code = _normalize_code(code)
            if not code:
                raise ValidationError("Subject code cannot be empty.")
            if len(code) > MAX_CODE_LENGTH:
                raise ValidationError(f"Subject code must be at most {MAX_CODE_LENGTH} characters.")
            if self.is_duplicate_code(code, exclude_id=subject_id):
                raise ValidationError("A subject with this code already exists.")
            subject = replace(subject, code=code)
        if total_assignments is not None:
            _check_count(total_assignments, "assignments")
            subject = subject.with_items(
                ItemType.ASSIGNMENT,
                resize_items(subject.assignments, ItemType.ASSIGNMENT, total_assignments),
            )
        if total_experiments is not None:
            _check_count(total_experiments, "experiments")
            subject = subject.with_items(
                ItemType.EXPERIMENT,
                resize_items(subject.experiments, ItemType.EXPERIMENT, total_experiments),
            )

        self._commit([subject if s.id == subject_id else s for s in self._subjects])
        return subject

    def reset_all_data(self) -> None:
        self._require_loaded()
        self._commit([])
        logger.info("All subjects cleared")

    # -- internals --

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise StoreNotLoadedError("SubjectStore.load() must be called first")

    def _commit(self, subjects: list[Subject]) -> None:
        self._subjects = subjects
        self._notify()
        self._write()

    def _write(self) -> bool:
        ok = self.storage.set(SUBJECTS_KEY, serialize_subjects(self._subjects))
        self.sync_status = SYNC_SYNCED if ok else SYNC_FAILED
        if not ok:
            logger.warning("Subjects kept in memory only; last write failed")
        return ok

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

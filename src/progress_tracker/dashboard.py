"""Progress statistics and display buckets."""
import math
from dataclasses import dataclass
from typing import Iterable

from progress_tracker.models import ItemType, Status, Subject


@dataclass(frozen=True)
class Stats:
    total_subjects: int = 0
    total_assignments: int = 0
    total_experiments: int = 0
    completed_assignments: int = 0
    completed_experiments: int = 0
    checked_items: int = 0

    @property
    def total_items(self) -> int:
        return self.total_assignments + self.total_experiments

    @property
    def completed_items(self) -> int:
        return self.completed_assignments + self.completed_experiments

    @property
    def remaining_items(self) -> int:
        return self.total_items - self.completed_items

    @property
    def completion_percentage(self) -> int:
        return percentage(self.completed_items, self.total_items)


@dataclass(frozen=True)
class SubjectProgress:
    assignments_done: int
    assignments_total: int
    experiments_done: int
    experiments_total: int

    @property
    def percentage(self) -> int:
        return percentage(
            self.assignments_done + self.experiments_done,
            self.assignments_total + self.experiments_total,
        )


def percentage(done: int, total: int) -> int:
    """round(100 * done / total), halves rounded up; 0 when there is nothing to do."""
    if total == 0:
        return 0
    return math.floor(100 * done / total + 0.5)


def _count_done(items) -> int:
    return sum(1 for i in items if i.status.is_done)


def _count_checked(items) -> int:
    return sum(1 for i in items if i.status == Status.CHECKED)


def get_stats(subjects: Iterable[Subject]) -> Stats:
    subjects = list(subjects)
    return Stats(
        total_subjects=len(subjects),
        total_assignments=sum(s.total_assignments for s in subjects),
        total_experiments=sum(s.total_experiments for s in subjects),
        completed_assignments=sum(_count_done(s.assignments) for s in subjects),
        completed_experiments=sum(_count_done(s.experiments) for s in subjects),
        checked_items=sum(_count_checked(s.assignments) + _count_checked(s.experiments) for s in subjects),
    )


def subject_progress(subject: Subject) -> SubjectProgress:
    return SubjectProgress(
        assignments_done=_count_done(subject.assignments),
        assignments_total=subject.total_assignments,
        experiments_done=_count_done(subject.experiments),
        experiments_total=subject.total_experiments,
    )


def item_summary(subject: Subject, item_type: ItemType) -> dict:
    """Total / done / checked / pending counts for one tab of the detail view."""
    items = subject.items(item_type)
    done = _count_done(items)
    return {
        "total": len(items),
        "done": done,
        "checked": _count_checked(items),
        "pending": len(items) - done,
    }


def get_progress_label(score: float) -> str:
    if score >= 100:
        return "DONE"
    elif score >= 65:
        return "ON TRACK"
    elif score >= 35:
        return "IN PROGRESS"
    return "JUST STARTED"


def get_progress_color(score: float) -> str:
    if score >= 100:
        return "green"
    elif score >= 65:
        return "cyan"
    elif score >= 35:
        return "yellow"
    return "red"

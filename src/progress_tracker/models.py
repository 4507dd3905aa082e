"""Data classes for subjects and their checklist items."""
import time
import uuid
from dataclasses import dataclass, replace
from enum import StrEnum


class Status(StrEnum):
    NOT_GIVEN = "not_given"
    INCOMPLETE = "incomplete"
    COMPLETE = "complete"
    CHECKED = "checked"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @property
    def is_done(self) -> bool:
        return self in (Status.COMPLETE, Status.CHECKED)

    def next(self) -> "Status":
        """Advance one step along not_given -> incomplete -> complete -> checked -> not_given."""
        order = list(Status)
        return order[(order.index(self) + 1) % len(order)]


STATUS_LABELS = {
    Status.NOT_GIVEN: "Not Given",
    Status.INCOMPLETE: "Incomplete",
    Status.COMPLETE: "Complete",
    Status.CHECKED: "Checked",
}


class ItemType(StrEnum):
    ASSIGNMENT = "assignment"
    EXPERIMENT = "experiment"

    @property
    def kind(self) -> str:
        return self.value.capitalize()

    @property
    def field(self) -> str:
        return self.value + "s"


def generate_id() -> str:
    return uuid.uuid4().hex


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ChecklistItem:
    id: str
    label: str
    status: Status = Status.NOT_GIVEN

    def to_dict(self) -> dict:
        return {"id": self.id, "label": self.label, "status": self.status.value}

    @classmethod
    def from_dict(cls, data: dict) -> "ChecklistItem":
        # Status(...) raises ValueError on anything outside the four values.
        return cls(id=str(data["id"]), label=str(data["label"]), status=Status(data["status"]))


@dataclass(frozen=True)
class Subject:
    id: str
    name: str
    code: str
    assignments: tuple[ChecklistItem, ...] = ()
    experiments: tuple[ChecklistItem, ...] = ()
    created_at: int = 0

    @property
    def total_assignments(self) -> int:
        return len(self.assignments)

    @property
    def total_experiments(self) -> int:
        return len(self.experiments)

    def items(self, item_type: ItemType) -> tuple[ChecklistItem, ...]:
        return getattr(self, ItemType(item_type).field)

    def with_items(self, item_type: ItemType, items) -> "Subject":
        return replace(self, **{ItemType(item_type).field: tuple(items)})

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "totalAssignments": self.total_assignments,
            "totalExperiments": self.total_experiments,
            "assignments": [a.to_dict() for a in self.assignments],
            "experiments": [e.to_dict() for e in self.experiments],
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Subject":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            code=str(data["code"]),
            assignments=tuple(ChecklistItem.from_dict(a) for a in data["assignments"]),
            experiments=tuple(ChecklistItem.from_dict(e) for e in data["experiments"]),
            created_at=int(data["createdAt"]),
        )


def make_items(item_type: ItemType, start: int, stop: int) -> list[ChecklistItem]:
    """Build fresh items labelled "{Kind} start+1" .. "{Kind} stop"."""
    kind = ItemType(item_type).kind
    return [ChecklistItem(id=generate_id(), label=f"{kind} {n}") for n in range(start + 1, stop + 1)]


def resize_items(items, item_type: ItemType, target: int) -> tuple[ChecklistItem, ...]:
    """Grow by appending not_given items or truncate to the first `target` items.

    Truncation is destructive: dropped items lose their ids and statuses.
    """
    items = tuple(items)
    current = len(items)
    if target > current:
        return items + tuple(make_items(item_type, current, target))
    return items[:target]

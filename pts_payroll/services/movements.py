from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from pts_payroll.models import EmployeeMovement, MovementType
from pts_payroll.services.calendar_math import collapse_to_ranges, iter_days

ENTRY_MOVEMENTS = frozenset({MovementType.ENTRY.value, MovementType.TRANSFER_IN.value, MovementType.RETURN.value})
EXIT_MOVEMENTS = frozenset(
    {
        MovementType.RESIGN.value,
        MovementType.TRANSFER_OUT.value,
        MovementType.RETIRE.value,
        MovementType.DEATH.value,
    }
)
STUDY_MOVEMENTS = frozenset({MovementType.STUDY.value})

# Same-day ordering: exits apply before entries so a swap leaves no gap.
_SAME_DAY_ORDER = {"EXIT": 0, "ENTRY": 1, "STUDY": 2}


class EmploymentState(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    STUDY = "STUDY"


@dataclass(frozen=True, slots=True)
class MovementTimeline:
    active_days: frozenset[date]
    study_days: frozenset[date]

    def study_ranges(self) -> list[tuple[date, date]]:
        return collapse_to_ranges(self.study_days)


def _movement_kind(movement_type: str) -> str | None:
    normalized = (movement_type or "").strip().upper()
    if normalized in EXIT_MOVEMENTS:
        return "EXIT"
    if normalized in ENTRY_MOVEMENTS:
        return "ENTRY"
    if normalized in STUDY_MOVEMENTS:
        return "STUDY"
    return None


def _state_after(kind: str) -> EmploymentState:
    if kind == "ENTRY":
        return EmploymentState.ACTIVE
    if kind == "STUDY":
        return EmploymentState.STUDY
    return EmploymentState.INACTIVE


def _ordered_events(movements: list[EmployeeMovement]) -> list[tuple[date, str]]:
    events: list[tuple[date, str]] = []
    for movement in movements:
        kind = _movement_kind(movement.movement_type)
        if kind is None:
            continue
        events.append((movement.effective_date, kind))
    events.sort(key=lambda item: (item[0], _SAME_DAY_ORDER[item[1]]))
    return events


def build_movement_timeline(
    movements: list[EmployeeMovement],
    month_start: date,
    month_end: date,
) -> MovementTimeline:
    events = _ordered_events(movements)
    all_days = list(iter_days(month_start, month_end))
    if not events:
        return MovementTimeline(active_days=frozenset(all_days), study_days=frozenset())

    # Before the first recorded movement the employee is in service unless it is an entry.
    state = EmploymentState.INACTIVE if events[0][1] == "ENTRY" else EmploymentState.ACTIVE
    pointer = 0
    active: set[date] = set()
    study: set[date] = set()

    for day in all_days:
        while pointer < len(events) and events[pointer][0] <= day:
            state = _state_after(events[pointer][1])
            pointer += 1
        if state == EmploymentState.ACTIVE:
            active.add(day)
        elif state == EmploymentState.STUDY:
            study.add(day)

    return MovementTimeline(active_days=frozenset(active), study_days=frozenset(study))


def list_movements(db: Session, citizen_id: str) -> list[EmployeeMovement]:
    return list(
        db.scalars(
            select(EmployeeMovement)
            .where(EmployeeMovement.citizen_id == citizen_id)
            .order_by(EmployeeMovement.effective_date.asc(), EmployeeMovement.id.asc())
        ).all()
    )

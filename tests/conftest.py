from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

import pytest

from catechesis_attendance.attendance.memory_attendance_repository import InMemoryAttendanceRecordStore
from catechesis_attendance.container import build_services
from catechesis_attendance.roster.model import Enrollment, Group

SESSION_DATE = date(2024, 2, 19)


@dataclass
class InMemoryRoster:
    by_id: dict[int, Enrollment] = field(default_factory=dict)
    calls: int = 0

    def list_for_group(self, group_id: int):
        self.calls += 1
        return [e for e in self.by_id.values() if e.group_id == group_id]

    def get_by_id(self, enrollment_id: int) -> Optional[Enrollment]:
        return self.by_id.get(enrollment_id)

    def get_many(self, enrollment_ids):
        return [self.by_id[i] for i in enrollment_ids if i in self.by_id]


@dataclass
class InMemoryGroups:
    by_id: dict[int, Group] = field(default_factory=dict)

    def get_by_id(self, group_id: int) -> Optional[Group]:
        return self.by_id.get(group_id)

    def list_groups(self, *, parish_id=None, level_id=None):
        return [
            g
            for g in self.by_id.values()
            if (parish_id is None or g.parish_id == parish_id) and (level_id is None or g.level_id == level_id)
        ]


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 2, 19, 18, 0, 0)


@pytest.fixture
def roster() -> InMemoryRoster:
    enrollments = [
        Enrollment(1, 1, "Ana", "López", "0911111111"),
        Enrollment(2, 1, "Pedro", "Martínez", "0922222222"),
        Enrollment(3, 1, "María", "González", "0933333333"),
        Enrollment(4, 2, "Luis", "Andrade", "0944444444"),
        Enrollment(5, 2, "Rosa", "Benítez", "0955555555"),
    ]
    return InMemoryRoster({e.enrollment_id: e for e in enrollments})


@pytest.fixture
def groups() -> InMemoryGroups:
    return InMemoryGroups(
        {
            1: Group(1, "Grupo A", parish_id=10, parish_name="San José", level_id=100, level_name="Iniciación"),
            2: Group(2, "Grupo B", parish_id=20, parish_name="El Carmen", level_id=200, level_name="Confirmación"),
        }
    )


@pytest.fixture
def store() -> InMemoryAttendanceRecordStore:
    return InMemoryAttendanceRecordStore()


@pytest.fixture
def container(store, roster, groups):
    return build_services(attendance_repo=store, roster_repo=roster, groups_repo=groups, cache_ttl_seconds=300)

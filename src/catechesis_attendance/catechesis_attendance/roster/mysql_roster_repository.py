from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Enrollment, Group
from .repository import GroupDirectory, RosterProvider

_ENROLLMENT_SELECT = """
    SELECT e.enrollment_id, e.group_id, l.first_name, l.last_name, l.document_id
    FROM enrollments e
    JOIN learners l ON l.learner_id = e.learner_id
"""

_GROUP_SELECT = """
    SELECT g.group_id, g.name, g.parish_id, p.name AS parish_name,
           g.level_id, lv.name AS level_name, g.period
    FROM catechesis_groups g
    LEFT JOIN parishes p ON p.parish_id = g.parish_id
    LEFT JOIN levels lv ON lv.level_id = g.level_id
"""


def _to_enrollment(r: dict) -> Enrollment:
    return Enrollment(
        enrollment_id=int(r["enrollment_id"]),
        group_id=int(r["group_id"]),
        learner_name=r["first_name"],
        learner_surname=r["last_name"],
        document_id=r.get("document_id") or "",
    )


def _to_group(r: dict) -> Group:
    return Group(
        group_id=int(r["group_id"]),
        name=r["name"],
        parish_id=r.get("parish_id"),
        parish_name=r.get("parish_name"),
        level_id=r.get("level_id"),
        level_name=r.get("level_name"),
        period=r.get("period"),
    )


class MySQLRosterRepository(RosterProvider):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_group(self, group_id: int) -> Sequence[Enrollment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _ENROLLMENT_SELECT + " WHERE e.group_id=%s ORDER BY l.last_name, l.first_name",
                (int(group_id),),
            )
            return [_to_enrollment(r) for r in fetchall(cur)]

    def get_by_id(self, enrollment_id: int) -> Optional[Enrollment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_ENROLLMENT_SELECT + " WHERE e.enrollment_id=%s", (int(enrollment_id),))
            r = fetchone(cur)
            return _to_enrollment(r) if r else None

    def get_many(self, enrollment_ids: Iterable[int]) -> Sequence[Enrollment]:
        ids = sorted({int(i) for i in enrollment_ids})
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_ENROLLMENT_SELECT + f" WHERE e.enrollment_id IN ({in_clause(ids)})", tuple(ids))
            return [_to_enrollment(r) for r in fetchall(cur)]


class MySQLGroupDirectory(GroupDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, group_id: int) -> Optional[Group]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_GROUP_SELECT + " WHERE g.group_id=%s", (int(group_id),))
            r = fetchone(cur)
            return _to_group(r) if r else None

    def list_groups(self, *, parish_id: Optional[int] = None, level_id: Optional[int] = None) -> Sequence[Group]:
        clauses = ["1=1"]
        params: list[object] = []
        if parish_id is not None:
            clauses.append("g.parish_id=%s")
            params.append(int(parish_id))
        if level_id is not None:
            clauses.append("g.level_id=%s")
            params.append(int(level_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_GROUP_SELECT + f" WHERE {' AND '.join(clauses)} ORDER BY g.name", tuple(params))
            return [_to_group(r) for r in fetchall(cur)]

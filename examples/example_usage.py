"""Ejemplo: usar la capa de servicios sin Flask, con el almacén en memoria."""

from datetime import date

from catechesis_attendance.attendance.memory_attendance_repository import InMemoryAttendanceRecordStore
from catechesis_attendance.attendance.model import AttendanceEntry
from catechesis_attendance.container import build_services
from catechesis_attendance.roster.model import Enrollment, Group


class StaticRoster:
    def __init__(self, enrollments):
        self._by_id = {e.enrollment_id: e for e in enrollments}

    def list_for_group(self, group_id):
        return [e for e in self._by_id.values() if e.group_id == group_id]

    def get_by_id(self, enrollment_id):
        return self._by_id.get(enrollment_id)

    def get_many(self, enrollment_ids):
        return [self._by_id[i] for i in enrollment_ids if i in self._by_id]


class StaticGroups:
    def __init__(self, groups):
        self._by_id = {g.group_id: g for g in groups}

    def get_by_id(self, group_id):
        return self._by_id.get(group_id)

    def list_groups(self, *, parish_id=None, level_id=None):
        return [
            g
            for g in self._by_id.values()
            if (parish_id is None or g.parish_id == parish_id) and (level_id is None or g.level_id == level_id)
        ]


def main():
    roster = StaticRoster(
        [
            Enrollment(1, 10, "María", "González", "0102030405"),
            Enrollment(2, 10, "Pedro", "Martínez", "0102030406"),
        ]
    )
    groups = StaticGroups([Group(10, "Grupo A", parish_id=1, level_name="Iniciación")])
    container = build_services(attendance_repo=InMemoryAttendanceRecordStore(), roster_repo=roster, groups_repo=groups)

    container.attendance_service.register_bulk(
        10,
        date.today(),
        [AttendanceEntry(1, True), AttendanceEntry(2, False, "Enfermo")],
    )
    print(container.statistics_service.get_group_statistics(10))
    print(container.report_service.export_report().content.decode("utf-8-sig"))


if __name__ == "__main__":
    main()

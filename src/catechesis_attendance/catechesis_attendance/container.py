from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRecordStore
from .attendance.repository import AttendanceRecordStore
from .attendance.service import AttendanceService
from .core.constants import DEFAULT_STATS_CACHE_TTL_SECONDS, DEFAULT_STORE_LOCK_TIMEOUT_SECONDS
from .database.connection import DatabaseConnection, DBConfig
from .reports.service import ReportService
from .roster.mysql_roster_repository import MySQLGroupDirectory, MySQLRosterRepository
from .roster.repository import GroupDirectory, RosterProvider
from .statistics.cache import StatisticsCache
from .statistics.service import StatisticsService


@dataclass(frozen=True)
class Container:
    attendance_repo: AttendanceRecordStore
    roster_repo: RosterProvider
    groups_repo: GroupDirectory
    stats_cache: StatisticsCache

    attendance_service: AttendanceService
    statistics_service: StatisticsService
    report_service: ReportService

    conn: Optional[DatabaseConnection] = None


def build_services(
    *,
    attendance_repo: AttendanceRecordStore,
    roster_repo: RosterProvider,
    groups_repo: GroupDirectory,
    cache_ttl_seconds: float = DEFAULT_STATS_CACHE_TTL_SECONDS,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services over any store/roster implementation (MySQL or in-memory)."""

    stats_cache = StatisticsCache(ttl_seconds=cache_ttl_seconds)
    attendance_service = AttendanceService(attendance_repo, roster_repo, cache=stats_cache)
    statistics_service = StatisticsService(attendance_repo, roster_repo, groups_repo, cache=stats_cache)
    report_service = ReportService(statistics_service)

    return Container(
        attendance_repo=attendance_repo,
        roster_repo=roster_repo,
        groups_repo=groups_repo,
        stats_cache=stats_cache,
        attendance_service=attendance_service,
        statistics_service=statistics_service,
        report_service=report_service,
        conn=conn,
    )


def build_container(
    *,
    db_config: dict,
    cache_ttl_seconds: float = DEFAULT_STATS_CACHE_TTL_SECONDS,
    lock_timeout_seconds: int = DEFAULT_STORE_LOCK_TIMEOUT_SECONDS,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return build_services(
        attendance_repo=MySQLAttendanceRecordStore(conn, lock_timeout_seconds=lock_timeout_seconds),
        roster_repo=MySQLRosterRepository(conn),
        groups_repo=MySQLGroupDirectory(conn),
        cache_ttl_seconds=cache_ttl_seconds,
        conn=conn,
    )

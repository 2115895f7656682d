from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .analytics.projection import ProjectionCalculator
from .analytics.service import AnalyticsService
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceLedger
from .database.connection import DBConfig, DatabaseConnection
from .overrides.mysql_override_repository import MySQLOverrideRepository
from .overrides.repository import OverrideRepository
from .overrides.service import OverrideService
from .schedule.service import ScheduleService
from .schedule.window import ScheduleWindowLoader
from .streams.mysql_stream_repository import MySQLStreamRepository
from .streams.repository import StreamRepository
from .streams.service import StreamAccessService
from .timetables.mysql_timetable_repository import MySQLTimetableRepository
from .timetables.repository import TimetableRepository
from .timetables.resolver import TimetableResolver
from .timetables.service import TimetableService


@dataclass(frozen=True)
class Container:
    streams_repo: StreamRepository
    timetables_repo: TimetableRepository
    overrides_repo: OverrideRepository
    attendance_repo: AttendanceRepository

    access: StreamAccessService
    timetable_service: TimetableService
    schedule_service: ScheduleService
    override_service: OverrideService
    attendance_ledger: AttendanceLedger
    analytics_service: AnalyticsService
    projection_calculator: ProjectionCalculator

    conn: Optional[DatabaseConnection] = None


def wire_services(
    *,
    streams_repo: StreamRepository,
    timetables_repo: TimetableRepository,
    overrides_repo: OverrideRepository,
    attendance_repo: AttendanceRepository,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Build every service on top of the given repositories (MySQL or in-memory)."""

    access = StreamAccessService(streams_repo)
    resolver = TimetableResolver(timetables_repo)
    windows = ScheduleWindowLoader(timetables_repo, overrides_repo)

    analytics_service = AnalyticsService(attendance_repo, timetables_repo, access, windows)

    return Container(
        conn=conn,
        streams_repo=streams_repo,
        timetables_repo=timetables_repo,
        overrides_repo=overrides_repo,
        attendance_repo=attendance_repo,
        access=access,
        timetable_service=TimetableService(timetables_repo, access, resolver),
        schedule_service=ScheduleService(access, resolver, windows),
        override_service=OverrideService(overrides_repo, attendance_repo, access, windows),
        attendance_ledger=AttendanceLedger(attendance_repo, access, windows),
        analytics_service=analytics_service,
        projection_calculator=ProjectionCalculator(analytics_service, access, windows),
    )


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_settings(db_config))

    return wire_services(
        conn=conn,
        streams_repo=MySQLStreamRepository(conn),
        timetables_repo=MySQLTimetableRepository(conn),
        overrides_repo=MySQLOverrideRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
    )

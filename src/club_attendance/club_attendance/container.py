from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import EventRepository
from .attendance.service import PunchService
from .common.datetime_utils import load_timezone
from .core.constants import DEFAULT_TIMEZONE, REGISTRATION_TOKEN_TTL_MINUTES
from .database.connection import DBConfig, DatabaseConnection
from .members.mysql_card_binding_repository import MySQLCardBindingRepository
from .members.mysql_member_repository import MySQLMemberRepository
from .members.repository import CardBindingRepository, MemberRepository
from .members.service import CardBindingService, DisplayNames
from .registration.mysql_registration_repository import MySQLRegistrationRepository
from .registration.repository import RegistrationRepository
from .registration.service import RegistrationService
from .sessions.service import SessionReconstructor
from .stats.service import AttendanceAggregator
from .system.mysql_logout_log_repository import MySQLLogoutLogRepository
from .system.repository import LogoutLogRepository
from .system.service import BulkLogoutService


@dataclass(frozen=True)
class Container:
    timezone: tzinfo

    events_repo: EventRepository
    members_repo: MemberRepository
    bindings_repo: CardBindingRepository
    registration_repo: RegistrationRepository
    logout_logs_repo: LogoutLogRepository

    punch_service: PunchService
    binding_service: CardBindingService
    session_reconstructor: SessionReconstructor
    aggregator: AttendanceAggregator
    registration_service: RegistrationService
    bulk_logout_service: BulkLogoutService


def wire_container(
    *,
    events_repo: EventRepository,
    members_repo: MemberRepository,
    bindings_repo: CardBindingRepository,
    registration_repo: RegistrationRepository,
    logout_logs_repo: LogoutLogRepository,
    timezone: tzinfo,
    token_ttl_minutes: int = REGISTRATION_TOKEN_TTL_MINUTES,
) -> Container:
    """Build the services on top of any set of repositories."""
    session_reconstructor = SessionReconstructor(events_repo)
    return Container(
        timezone=timezone,
        events_repo=events_repo,
        members_repo=members_repo,
        bindings_repo=bindings_repo,
        registration_repo=registration_repo,
        logout_logs_repo=logout_logs_repo,
        punch_service=PunchService(
            events_repo,
            bindings_repo,
            names=DisplayNames(members_repo),
            tz=timezone,
        ),
        binding_service=CardBindingService(bindings_repo),
        session_reconstructor=session_reconstructor,
        aggregator=AttendanceAggregator(session_reconstructor, members_repo, events_repo, tz=timezone),
        registration_service=RegistrationService(
            registration_repo,
            bindings_repo,
            ttl_minutes=token_ttl_minutes,
        ),
        bulk_logout_service=BulkLogoutService(events_repo, logout_logs_repo, tz=timezone),
    )


def build_container(
    *,
    db_config: dict,
    timezone: str = DEFAULT_TIMEZONE,
    token_ttl_minutes: int = REGISTRATION_TOKEN_TTL_MINUTES,
) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)

    return wire_container(
        events_repo=MySQLAttendanceRepository(conn),
        members_repo=MySQLMemberRepository(conn),
        bindings_repo=MySQLCardBindingRepository(conn),
        registration_repo=MySQLRegistrationRepository(conn),
        logout_logs_repo=MySQLLogoutLogRepository(conn),
        timezone=load_timezone(timezone),
        token_ttl_minutes=token_ttl_minutes,
    )

"""
SQL Server and Windows uptime reporting.

SQL start time is the tempdb creation time (tempdb is rebuilt on every
engine start). Windows boot time is read over WinRM first and over an
explicit DCOM CimSession second; when both fail the report is SQL-only.
All durations in one call are measured against a single `now`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence

from sqladminops.application.common.reporting import CommandResult, FailureReporter
from sqladminops.domain.config import Credential
from sqladminops.domain.errors import ParameterValidationError, SqlAdminError
from sqladminops.domain.models import TargetInstance, UptimeReport, elapsed_since
from sqladminops.domain.protocols import (
    HostInfoProvider,
    InstanceConnector,
    NetworkNameResolver,
    ServerSession,
)

logger = logging.getLogger(__name__)

OPERATION = "Get-Uptime"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _is_session(item: Any) -> bool:
    return not isinstance(item, (str, TargetInstance, UptimeReport)) and hasattr(item, "get_database_create_date")


class UptimeService:
    """
    Builds one UptimeReport per reachable instance.
    """

    def __init__(
        self,
        connector: InstanceConnector,
        resolver: NetworkNameResolver,
        host_info: HostInfoProvider,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.connector = connector
        self.resolver = resolver
        self.host_info = host_info
        self.clock = clock

    @staticmethod
    def display_name(item: Any) -> str:
        """Name for an input of any accepted shape."""
        if isinstance(item, UptimeReport):
            return item.sql_server
        if _is_session(item):
            return item.name
        return TargetInstance.parse(item).full_name

    def get_uptime(
        self,
        instances: Sequence[Any],
        sql_credential: Optional[Credential] = None,
        windows_credential: Optional[Credential] = None,
        enable_exception: bool = False,
    ) -> CommandResult[UptimeReport]:
        """
        Report uptime for each instance.

        `instances` items may be instance strings, TargetInstance objects,
        open sessions, or earlier UptimeReport records. A TargetInstance's
        own credentials apply where sql_credential / windows_credential are None.
        """
        result: CommandResult[UptimeReport] = CommandResult()
        reporter = FailureReporter(result, enable_exception, logger)
        now = self.clock()

        for item in instances:
            try:
                name = self.display_name(item)
            except ValueError as e:
                reporter.fail(ParameterValidationError(str(e), operation=OPERATION))
                continue

            owned = not _is_session(item)
            host_credential = windows_credential
            if owned:
                target = TargetInstance.parse(name if isinstance(item, UptimeReport) else item)
                host_credential = windows_credential or target.os_credential
                try:
                    session = self.connector.connect(target, sql_credential)
                except SqlAdminError as e:
                    reporter.fail(e)
                    continue
            else:
                session = item

            try:
                report = self._build_report(session, now, host_credential, reporter)
            finally:
                if owned:
                    session.close()

            if report is not None:
                result.records.append(report)

        return result

    def _build_report(
        self,
        session: ServerSession,
        now: datetime,
        windows_credential: Optional[Credential],
        reporter: FailureReporter,
    ) -> UptimeReport | None:
        try:
            sql_start = session.get_database_create_date("tempdb").astimezone(timezone.utc)
        except SqlAdminError as e:
            reporter.fail(e)
            return None

        report = UptimeReport(
            computer_name=session.computer_name,
            instance_name=session.instance_name,
            sql_server=session.name,
            sql_start_time=sql_start,
            sql_uptime=elapsed_since(sql_start, now),
        )

        host = self.resolver.resolve(session.computer_name, windows_credential)
        boot_time = self._read_boot_time(host, windows_credential, reporter)
        if boot_time is not None:
            report.windows_boot_time = boot_time
            report.windows_uptime = elapsed_since(boot_time, now)

        return report

    def _read_boot_time(
        self,
        host: str,
        credential: Optional[Credential],
        reporter: FailureReporter,
    ) -> datetime | None:
        try:
            return self.host_info.get_last_boot_time(host, credential).astimezone(timezone.utc)
        except SqlAdminError as primary_error:
            logger.debug("Primary boot time query failed for %s: %s", host, primary_error)
            try:
                return self.host_info.get_last_boot_time_dcom(host, credential).astimezone(timezone.utc)
            except SqlAdminError as fallback_error:
                reporter.warn(
                    f"Failure getting Windows boot time of {host}; reporting SQL uptime only "
                    f"(WinRM: {primary_error.message}; DCOM: {fallback_error.message})"
                )
                return None

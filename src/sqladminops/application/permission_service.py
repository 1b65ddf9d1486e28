"""
Availability group and endpoint permission grants.

Flow:
1. Validate the parameter combination (no work on failure)
2. Per instance: connect, grant CreateAnyDatabase on the named
   availability groups, fetch or create the requested logins
3. Per login: grant on the database mirroring endpoint and/or on the
   named availability groups, one GrantResult per successful grant

Connection errors and individual grant errors skip only that unit.
Login creation and CreateAnyDatabase failures abandon the instance.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqladminops.application.common.reporting import CommandResult, FailureReporter
from sqladminops.domain.config import Credential
from sqladminops.domain.errors import (
    InstanceConnectionError,
    ObjectNotFoundError,
    OperationFailedError,
    ParameterValidationError,
    SqlAdminError,
    UnsupportedPermissionError,
)
from sqladminops.domain.models import (
    AG_PERMISSIONS,
    DEFAULT_PERMISSIONS,
    ENDPOINT_TYPE_DATABASE_MIRRORING,
    GrantResult,
    GrantType,
    Login,
    Permission,
    PermissionGrantRequest,
    TargetInstance,
    is_windows_account_name,
)
from sqladminops.domain.protocols import InstanceConnector, ServerSession

logger = logging.getLogger(__name__)

OPERATION = "Grant-AgPermission"


def _unique(values: Iterable[Any]) -> List[Any]:
    return list(OrderedDict.fromkeys(values))


class PermissionGrantService:
    """
    Grants endpoint and availability group permissions to logins.
    """

    def __init__(self, connector: InstanceConnector):
        self.connector = connector

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def grant(
        self,
        instances: Optional[Sequence[TargetInstance | str]] = None,
        grant_types: Iterable[GrantType | str] = (),
        sql_credential: Optional[Credential] = None,
        logins: Optional[Sequence[str]] = None,
        availability_groups: Optional[Sequence[str]] = None,
        permissions: Iterable[Permission | str] = DEFAULT_PERMISSIONS,
        input_objects: Optional[Sequence[Login]] = None,
        what_if: bool = False,
        enable_exception: bool = False,
    ) -> CommandResult[GrantResult]:
        """
        Grant permissions and return one GrantResult per successful grant.

        Raises:
            SqlAdminError: Only when enable_exception is set
        """
        result: CommandResult[GrantResult] = CommandResult()
        reporter = FailureReporter(result, enable_exception, logger)

        try:
            targets = [TargetInstance.parse(item) for item in instances or []]
            types = {GrantType.parse(item) for item in grant_types}
            perms = _unique(Permission.parse(item) for item in permissions)
        except ValueError as e:
            reporter.fail(ParameterValidationError(str(e), operation=OPERATION))
            return result

        login_names = _unique(name.strip() for name in logins or [] if name and name.strip())
        group_names = _unique(name.strip() for name in availability_groups or [] if name and name.strip())
        input_objects = list(input_objects or [])

        error = self._validate(targets, types, perms, login_names, group_names, input_objects)
        if error is not None:
            reporter.fail(error)
            return result

        accumulated: List[Login] = list(input_objects)
        opened: List[ServerSession] = []
        try:
            for target in targets:
                try:
                    session = self.connector.connect(target, sql_credential)
                except InstanceConnectionError as e:
                    reporter.fail(e)
                    continue
                opened.append(session)

                instance_logins = self._prepare_instance(
                    session, perms, login_names, group_names, accumulated, what_if, reporter
                )
                if instance_logins is not None:
                    accumulated.extend(instance_logins)

            for login in accumulated:
                self._grant_to_login(login, types, perms, group_names, what_if, result, reporter)
        finally:
            for session in opened:
                session.close()

        logger.info(
            "%s finished: %d granted, %d errors", OPERATION, len(result.records), len(result.errors)
        )
        return result

    def list_logins(
        self,
        instances: Sequence[TargetInstance | str],
        sql_credential: Optional[Credential] = None,
        logins: Optional[Sequence[str]] = None,
        enable_exception: bool = False,
    ) -> CommandResult[Login]:
        """
        Logins of each instance, optionally filtered by name.

        The returned logins keep their sessions open as `parent`; release
        them with close_sessions().
        When an error propagates, sessions opened so far are closed first.
        """
        result: CommandResult[Login] = CommandResult()
        reporter = FailureReporter(result, enable_exception, logger)
        names = [name for name in logins or [] if name] or None

        try:
            for item in instances:
                try:
                    target = TargetInstance.parse(item)
                except ValueError as e:
                    reporter.fail(ParameterValidationError(str(e), operation="Get-Login"))
                    continue
                try:
                    session = self.connector.connect(target, sql_credential)
                except InstanceConnectionError as e:
                    reporter.fail(e)
                    continue
                try:
                    found = session.get_logins(names)
                except SqlAdminError as e:
                    session.close()
                    reporter.fail(e)
                    continue
                if not found:
                    session.close()
                result.records.extend(found)
        except SqlAdminError:
            self.close_sessions(result.records)
            raise

        return result

    def resolve_input_logins(
        self,
        records: Iterable[Dict[str, Any]],
        sql_credential: Optional[Credential] = None,
        enable_exception: bool = False,
    ) -> CommandResult[Login]:
        """
        Turn login records ({"SqlInstance", "Name"}) back into Login objects.

        Records are grouped per instance so each instance is connected once.
        """
        grouped: Dict[str, List[str]] = OrderedDict()
        for record in records:
            instance = record.get("SqlInstance")
            name = record.get("Name")
            if instance and name:
                grouped.setdefault(instance, []).append(name)

        result: CommandResult[Login] = CommandResult()
        reporter = FailureReporter(result, enable_exception, logger)

        try:
            for instance, names in grouped.items():
                resolved = self.list_logins([instance], sql_credential, names, enable_exception)
                result.errors.extend(resolved.errors)
                result.records.extend(resolved.records)
                found = {login.name.lower() for login in resolved.records}
                for name in names:
                    if name.lower() not in found and not resolved.errors:
                        reporter.fail(ObjectNotFoundError(
                            f"Login {name} not found", target=instance, operation="Resolve input login"
                        ))
        except SqlAdminError:
            self.close_sessions(result.records)
            raise
        return result

    @staticmethod
    def close_sessions(logins: Iterable[Login]) -> None:
        """Close each distinct parent session once."""
        seen = set()
        for login in logins:
            parent = login.parent
            if parent is not None and id(parent) not in seen:
                seen.add(id(parent))
                parent.close()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(
        targets: List[TargetInstance],
        types: set,
        perms: List[Permission],
        login_names: List[str],
        group_names: List[str],
        input_objects: List[Login],
    ) -> ParameterValidationError | None:
        if not targets and not input_objects:
            return ParameterValidationError(
                "You must supply either SqlInstance or an Input Object", operation=OPERATION
            )
        if not types:
            return ParameterValidationError(
                "You must specify at least one Type (Endpoint, AvailabilityGroup)", operation=OPERATION
            )
        if not perms:
            return ParameterValidationError("You must specify at least one Permission", operation=OPERATION)
        if GrantType.ENDPOINT in types and targets and not login_names:
            return ParameterValidationError(
                "You must specify one or more logins when Type includes Endpoint and using SqlInstance",
                operation=OPERATION,
            )
        if GrantType.AVAILABILITY_GROUP in types and not group_names:
            return ParameterValidationError(
                "You must specify at least one availability group when using the AvailabilityGroup type",
                operation=OPERATION,
            )
        return None

    # ------------------------------------------------------------------
    # Per instance
    # ------------------------------------------------------------------

    def _prepare_instance(
        self,
        session: ServerSession,
        perms: List[Permission],
        login_names: List[str],
        group_names: List[str],
        accumulated: List[Login],
        what_if: bool,
        reporter: FailureReporter,
    ) -> List[Login] | None:
        """
        Instance-level work. Returns the logins to grant to, or None when
        a fatal error abandoned this instance.
        """
        if Permission.CREATE_ANY_DATABASE in perms and group_names:
            if not self._grant_create_any_database(session, group_names, what_if, reporter):
                return None

        if not login_names:
            return []

        try:
            existing = session.get_logins(login_names)
        except SqlAdminError as e:
            reporter.fail(e)
            return None

        # Logins piped in for this same session are not fetched twice
        already = {login.name.lower() for login in accumulated if login.parent is session}
        instance_logins = [login for login in existing if login.name.lower() not in already]
        known = already | {login.name.lower() for login in existing}

        for name in login_names:
            if name.lower() in known:
                continue
            if not is_windows_account_name(name):
                reporter.fail(ObjectNotFoundError(
                    f"Login {name} does not exist and only Windows logins (DOMAIN\\name) are created automatically",
                    target=session.name,
                    operation="Resolve login",
                ))
                continue
            if what_if:
                reporter.preview(f"Creating Windows login {name} on {session.name}")
                instance_logins.append(Login(name=name, login_type="WindowsUser", parent=session))
                continue
            try:
                created = session.create_windows_login(name)
            except SqlAdminError as e:
                reporter.fail(OperationFailedError(
                    e.message, target=session.name, operation=f"Create login {name}"
                ))
                return None
            known.add(name.lower())
            instance_logins.append(created)

        return instance_logins

    def _grant_create_any_database(
        self,
        session: ServerSession,
        group_names: List[str],
        what_if: bool,
        reporter: FailureReporter,
    ) -> bool:
        try:
            groups = session.get_availability_groups(group_names)
        except SqlAdminError as e:
            reporter.fail(e)
            return False

        self._report_missing_groups(session, group_names, groups, reporter)

        for group in groups:
            description = f"Granting CreateAnyDatabase on availability group {group.name} on {session.name}"
            if what_if:
                reporter.preview(description)
                continue
            try:
                session.grant_create_any_database(group)
            except SqlAdminError as e:
                reporter.fail(OperationFailedError(
                    e.message, target=session.name,
                    operation=f"Grant CreateAnyDatabase on availability group {group.name}",
                ))
                return False
            logger.info("%s: done", description)
        return True

    # ------------------------------------------------------------------
    # Per login
    # ------------------------------------------------------------------

    def _grant_to_login(
        self,
        login: Login,
        types: set,
        perms: List[Permission],
        group_names: List[str],
        what_if: bool,
        result: CommandResult[GrantResult],
        reporter: FailureReporter,
    ) -> None:
        session = login.parent
        if session is None:
            reporter.fail(OperationFailedError(
                "login is not attached to an instance", target=login.name, operation=OPERATION
            ))
            return

        if GrantType.ENDPOINT in types:
            try:
                session.refresh_endpoints()
                endpoint = session.find_endpoint(ENDPOINT_TYPE_DATABASE_MIRRORING)
            except SqlAdminError as e:
                reporter.fail(e)
                return
            if endpoint is None:
                reporter.fail(ObjectNotFoundError(
                    "DatabaseMirroring endpoint does not exist", target=session.name, operation=OPERATION
                ))
                return

            for perm in perms:
                request = PermissionGrantRequest(
                    session.name, GrantType.ENDPOINT, perm, endpoint.name, login.name
                )
                if perm is Permission.CREATE_ANY_DATABASE:
                    reporter.fail(UnsupportedPermissionError(
                        "CreateAnyDatabase permission is only supported by availability groups",
                        target=session.name, operation=request.describe(),
                    ))
                    continue
                self._attempt(
                    request,
                    lambda: session.grant_endpoint_permission(endpoint, perm, login.name),
                    session, what_if, result, reporter,
                )

        if GrantType.AVAILABILITY_GROUP in types:
            try:
                groups = session.get_availability_groups(group_names)
            except SqlAdminError as e:
                reporter.fail(e)
                return
            self._report_missing_groups(session, group_names, groups, reporter)

            for group in groups:
                for perm in perms:
                    request = PermissionGrantRequest(
                        session.name, GrantType.AVAILABILITY_GROUP, perm, group.name, login.name
                    )
                    if perm not in AG_PERMISSIONS:
                        reporter.fail(UnsupportedPermissionError(
                            f"{perm.value} is not supported by availability groups; "
                            "use Alter, Control, TakeOwnership or ViewDefinition",
                            target=session.name, operation=request.describe(),
                        ))
                        continue
                    self._attempt(
                        request,
                        lambda: session.grant_availability_group_permission(group, perm, login.name),
                        session, what_if, result, reporter,
                    )

    @staticmethod
    def _attempt(request, grant_call, session, what_if, result, reporter) -> None:
        if what_if:
            reporter.preview(request.describe())
            return
        try:
            grant_call()
        except SqlAdminError as e:
            reporter.fail(OperationFailedError(e.message, target=session.name, operation=request.describe()))
            return

        logger.info("%s: done", request.describe())
        result.records.append(GrantResult(
            computer_name=session.computer_name,
            instance_name=session.instance_name,
            sql_instance=session.name,
            name=request.login,
            permission=request.permission,
        ))

    @staticmethod
    def _report_missing_groups(session, group_names, groups, reporter) -> None:
        found = {group.name.lower() for group in groups}
        for name in group_names:
            if name.lower() not in found:
                reporter.fail(ObjectNotFoundError(
                    f"Availability group {name} does not exist",
                    target=session.name, operation=OPERATION,
                ))

"""
Host information over remote-management transports.

Reads Win32_OperatingSystem.LastBootUpTime two ways:
- primary: Get-CimInstance over WinRM (pywinrm)
- secondary: an explicit CimSession over DCOM, opened from the local
  PowerShell and always removed before the script exits
"""

from __future__ import annotations

import logging
import subprocess
from datetime import datetime, timezone
from typing import Callable

from sqladminops.domain.config.models.app_settings import AppSettings
from sqladminops.domain.config.models.credential import Credential
from sqladminops.domain.errors import InstanceConnectionError, OperationFailedError
from sqladminops.infrastructure.psremote.client import (
    ConnectionConfig,
    PSRemoteClient,
    find_powershell,
)

logger = logging.getLogger(__name__)

BOOT_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

BOOT_TIME_SCRIPT = """
$ErrorActionPreference = 'Stop'
$os = Get-CimInstance -ClassName Win32_OperatingSystem
$os.LastBootUpTime.ToUniversalTime().ToString('yyyy-MM-ddTHH:mm:ssZ')
"""


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _pscredential_block(credential: Credential) -> str:
    """PowerShell lines that build $credential."""
    return "\n".join([
        f"$securePassword = ConvertTo-SecureString {_ps_quote(credential.get_password())} -AsPlainText -Force",
        f"$credential = New-Object System.Management.Automation.PSCredential({_ps_quote(credential.username)}, $securePassword)",
    ])


def build_dcom_boot_time_script(host: str, credential: Credential | None = None) -> str:
    """Script that opens a DCOM CimSession, reads the boot time and removes the session."""
    lines = ["$ErrorActionPreference = 'Stop'"]
    cred_part = ""
    if credential is not None:
        lines.append(_pscredential_block(credential))
        cred_part = " -Credential $credential"
    lines.extend([
        "$option = New-CimSessionOption -Protocol Dcom",
        f"$session = New-CimSession -ComputerName {_ps_quote(host)} -SessionOption $option{cred_part}",
        "try {",
        "    $os = Get-CimInstance -CimSession $session -ClassName Win32_OperatingSystem",
        "    $os.LastBootUpTime.ToUniversalTime().ToString('yyyy-MM-ddTHH:mm:ssZ')",
        "} finally {",
        "    Remove-CimSession -CimSession $session",
        "}",
    ])
    # PowerShell reading stdin runs a multi-line block only after a blank line
    return "\n".join(lines) + "\n\n"


def parse_boot_time(output: str) -> datetime:
    """Parse the last non-empty output line as a UTC timestamp."""
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    if not lines:
        raise ValueError("empty output")
    return datetime.strptime(lines[-1], BOOT_TIME_FORMAT).replace(tzinfo=timezone.utc)


class WindowsHostInfoProvider:
    """
    Boot time reader used by the uptime command.

    `client_factory` builds the WinRM client; tests replace it.
    """

    def __init__(
        self,
        settings: AppSettings | None = None,
        client_factory: Callable[[ConnectionConfig], PSRemoteClient] = PSRemoteClient,
    ):
        self.settings = settings or AppSettings()
        self._client_factory = client_factory

    def get_last_boot_time(self, host: str, credential: Credential | None = None) -> datetime:
        """
        Boot time via WinRM.

        Raises:
            InstanceConnectionError: If no WinRM combination works
            OperationFailedError: If the query fails or returns garbage
        """
        winrm_settings = self.settings.winrm
        config = ConnectionConfig(
            hostname=host,
            username=credential.username if credential else None,
            password=credential.get_password() if credential else None,
            port_http=winrm_settings.port_http,
            port_https=winrm_settings.port_https,
            operation_timeout_sec=winrm_settings.operation_timeout_sec,
            verify_ssl=winrm_settings.verify_ssl,
        )
        client = self._client_factory(config)
        try:
            if not client.connect():
                raise InstanceConnectionError(
                    "no WinRM transport/authentication combination succeeded",
                    target=host,
                    operation="Read boot time (WinRM)",
                )
            result = client.run_ps(BOOT_TIME_SCRIPT)
        finally:
            client.close()

        if not result.success:
            raise OperationFailedError(
                (result.stderr or result.error or "query failed").strip(),
                target=host,
                operation="Read boot time (WinRM)",
            )
        try:
            boot_time = parse_boot_time(result.stdout)
        except ValueError as e:
            raise OperationFailedError(
                f"unexpected output: {result.stdout.strip()[:100]!r}",
                target=host,
                operation="Read boot time (WinRM)",
            ) from e

        logger.debug("Boot time of %s via WinRM (%s): %s", host, result.transport_used, boot_time)
        return boot_time

    def get_last_boot_time_dcom(self, host: str, credential: Credential | None = None) -> datetime:
        """
        Boot time via an explicit DCOM CimSession.

        Raises:
            OperationFailedError: If PowerShell is missing or the query fails
        """
        operation = "Read boot time (DCOM)"
        executable = find_powershell()
        if executable is None:
            raise OperationFailedError("PowerShell not available", target=host, operation=operation)

        script = build_dcom_boot_time_script(host, credential)
        try:
            # Script goes through stdin so the password never lands on a command line
            result = subprocess.run(
                [executable, "-NoProfile", "-NonInteractive", "-Command", "-"],
                input=script,
                capture_output=True,
                text=True,
                timeout=self.settings.dcom_timeout_sec,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise OperationFailedError(
                f"timed out after {self.settings.dcom_timeout_sec}s", target=host, operation=operation
            ) from e
        except OSError as e:
            raise OperationFailedError(str(e), target=host, operation=operation) from e

        if result.returncode != 0:
            raise OperationFailedError(
                result.stderr.strip() or "query failed", target=host, operation=operation
            )
        try:
            boot_time = parse_boot_time(result.stdout)
        except ValueError as e:
            raise OperationFailedError(
                f"unexpected output: {result.stdout.strip()[:100]!r}", target=host, operation=operation
            ) from e

        logger.debug("Boot time of %s via DCOM: %s", host, boot_time)
        return boot_time

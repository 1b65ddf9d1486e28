"""
PSRemote Client - pywinrm wrapper.

Tries transport and authentication combinations until one works and
remembers the working combination per host/user.

Transport Priority:
1. HTTPS (5986) with certificate validation (when enabled)
2. HTTPS (5986) without certificate validation
3. HTTP (5985)

Auth Priority:
1. Negotiate (auto-selects Kerberos or NTLM)
2. Kerberos
3. NTLM
4. Basic (only over HTTPS)
"""

from __future__ import annotations

import logging
import shutil
import socket
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import winrm  # pywinrm

from sqladminops.domain.models import LOCALHOST_ALIASES

logger = logging.getLogger(__name__)


class Transport(Enum):
    """WinRM transport protocols."""

    HTTPS = "https"
    HTTP = "http"


class AuthMethod(Enum):
    """WinRM authentication methods."""

    NEGOTIATE = "negotiate"
    KERBEROS = "kerberos"
    NTLM = "ntlm"
    BASIC = "basic"


@dataclass
class ConnectionConfig:
    """Configuration for a PSRemote connection."""

    hostname: str
    username: str | None = None
    password: str | None = None
    port_http: int = 5985
    port_https: int = 5986
    operation_timeout_sec: int = 60
    verify_ssl: bool = True


@dataclass
class PSRemoteResult:
    """Result from a PSRemote operation."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    return_code: int = -1
    transport_used: str = ""
    auth_used: str = ""
    error: str = ""
    attempts: list[dict[str, Any]] = field(default_factory=list)


def find_powershell() -> str | None:
    """Path of the local PowerShell executable, if any."""
    return shutil.which("powershell") or shutil.which("pwsh")


class PSRemoteClient:
    """
    PSRemote client using pywinrm.

    Localhost targets run through the local PowerShell instead of WinRM.
    """

    # Class-level cache of successful combinations
    _connection_cache: dict[str, tuple[Transport, AuthMethod, bool]] = {}

    def __init__(self, config: ConnectionConfig) -> None:
        self.config = config
        self._session: winrm.Session | None = None
        self._working_transport: Transport | None = None
        self._working_auth: AuthMethod | None = None
        self._is_localhost: bool = self._detect_localhost()

    def _detect_localhost(self) -> bool:
        """Match localhost aliases and the local machine name."""
        hostname = self.config.hostname.lower().strip()
        if hostname in LOCALHOST_ALIASES:
            return True

        local_name = socket.gethostname().lower()
        return hostname in (local_name, local_name.split(".")[0])

    def _combinations(self) -> list[tuple[Transport, AuthMethod, bool]]:
        combos: list[tuple[Transport, AuthMethod, bool]] = []
        if self.config.verify_ssl:
            for auth in (AuthMethod.NEGOTIATE, AuthMethod.KERBEROS, AuthMethod.NTLM):
                combos.append((Transport.HTTPS, auth, True))
        for auth in (AuthMethod.NEGOTIATE, AuthMethod.KERBEROS, AuthMethod.NTLM, AuthMethod.BASIC):
            combos.append((Transport.HTTPS, auth, False))
        # HTTP never with basic
        for auth in (AuthMethod.NEGOTIATE, AuthMethod.KERBEROS, AuthMethod.NTLM):
            combos.append((Transport.HTTP, auth, False))
        return combos

    def connect(self) -> bool:
        """
        Establish a connection trying all combinations.

        Returns True if a connection was established.
        """
        if self._is_localhost:
            logger.debug("Localhost mode: skipping WinRM for %s", self.config.hostname)
            return True

        cache_key = f"{self.config.hostname}:{self.config.username}"
        if cache_key in self._connection_cache:
            transport, auth, verify_ssl = self._connection_cache[cache_key]
            logger.debug("Using cached combination: %s + %s", transport.value, auth.value)
            if self._try_connect(transport, auth, verify_ssl):
                return True
            del self._connection_cache[cache_key]

        for transport, auth, verify_ssl in self._combinations():
            if self._try_connect(transport, auth, verify_ssl):
                self._connection_cache[cache_key] = (transport, auth, verify_ssl)
                if transport is Transport.HTTP:
                    logger.debug("Connected to %s over HTTP", self.config.hostname)
                return True

        logger.debug("All WinRM combinations failed for %s", self.config.hostname)
        return False

    def _try_connect(self, transport: Transport, auth: AuthMethod, verify_ssl: bool) -> bool:
        """Try a single transport+auth combination."""
        port = self.config.port_https if transport is Transport.HTTPS else self.config.port_http
        endpoint = f"{transport.value}://{self.config.hostname}:{port}/wsman"

        logger.debug("Trying: %s with %s (SSL verify: %s)", endpoint, auth.value, verify_ssl)

        try:
            session = winrm.Session(
                target=endpoint,
                auth=(self.config.username, self.config.password),
                transport=auth.value,
                server_cert_validation="validate" if verify_ssl else "ignore",
                operation_timeout_sec=self.config.operation_timeout_sec,
                read_timeout_sec=self.config.operation_timeout_sec + 10,
            )
            result = session.run_cmd("echo", ["OK"])
        except Exception as e:  # pywinrm surfaces transport, auth and requests errors
            logger.debug("Attempt failed: %s - %s", type(e).__name__, str(e)[:100])
            return False

        if result.status_code == 0 and b"OK" in result.std_out:
            self._session = session
            self._working_transport = transport
            self._working_auth = auth
            return True
        return False

    def run_ps(self, script: str) -> PSRemoteResult:
        """Execute a PowerShell script on the remote host."""
        if self._is_localhost:
            return self._run_local_ps(script)

        if not self._session and not self.connect():
            return PSRemoteResult(success=False, error="Failed to establish WinRM connection")

        transport_used = self._working_transport.value if self._working_transport else ""
        auth_used = self._working_auth.value if self._working_auth else ""
        try:
            result = self._session.run_ps(script)
        except Exception as e:  # pywinrm surfaces transport, auth and requests errors
            logger.debug("PowerShell execution on %s failed: %s", self.config.hostname, e)
            return PSRemoteResult(
                success=False, error=str(e), transport_used=transport_used, auth_used=auth_used
            )

        return PSRemoteResult(
            success=result.status_code == 0,
            stdout=result.std_out.decode("utf-8", errors="replace"),
            stderr=result.std_err.decode("utf-8", errors="replace"),
            return_code=result.status_code,
            transport_used=transport_used,
            auth_used=auth_used,
        )

    def _run_local_ps(self, script: str) -> PSRemoteResult:
        """Execute a PowerShell script locally, passing it on stdin."""
        executable = find_powershell()
        if executable is None:
            return PSRemoteResult(success=False, error="PowerShell not available", transport_used="local")

        try:
            result = subprocess.run(
                [executable, "-NoProfile", "-NonInteractive", "-Command", "-"],
                input=script.rstrip("\n") + "\n\n",
                capture_output=True,
                text=True,
                timeout=self.config.operation_timeout_sec,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return PSRemoteResult(
                success=False,
                error=f"Script timed out after {self.config.operation_timeout_sec}s",
                transport_used="local",
                auth_used="local",
            )
        except OSError as e:
            return PSRemoteResult(success=False, error=str(e), transport_used="local", auth_used="local")

        return PSRemoteResult(
            success=result.returncode == 0,
            stdout=result.stdout,
            stderr=result.stderr,
            return_code=result.returncode,
            transport_used="local",
            auth_used="local",
        )

    def close(self) -> None:
        """Close the session."""
        self._session = None

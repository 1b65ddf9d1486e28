"""
Application settings domain model.

Controls connection flags and the timeouts handed to the SQL and
remote-management transports. Loaded from settings.json when present.
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class WinRMSettings(BaseModel):
    """WS-Management transport settings for the primary boot time query."""

    port_http: int = Field(default=5985, ge=1, le=65535)
    port_https: int = Field(default=5986, ge=1, le=65535)
    operation_timeout_sec: int = Field(
        default=60,
        description="Timeout in seconds for a remote PowerShell command",
        ge=5,
        le=300
    )
    verify_ssl: bool = Field(default=True, description="Validate HTTPS certificates")


class AppSettings(BaseModel):
    """
    Settings for all commands.
    """

    connect_timeout: int = Field(
        default=15,
        description="Timeout in seconds for SQL Server logins",
        ge=1,
        le=300
    )

    dcom_timeout_sec: int = Field(
        default=60,
        description="Timeout in seconds for the DCOM fallback query",
        ge=5,
        le=600
    )

    odbc_driver: Optional[str] = Field(
        default=None,
        description="ODBC driver name; detected automatically when unset"
    )

    encrypt: bool = Field(default=False, description="Request an encrypted SQL connection")

    trust_server_certificate: bool = Field(
        default=True,
        description="Accept the server certificate without validation"
    )

    winrm: WinRMSettings = Field(default_factory=WinRMSettings)

    @field_validator('connect_timeout')
    @classmethod
    def validate_reasonable_timeout(cls, v: int) -> int:
        """Warn about very long login timeouts."""
        if v > 120:
            logger.warning("Connect timeout of %s is very high - consider network conditions", v)
        return v

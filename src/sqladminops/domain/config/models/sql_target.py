"""
SQL Target domain model.

A configured SQL Server instance the commands can run against.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sqladminops.domain.config.models.credential import Credential
from sqladminops.domain.models import TargetInstance


class SqlTarget(BaseModel):
    """
    Domain model for a SQL Server target from sql_targets.json.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(..., description="Unique identifier/alias for this target")
    server: str = Field(..., description="SQL Server host name or IP")
    instance: Optional[str] = Field(None, description="Named instance (null for default)")
    port: Optional[int] = Field(None, description="TCP port (null for the default resolution)")
    credentials_ref: Optional[str] = Field(
        None, description="Reference to a SQL credential file", alias="credential_file"
    )
    os_credentials_ref: Optional[str] = Field(
        None, description="Reference to a Windows credential file", alias="os_credential_file"
    )
    enabled: bool = Field(True, description="Whether this target is used by --all-targets")
    tags: List[str] = Field(default_factory=list, description="Tags for filtering/grouping")

    @field_validator("server")
    @classmethod
    def validate_server(cls, v: str) -> str:
        """Validate server name format."""
        if not v or not v.strip():
            raise ValueError("Server name cannot be empty")
        return v.strip()

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: Optional[int]) -> Optional[int]:
        """Validate port number."""
        if v is not None and (v < 1 or v > 65535):
            raise ValueError("Port must be between 1 and 65535")
        return v

    def to_target_instance(
        self,
        credential: Optional[Credential] = None,
        os_credential: Optional[Credential] = None,
    ) -> TargetInstance:
        """Connection target; credentials are the resolved credentials_ref / os_credentials_ref."""
        return TargetInstance(
            host=self.server,
            instance=self.instance,
            port=self.port,
            credential=credential,
            os_credential=os_credential,
        )

"""
Credential domain model.

Holds a username/password pair for SQL authentication or for
Windows remote-management calls.
"""

from pydantic import BaseModel, Field, SecretStr, field_validator


class Credential(BaseModel):
    """
    Domain model for login credentials.

    The password is kept as a SecretStr so it never shows up in reprs or logs.
    """

    username: str = Field(..., description="Login or DOMAIN\\user name")
    password: SecretStr = Field(..., description="Password")

    @field_validator('username')
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Validate username is not empty."""
        if not v or not v.strip():
            raise ValueError("Username cannot be empty")
        return v.strip()

    def get_password(self) -> str:
        """Get the plain text password."""
        return self.password.get_secret_value()  # pylint: disable=no-member

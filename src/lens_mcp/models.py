"""Pydantic models for MCP tool arguments."""

from pydantic import BaseModel, Field

UDUNS_DESCRIPTION = "Account Global ultimate duns number (uduns)"


class NoArgs(BaseModel):
    """Arguments for tools that take no parameters."""


class AccountArgs(BaseModel):
    """Arguments for per-account tools."""

    uduns: str = Field(
        ...,
        min_length=1,
        strict=True,
        description=UDUNS_DESCRIPTION,
    )

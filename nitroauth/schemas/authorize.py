"""
Pydantic schemas for the authorize endpoint.
"""

import enum

from pydantic import BaseModel, ConfigDict, Field


class AuthorizeRequest(BaseModel):
    """
    Request body. Both fields are optional at the schema level so that a
    missing value is reported with the broker's own message.
    """

    requested_site: str | None = Field(default=None, alias="requestedSite")
    redirect_url: str | None = Field(default=None, alias="redirectUrl")

    model_config = ConfigDict(populate_by_name=True)


class DecisionOutcome(str, enum.Enum):
    GRANTED = "granted"
    DENIED = "denied"


class AuthorizationDecision(BaseModel):
    """
    Result of an authorization request.

    ``redirect_url`` is always set: the requested destination when granted,
    the role's landing page when denied.
    """

    authorized: bool
    redirect_url: str = Field(alias="redirectUrl")
    role: str | None = None
    error: str | None = None
    site_name: str | None = Field(default=None, alias="siteName")
    token_expiry: str | None = Field(default=None, alias="tokenExpiry")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def outcome(self) -> DecisionOutcome:
        return DecisionOutcome.GRANTED if self.authorized else DecisionOutcome.DENIED

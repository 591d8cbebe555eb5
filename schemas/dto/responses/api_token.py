"""
Response DTOs for API token management.

ApiTokenResponse         one token entry in a list / after revocation
ApiTokenCreatedResponse  issuance response, includes ``token`` once
ApiTokensListResponse    list of a principal's tokens

``created_at``, ``expires_at`` and ``revoked_at`` are Unix timestamp integers.
None of these shapes carries ``token_digest``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, ConfigDict

from schemas.models.api_token import ApiTokenDoc
from shared.datetime_utils import to_timestamp

if TYPE_CHECKING:
    from services.token_issuer import IssuedToken


class ApiTokenResponse(BaseModel):
    """A single API token entry.

    The full token is never returned here, only the ``token_prefix`` for display.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    scopes: list[str]
    created_at: Optional[int] = None
    expires_at: Optional[int] = None
    revoked_at: Optional[int] = None
    revoked: bool
    token_prefix: str

    @classmethod
    def from_doc(cls, doc: ApiTokenDoc) -> "ApiTokenResponse":
        return cls(**_public_fields(doc))


class ApiTokenCreatedResponse(ApiTokenResponse):
    """Issuance response.

    Extends ApiTokenResponse by adding the full ``token``.  This is the ONLY
    time the token is returned; it is hashed before storage.
    """

    token: str

    @classmethod
    def from_issued(cls, issued: "IssuedToken") -> "ApiTokenCreatedResponse":
        return cls(**_public_fields(issued.record), token=issued.raw_secret)


class ApiTokensListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tokens: list[ApiTokenResponse]

    @classmethod
    def from_docs(cls, docs: list[ApiTokenDoc]) -> "ApiTokensListResponse":
        return cls(tokens=[ApiTokenResponse.from_doc(d) for d in docs])


def _public_fields(doc: ApiTokenDoc) -> dict:
    return {
        "id": str(doc.id),
        "name": doc.name,
        "scopes": doc.scopes.to_list(),
        "created_at": to_timestamp(doc.created_at),
        "expires_at": to_timestamp(doc.expires_at),
        "revoked_at": to_timestamp(doc.revoked_at),
        "revoked": doc.revoked,
        "token_prefix": doc.token_prefix,
    }

"""
API token document model.

Maps to the `api-tokens` MongoDB collection.

token_digest stores SHA-256(raw_token); the raw token is shown once at
creation and never stored. token_prefix (first 8 chars of the raw token) is
stored for display purposes.

Documents are frozen: revocation produces an updated copy via revoked_copy().
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, Field, field_validator

from schemas.models.base import MongoBaseModel
from schemas.scopes import ScopeSet
from shared.datetime_utils import ensure_utc, utc_now


class ApiTokenDoc(MongoBaseModel):
    """Document model for the `api-tokens` collection."""

    model_config = ConfigDict(frozen=True)

    principal_id: str
    name: str = ""
    token_prefix: str
    token_digest: str = Field(repr=False)
    scopes: ScopeSet
    created_at: datetime
    expires_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None

    @field_validator("created_at", "expires_at", "revoked_at", mode="after")
    @classmethod
    def _as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @property
    def revoked(self) -> bool:
        return self.revoked_at is not None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or utc_now())

    def is_active(self, now: Optional[datetime] = None) -> bool:
        return not self.revoked and not self.is_expired(now)

    def has_scope(self, scope: str) -> bool:
        return self.scopes.grants(scope)

    def revoked_copy(self, revoked_at: datetime) -> "ApiTokenDoc":
        return self.model_copy(update={"revoked_at": ensure_utc(revoked_at)})

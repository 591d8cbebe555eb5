"""
API token issuance, authentication and revocation.

TokenIssuer owns the secret-handling rules; persistence and the
principal-scoping boundary belong to the TokenStore it is given.

- issue(): generate a raw secret, store only its SHA-256 digest, hand the
  raw secret back exactly once inside IssuedToken
- authenticate(): hash the presented secret, look up an active token by
  digest, compare digests in constant time
- revoke(): set ``revoked_at``; a second revoke of the same token is
  rejected with AlreadyRevokedError

Every public method returns a Result; expected failures are never raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from bson import ObjectId

from config import TokenSettings
from errors import (
    AlreadyRevokedError,
    AppError,
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from infrastructure.token_store.protocol import TokenStore
from schemas.models.api_token import ApiTokenDoc
from schemas.scopes import ScopeSet
from shared.crypto import digests_match, hash_token
from shared.datetime_utils import utc_now
from shared.generators import display_prefix, generate_api_token
from shared.logging import get_logger
from shared.result import Err, Ok, Result

log = get_logger(__name__)

INVALID_CREDENTIAL = "invalid credential"


def _check_principal(principal_id: str) -> Optional[ValidationError]:
    # Principal ids reach Mongo filters verbatim; only plain strings are accepted
    if not isinstance(principal_id, str) or not principal_id:
        return ValidationError("principal_id is required", field="principal_id")
    return None


@dataclass(frozen=True)
class IssuedToken:
    """A freshly issued token and its raw secret.

    The raw secret exists only here; it is excluded from repr so it cannot
    leak through logging or tracebacks.
    """

    record: ApiTokenDoc
    raw_secret: str = field(repr=False)


class TokenIssuer:
    def __init__(
        self,
        store: TokenStore,
        settings: Optional[TokenSettings] = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._settings = settings or TokenSettings()
        self._clock = clock

    @property
    def store(self) -> TokenStore:
        return self._store

    # ── Issuance ─────────────────────────────────────────────────────────────

    def issue(
        self,
        principal_id: str,
        name: str,
        requested_scopes: Optional[Iterable[str]] = None,
        *,
        expires_in: Optional[timedelta] = None,
    ) -> Result[IssuedToken]:
        checked = self._check_issue_request(principal_id, name, expires_in)
        if checked is not None:
            return self._reject_issue(principal_id, checked)

        scopes = ScopeSet.parse(requested_scopes)
        if scopes.is_err():
            return self._reject_issue(principal_id, scopes.unwrap_err())

        limit = self._check_active_limit(principal_id)
        if limit is not None:
            return self._reject_issue(principal_id, limit)

        now = self._clock()
        raw_secret = generate_api_token(
            self._settings.api_token_prefix, self._settings.api_token_bytes
        )
        record = ApiTokenDoc(
            id=ObjectId(),
            principal_id=principal_id,
            name=name,
            token_prefix=display_prefix(raw_secret),
            token_digest=hash_token(raw_secret),
            scopes=scopes.unwrap(),
            created_at=now,
            expires_at=now + expires_in if expires_in is not None else None,
        )

        stored = self._store.persist(record)
        if stored.is_err():
            return stored

        token = stored.unwrap()
        log.info(
            "api_token_issued",
            principal_id=principal_id,
            token_id=str(token.id),
            token_prefix=token.token_prefix,
            scopes=token.scopes.to_list(),
            expires_at=token.expires_at.isoformat() if token.expires_at else None,
        )
        return Ok(IssuedToken(record=token, raw_secret=raw_secret))

    def _check_issue_request(
        self, principal_id: str, name: str, expires_in: Optional[timedelta]
    ) -> Optional[ValidationError]:
        principal_error = _check_principal(principal_id)
        if principal_error is not None:
            return principal_error
        if not isinstance(name, str):
            return ValidationError("name must be a string", field="name")
        max_length = self._settings.api_token_name_max_length
        if len(name) > max_length:
            return ValidationError(
                f"name must be at most {max_length} characters",
                field="name",
                details={"max_length": max_length},
            )
        if expires_in is not None and expires_in <= timedelta(0):
            return ValidationError("expires_in must be positive", field="expires_in")
        return None

    def _check_active_limit(self, principal_id: str) -> Optional[AppError]:
        max_active = self._settings.api_token_max_active
        if not max_active:
            return None
        existing = self._store.list_by_principal(principal_id)
        if existing.is_err():
            return existing.unwrap_err()
        now = self._clock()
        active = sum(1 for t in existing.unwrap() if t.is_active(now))
        if active >= max_active:
            return ValidationError(
                f"maximum {max_active} active tokens allowed",
                details={"reason": "max_active_tokens", "max_active": max_active},
            )
        return None

    def _reject_issue(self, principal_id: str, error: AppError) -> Err:
        log.warning(
            "api_token_issue_rejected",
            principal_id=principal_id,
            reason=error.error_code,
            field=error.field,
        )
        return Err(error)

    # ── Authentication ───────────────────────────────────────────────────────

    def authenticate(
        self, raw_secret: str, *, required_scope: Optional[str] = None
    ) -> Result[ApiTokenDoc]:
        """Resolve a presented raw secret to its active token.

        Malformed, unknown, revoked and expired secrets all fail with the
        same AuthenticationError; the reason only reaches the log.
        """
        prefix = self._settings.api_token_prefix
        if not isinstance(raw_secret, str) or not raw_secret.startswith(prefix):
            return self._reject_credential("malformed")

        try:
            digest = hash_token(raw_secret)
        except UnicodeEncodeError:
            return self._reject_credential("malformed")

        now = self._clock()
        found = self._store.find_active_by_digest(digest, now)
        if found.is_err():
            if isinstance(found.unwrap_err(), NotFoundError):
                return self._reject_credential("unknown")
            return found

        record = found.unwrap()
        if not digests_match(record.token_digest, digest):
            return self._reject_credential("unknown")
        if record.revoked:
            return self._reject_credential("revoked", record)
        if record.is_expired(now):
            return self._reject_credential("expired", record)

        if required_scope is not None and not record.has_scope(required_scope):
            log.warning(
                "api_token_scope_denied",
                token_id=str(record.id),
                token_prefix=record.token_prefix,
                required_scope=required_scope,
            )
            return Err(
                ForbiddenError(
                    "insufficient scope",
                    field="scopes",
                    details={"required_scope": required_scope},
                )
            )
        return Ok(record)

    def _reject_credential(self, reason: str, record: Optional[ApiTokenDoc] = None) -> Err:
        log.warning(
            "api_token_rejected",
            reason=reason,
            token_id=str(record.id) if record is not None else None,
        )
        return Err(AuthenticationError(INVALID_CREDENTIAL))

    # ── Revocation ───────────────────────────────────────────────────────────

    def revoke(self, record: ApiTokenDoc) -> Result[ApiTokenDoc]:
        """Revoke *record*, whose ownership the caller has already checked."""
        if record.revoked:
            return self._reject_revoke(
                record, AlreadyRevokedError("token already revoked", field="token_id")
            )

        updated = self._store.persist(record.revoked_copy(self._clock()))
        if updated.is_err():
            return self._reject_revoke(record, updated.unwrap_err())

        token = updated.unwrap()
        log.info(
            "api_token_revoked",
            principal_id=token.principal_id,
            token_id=str(token.id),
            token_prefix=token.token_prefix,
        )
        return Ok(token)

    def revoke_by_id(self, principal_id: str, token_id: str) -> Result[ApiTokenDoc]:
        principal_error = _check_principal(principal_id)
        if principal_error is not None:
            return Err(principal_error)
        found = self._store.find_by_principal_and_id(principal_id, token_id)
        if found.is_err():
            return found
        return self.revoke(found.unwrap())

    def _reject_revoke(self, record: ApiTokenDoc, error: AppError) -> Err:
        log.warning(
            "api_token_revoke_rejected",
            principal_id=record.principal_id,
            token_id=str(record.id),
            reason=error.error_code,
        )
        return Err(error)

    # ── Lookups ──────────────────────────────────────────────────────────────

    def list_tokens(self, principal_id: str) -> Result[list[ApiTokenDoc]]:
        principal_error = _check_principal(principal_id)
        if principal_error is not None:
            return Err(principal_error)
        return self._store.list_by_principal(principal_id)

    def find_token(self, principal_id: str, token_id: str) -> Result[ApiTokenDoc]:
        principal_error = _check_principal(principal_id)
        if principal_error is not None:
            return Err(principal_error)
        return self._store.find_by_principal_and_id(principal_id, token_id)

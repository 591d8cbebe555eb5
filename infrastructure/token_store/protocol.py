"""TokenStore protocol. The issuer depends on this, not the concrete backend.

Every lookup that takes a principal is scoped by it: a token belonging to
another principal is reported exactly like a missing one (NotFoundError).

persist() inserts a record that is not revoked, and for a revoked record
applies ``revoked_at`` as a conditional update that only matches while the
stored token is still unrevoked. A lost race yields AlreadyRevokedError.
"""

from datetime import datetime
from typing import Optional, Protocol

from schemas.models.api_token import ApiTokenDoc
from shared.result import Result


class TokenStore(Protocol):
    def persist(self, record: ApiTokenDoc) -> Result[ApiTokenDoc]: ...

    def list_by_principal(self, principal_id: str) -> Result[list[ApiTokenDoc]]: ...

    def find_by_principal_and_id(
        self, principal_id: str, token_id: str
    ) -> Result[ApiTokenDoc]: ...

    def find_active_by_digest(
        self, digest: str, now: Optional[datetime] = None
    ) -> Result[ApiTokenDoc]: ...

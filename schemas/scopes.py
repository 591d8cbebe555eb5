"""
Capability scopes for API tokens.

ScopeSet is the only way a set of scopes enters the system: constructing one
checks every tag against the fixed TOKEN_SCOPES vocabulary (plus the "*"
wildcard) and refuses empty
sets, so any ScopeSet in hand is already valid.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

from errors import ValidationError
from shared.result import Err, Ok, Result

TOKEN_SCOPES = frozenset(
    {
        "read:projects",
        "write:projects",
        "read:environment",
        "write:environment",
        "read:milestones",
        "read:agreements",
        "read:context",
        "read:plugins",
        "read:memories",
        "write:memories",
        "read:webhooks",
        "write:webhooks",
        "read:metrics",
        "write:metrics",
        "read:tasks",
        "write:tasks",
        "read:agents",
        "write:agents",
    }
)

# Grants every scope in the vocabulary
WILDCARD_SCOPE = "*"

ACCEPTED_SCOPES = TOKEN_SCOPES | {WILDCARD_SCOPE}

# Read-only access, used when a caller requests no scopes
DEFAULT_SCOPES = frozenset(
    {
        "read:projects",
        "read:environment",
        "read:milestones",
        "read:context",
    }
)


class ScopeSet(frozenset):
    """Non-empty, immutable set of known scope tags.

    ``"*"`` is accepted alongside the vocabulary and grants every scope.

    Raises ``ValueError`` on construction with an empty or unknown tag;
    use :meth:`parse` at request boundaries to get a Result instead.
    """

    def __new__(cls, scopes: Iterable[str] = ()) -> "ScopeSet":
        if isinstance(scopes, str):
            raise ValueError("scopes must be a collection of strings")
        items = frozenset(scopes)
        if not items:
            raise ValueError("scopes must not be empty")
        unknown = {s for s in items if not isinstance(s, str) or s not in ACCEPTED_SCOPES}
        if unknown:
            raise ValueError(f"invalid scope(s): {', '.join(sorted(map(str, unknown)))}")
        return super().__new__(cls, items)

    def __repr__(self) -> str:
        return f"ScopeSet({sorted(self)!r})"

    @classmethod
    def default(cls) -> "ScopeSet":
        return cls(DEFAULT_SCOPES)

    @classmethod
    def parse(cls, requested: Optional[Iterable[str]]) -> Result["ScopeSet"]:
        """Build a ScopeSet from caller input.

        ``None`` or an empty collection yields the default scopes. Unknown
        tags yield ``Err(ValidationError)`` naming the offending entries.
        """
        if requested is None:
            return Ok(cls.default())
        if isinstance(requested, str):
            return Err(
                ValidationError(
                    "scopes must be an array of strings",
                    field="scopes",
                    details={"reason": "invalid_scope"},
                )
            )
        requested = list(requested)
        if not requested:
            return Ok(cls.default())

        invalid = sorted(
            {str(s) for s in requested if not isinstance(s, str) or s not in ACCEPTED_SCOPES}
        )
        if invalid:
            return Err(
                ValidationError(
                    f"invalid scope(s): {', '.join(invalid)}",
                    field="scopes",
                    details={"reason": "invalid_scope", "invalid_scopes": invalid},
                )
            )
        return Ok(cls(requested))

    def grants(self, scope: str) -> bool:
        return scope in self or WILDCARD_SCOPE in self

    def to_list(self) -> list[str]:
        return sorted(self)

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                sorted, return_schema=core_schema.list_schema(core_schema.str_schema())
            ),
        )

    @classmethod
    def _validate(cls, v: Any) -> "ScopeSet":
        if isinstance(v, ScopeSet):
            return v
        if isinstance(v, (list, tuple, set, frozenset)):
            return cls(v)
        raise ValueError(f"Invalid scopes: {v!r}")

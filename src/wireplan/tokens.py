from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from wireplan.types import Cardinality

TOKEN_SUFFIX = "Token"


def token_id_for(display_name: str) -> str:
    """Derive the stable token identifier for a type or factory name."""
    return f"{display_name}{TOKEN_SUFFIX}"


@dataclass(frozen=True, slots=True)
class Token:
    """A stable identifier for a declared type used as a dependency-injection key."""

    id: str
    """Token identifier, ``"<display_name>Token"``."""
    display_name: str
    """Name of the type (or factory, for per-factory tokens) the token stands for."""
    cardinality: Cardinality = Cardinality.SINGLE
    declaring_path: str | None = None
    """File declaring the type, ``None`` when the snapshot does not contain it."""
    namespace: str | None = None
    """Enclosing namespace of the type, ``None`` for top-level declarations."""

    @property
    def is_multi(self) -> bool:
        """Return true when several bindings may provide this token."""
        return self.cardinality is Cardinality.MULTI

    @property
    def qualified_name(self) -> str:
        """Return the expression naming the type in generated code, e.g. ``Mail.Sender``."""
        if self.namespace is None:
            return self.display_name
        return f"{self.namespace}.{self.display_name}"


class TokenRegistry:
    """Holds every minted token keyed by display name, in first-discovery order."""

    def __init__(self) -> None:
        self._tokens_by_name: dict[str, Token] = {}
        self._tokens_by_id: dict[str, Token] = {}

    def register_or_get(
        self,
        display_name: str,
        cardinality: Cardinality = Cardinality.SINGLE,
        *,
        declaring_path: str | None = None,
        namespace: str | None = None,
    ) -> Token:
        """Return the token for ``display_name``, minting it on first request.

        Later calls return an existing token unchanged, whatever they pass.
        """
        existing = self._tokens_by_name.get(display_name)
        if existing is not None:
            return existing

        token = Token(
            id=token_id_for(display_name),
            display_name=display_name,
            cardinality=cardinality,
            declaring_path=declaring_path,
            namespace=namespace,
        )
        self._tokens_by_name[display_name] = token
        self._tokens_by_id[token.id] = token
        return token

    def find(self, display_name: str) -> Token | None:
        """Get a token by the name it was minted for, if it exists."""
        return self._tokens_by_name.get(display_name)

    def get(self, display_name: str) -> Token:
        """Get a token by the name it was minted for."""
        return self._tokens_by_name[display_name]

    def get_by_id(self, token_id: str) -> Token:
        """Get a token by its identifier."""
        return self._tokens_by_id[token_id]

    def is_multi(self, display_name: str) -> bool:
        """Return true when ``display_name`` has a multi-cardinality token."""
        token = self._tokens_by_name.get(display_name)
        return token is not None and token.is_multi

    def values(self) -> list[Token]:
        """Get all tokens in first-discovery order."""
        return list(self._tokens_by_name.values())

    def __contains__(self, display_name: object) -> bool:
        return display_name in self._tokens_by_name

    def __iter__(self) -> Iterator[Token]:
        return iter(self.values())

    def __len__(self) -> int:
        return len(self._tokens_by_name)

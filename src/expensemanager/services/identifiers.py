"""Mapping between store-issued opaque identifiers and sequential integers."""

from __future__ import annotations

from typing import Generic, Hashable, Optional, TypeVar

from ..errors import NotFoundError

ExternalId = TypeVar("ExternalId", bound=Hashable)


class IdentifierMap(Generic[ExternalId]):
    """First-seen-wins bidirectional index.

    The first time an external id is observed it is bound to the next unused
    integer. Bindings hold for the life of the map; a full reload builds a new map,
    so internal ids are only stable within one session. Internal
    ids are never reissued, even after ``forget``.
    """

    def __init__(self, start: int = 1):
        self._next = start
        self._to_internal: dict[ExternalId, int] = {}
        self._to_external: dict[int, ExternalId] = {}

    def to_internal(self, external_id: ExternalId) -> int:
        internal = self._to_internal.get(external_id)
        if internal is None:
            internal = self._next
            self._next += 1
            self._to_internal[external_id] = internal
            self._to_external[internal] = external_id
        return internal

    def to_external(self, internal_id: int) -> Optional[ExternalId]:
        return self._to_external.get(internal_id)

    def require_external(self, internal_id: int, *, kind: str = "Record") -> ExternalId:
        """Reverse lookup that treats a missing binding as fatal."""

        external = self._to_external.get(internal_id)
        if external is None:
            raise NotFoundError(kind, internal_id)
        return external

    def forget(self, internal_id: int) -> None:
        external = self._to_external.pop(internal_id, None)
        if external is not None:
            self._to_internal.pop(external, None)

    def __contains__(self, external_id: object) -> bool:
        return external_id in self._to_internal

    def __len__(self) -> int:
        return len(self._to_internal)

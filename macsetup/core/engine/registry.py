"""
Resource registry — the ordered declaration sequence for one run.

Registration order is execution order. The registry never sorts,
deduplicates, or reorders; a repeated id is a programming error.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from macsetup.core.errors import DuplicateIdError
from macsetup.core.models.declaration import ResourceDeclaration

logger = logging.getLogger(__name__)


class ResourceRegistry:
    """Append-only list of declarations with unique ids."""

    def __init__(self, declarations: Iterable[ResourceDeclaration] = ()):
        self._declarations: list[ResourceDeclaration] = []
        self._index: dict[str, ResourceDeclaration] = {}
        self.extend(declarations)

    def register(self, declaration: ResourceDeclaration) -> ResourceDeclaration:
        """Append a declaration.

        Raises:
            DuplicateIdError: If the id is already registered.
        """
        if declaration.id in self._index:
            raise DuplicateIdError(declaration.id)
        self._declarations.append(declaration)
        self._index[declaration.id] = declaration
        logger.debug("Registered %s (%s)", declaration.id, declaration.kind.value)
        return declaration

    def extend(self, declarations: Iterable[ResourceDeclaration]) -> None:
        for declaration in declarations:
            self.register(declaration)

    def declarations(self) -> tuple[ResourceDeclaration, ...]:
        """Read-only view in registration order."""
        return tuple(self._declarations)

    def get(self, resource_id: str) -> ResourceDeclaration | None:
        return self._index.get(resource_id)

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self._index

    def __iter__(self) -> Iterator[ResourceDeclaration]:
        return iter(tuple(self._declarations))

    def __len__(self) -> int:
        return len(self._declarations)

    def __repr__(self) -> str:
        return f"<ResourceRegistry {len(self)} declarations>"

"""Application layer - Identifier aliasing."""

import logging
from typing import Dict, Hashable, List

from bindery.domain import AliasCycleError, display_name

logger = logging.getLogger(__name__)


class AliasTable:
    """Maps alias names to identifiers and keeps the reverse lookup current.

    Attributes:
        _aliases: Alias name to the identifier it points at.
        _targets: Identifier to the alias names registered for it.
    """

    def __init__(self) -> None:
        self._aliases: Dict[Hashable, Hashable] = {}
        self._targets: Dict[Hashable, List[Hashable]] = {}

    def alias(self, identifier: Hashable, alias: Hashable) -> None:
        """Register ``alias`` as another name for ``identifier``.

        Raises:
            AliasCycleError: If the alias would resolve back to itself.
        """
        if alias == identifier or self.canonical(identifier) == alias:
            raise AliasCycleError(identifier, alias)

        self.drop(alias)
        self._aliases[alias] = identifier
        self._targets.setdefault(identifier, []).append(alias)
        logger.debug(f"Aliased {display_name(alias)} -> {display_name(identifier)}")

    def canonical(self, name: Hashable) -> Hashable:
        """Follow the alias chain of ``name`` to its fixed point."""
        while name in self._aliases:
            name = self._aliases[name]
        return name

    def is_alias(self, name: Hashable) -> bool:
        return name in self._aliases

    def aliases_of(self, identifier: Hashable) -> List[Hashable]:
        return list(self._targets.get(identifier, ()))

    def drop(self, name: Hashable) -> None:
        """Stop treating ``name`` as an alias."""
        target = self._aliases.pop(name, None)
        if target is None:
            return
        names = self._targets.get(target, [])
        if name in names:
            names.remove(name)
        if not names:
            self._targets.pop(target, None)

    def prune_target(self, identifier: Hashable) -> None:
        """Remove every alias pointing directly at ``identifier``."""
        for name in self._targets.pop(identifier, []):
            self._aliases.pop(name, None)

    def as_dict(self) -> Dict[Hashable, Hashable]:
        return dict(self._aliases)

    def clear(self) -> None:
        self._aliases.clear()
        self._targets.clear()

"""
Handler registry and startup discovery.

The registry maps ``(kind, key)`` to a validated ``HandlerEntry``. It is
filled once during startup by ``discover()`` (or explicit ``admit()``
calls) and only read afterwards, apart from dropping a once-only event
handler after it fires.

Discovery scans one package per handler kind. Every module in the package
must expose ``setup(services)`` returning a handler or an iterable of
handlers. A bad module is logged and skipped. A missing package skips that
group. Neither stops the other groups from loading.
"""

from __future__ import annotations

import importlib
import pkgutil
from typing import Dict, Iterable, List, Mapping, Optional

from modwarden.datatypes.handler_datatypes import (
    Handler,
    HandlerEntry,
    HandlerKind,
    HandlerServices,
    HandlerValidationError,
)
from modwarden.util.logger import get_logger

logger = get_logger("handler_registry")

DEFAULT_HANDLER_PACKAGES: Dict[HandlerKind, str] = {
    HandlerKind.COMMAND: "modwarden.handlers.commands",
    HandlerKind.EVENT: "modwarden.handlers.events",
    HandlerKind.BUTTON: "modwarden.handlers.interactions.buttons",
    HandlerKind.MODAL: "modwarden.handlers.interactions.modals",
    HandlerKind.SELECT_MENU: "modwarden.handlers.interactions.select_menus",
}


def resolve_handler_packages(overrides: Mapping[str, str]) -> Dict[HandlerKind, str]:
    """Merge ``{"command": "pkg", ...}`` overrides from config into the default package map."""
    packages = dict(DEFAULT_HANDLER_PACKAGES)
    for kind_name, package in overrides.items():
        try:
            packages[HandlerKind(kind_name)] = package
        except ValueError:
            logger.warning("[REGISTRY] Ignoring handler package override for unknown kind '%s'", kind_name)
    return packages


class HandlerRegistry:
    """Lookup tables from handler key to handler entry, one table per kind."""

    def __init__(self) -> None:
        self._tables: Dict[HandlerKind, Dict[str, HandlerEntry]] = {kind: {} for kind in HandlerKind}

    def __len__(self) -> int:
        return sum(len(table) for table in self._tables.values())

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, entry: HandlerEntry) -> None:
        """Insert ``entry``; an existing entry with the same kind and key is replaced."""
        table = self._tables[entry.kind]
        previous = table.get(entry.key)
        if previous is not None:
            logger.warning(
                "[REGISTRY] %s handler '%s' from %s replaces the one from %s",
                entry.kind, entry.key, entry.source or "<unknown>", previous.source or "<unknown>",
            )
        table[entry.key] = entry

    def admit(self, candidate: Handler, source: str = "") -> HandlerEntry:
        """Validate a handler object and register it.

        Raises:
            HandlerValidationError: If the candidate does not satisfy the handler contract.
        """
        entry = HandlerEntry.from_handler(candidate, source)
        self.register(entry)
        return entry

    def discard(self, key: str, kind: HandlerKind) -> Optional[HandlerEntry]:
        """Remove and return an entry; used for once-only event handlers."""
        return self._tables[kind].pop(key, None)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, key: str, kind: HandlerKind) -> Optional[HandlerEntry]:
        return self._tables[kind].get(key)

    def entries(self, kind: HandlerKind) -> List[HandlerEntry]:
        return list(self._tables[kind].values())

    def count(self, kind: HandlerKind) -> int:
        return len(self._tables[kind])

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover(
        self,
        locations: Mapping[HandlerKind, str],
        services: HandlerServices,
    ) -> Dict[HandlerKind, int]:
        """
        Load every handler module from the package configured for each kind.

        Args:
            locations: Dotted package name per handler kind
            services: Shared collaborators passed to each module's ``setup``

        Returns:
            Number of handlers admitted per kind (0 for skipped groups)
        """
        loaded: Dict[HandlerKind, int] = {}
        for kind, package_name in locations.items():
            loaded[kind] = self._discover_group(kind, package_name, services)
            logger.info("[REGISTRY] Loaded %d %s handler(s) from %s", loaded[kind], kind, package_name)

        logger.info("[REGISTRY] Discovery finished: %d handler(s) registered", len(self))
        return loaded

    def _discover_group(self, kind: HandlerKind, package_name: str, services: HandlerServices) -> int:
        try:
            package = importlib.import_module(package_name)
        except ModuleNotFoundError:
            logger.info("[REGISTRY] No %s handler package '%s'; skipping", kind, package_name)
            return 0
        except Exception:
            logger.exception("[REGISTRY] Failed to import %s handler package '%s'", kind, package_name)
            return 0

        search_path = getattr(package, "__path__", None)
        if search_path is None:
            logger.warning("[REGISTRY] '%s' is a module, not a package; skipping %s handlers", package_name, kind)
            return 0

        admitted = 0
        for module_info in sorted(pkgutil.iter_modules(search_path), key=lambda info: info.name):
            if module_info.ispkg or module_info.name.startswith("_"):
                continue
            module_name = f"{package_name}.{module_info.name}"
            for candidate in self._load_candidates(module_name, services):
                try:
                    entry = HandlerEntry.from_handler(candidate, module_name)
                except HandlerValidationError as exc:
                    logger.warning("[REGISTRY] Skipping malformed handler: %s", exc)
                    continue
                if entry.kind is not kind:
                    logger.warning(
                        "[REGISTRY] %s handler '%s' from %s is in the %s package; skipping",
                        entry.kind, entry.key, module_name, kind,
                    )
                    continue
                self.register(entry)
                admitted += 1
                logger.debug("[REGISTRY] Loaded %s '%s' from %s", kind, entry.key, module_name)
        return admitted

    @staticmethod
    def _load_candidates(module_name: str, services: HandlerServices) -> List[Handler]:
        try:
            module = importlib.import_module(module_name)
        except Exception:
            logger.exception("[REGISTRY] Failed to import handler module %s", module_name)
            return []

        setup = getattr(module, "setup", None)
        if not callable(setup):
            logger.warning("[REGISTRY] Handler module %s has no setup(services); skipping", module_name)
            return []

        try:
            produced = setup(services)
        except Exception:
            logger.exception("[REGISTRY] setup() of %s raised; skipping", module_name)
            return []

        if produced is None:
            logger.warning("[REGISTRY] setup() of %s returned nothing; skipping", module_name)
            return []
        if hasattr(produced, "invoke") or isinstance(produced, (str, bytes)) or not isinstance(produced, Iterable):
            return [produced]
        return list(produced)

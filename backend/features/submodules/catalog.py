"""
backend/features/submodules/catalog.py

Immutable submodule catalog.

Handles:
- Construction checks (unique codes, code prefix == parent module, known references)
- Pure lookups by code / module / category
- Pricing projection of sellable addons

Built once at startup and passed by reference; there is no module-level instance.
"""

from typing import Dict, Iterable, Optional, Tuple, Union

from backend.models.submodule import (
    ModuleCode,
    PricingEntry,
    SubmoduleCategory,
    SubmoduleDefinition,
)


class CatalogError(ValueError):
    """Catalog (or policy) authoring error, raised at boot."""


def _module_value(module_code: Union[ModuleCode, str]) -> str:
    return module_code.value if isinstance(module_code, ModuleCode) else str(module_code)


class SubmoduleCatalog:
    def __init__(self, definitions: Iterable[SubmoduleDefinition]):
        entries = tuple(definitions)
        index: Dict[str, SubmoduleDefinition] = {}

        for entry in entries:
            if entry.code in index:
                raise CatalogError(f"Duplicate submodule code: {entry.code}")
            prefix, _, rest = entry.code.partition(".")
            if prefix != entry.parent_module.value or not rest:
                raise CatalogError(
                    f"Submodule code {entry.code} must be prefixed with its parent module {entry.parent_module.value}"
                )
            index[entry.code] = entry

        for entry in entries:
            for ref in entry.required_submodules + entry.conflicts_with:
                if ref == entry.code:
                    raise CatalogError(f"Submodule {entry.code} references itself")
                if ref not in index:
                    raise CatalogError(f"Submodule {entry.code} references unknown submodule {ref}")

        self._entries: Tuple[SubmoduleDefinition, ...] = entries
        self._index = index

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, code: object) -> bool:
        return code in self._index

    def get_all(self) -> Tuple[SubmoduleDefinition, ...]:
        return self._entries

    def get_by_code(self, code: str) -> Optional[SubmoduleDefinition]:
        return self._index.get(code)

    def get_by_module(self, module_code: Union[ModuleCode, str]) -> Tuple[SubmoduleDefinition, ...]:
        wanted = _module_value(module_code)
        return tuple(e for e in self._entries if e.parent_module.value == wanted)

    def get_by_category(self, category: SubmoduleCategory) -> Tuple[SubmoduleDefinition, ...]:
        return tuple(e for e in self._entries if e.category == category)

    def get_addons(self) -> Tuple[SubmoduleDefinition, ...]:
        """Addons currently for sale: active, ADDON category, priced."""
        return tuple(
            e
            for e in self._entries
            if e.category == SubmoduleCategory.ADDON and e.is_active and e.price is not None
        )

    def get_pricing_catalog(self) -> Tuple[PricingEntry, ...]:
        return tuple(PricingEntry.from_definition(e) for e in self.get_addons())

    def get_defaults(self) -> Tuple[SubmoduleDefinition, ...]:
        return tuple(e for e in self._entries if e.default_enabled and e.is_active)

    def find_dependents(self, code: str, enabled_codes: Iterable[str]) -> Tuple[str, ...]:
        """Enabled codes (other than `code`) whose required set contains `code`."""
        enabled = set(enabled_codes)
        return tuple(
            e.code
            for e in self._entries
            if e.code != code and e.code in enabled and code in e.required_submodules
        )

    def module_codes(self) -> Tuple[ModuleCode, ...]:
        seen = []
        for e in self._entries:
            if e.parent_module not in seen:
                seen.append(e.parent_module)
        return tuple(seen)

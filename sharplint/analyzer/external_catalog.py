"""Catalog of external (referenced-assembly) APIs the binder may bind to.

A single compilation unit cannot see the framework assemblies it references,
so well-known extension methods and type hierarchies are described as JSON:

    {
      "extension_methods": [
        {"container": "Ns.SomeExtensions", "receiver": "Ns.IThing",
         "returns": "Ns.IThing", "names": ["AddScoped", ...]}
      ],
      "types": [
        {"name": "Ns.Derived", "bases": ["Ns.IBase"]}
      ]
    }
"""
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .symbols import MethodSymbol, ParameterSymbol, TypeSymbol
from ..utils.logger import warn

DEFAULT_CATALOG_PATH = Path(__file__).parent.parent / "policies" / "external_apis.json"


def external_type(full_name: str) -> TypeSymbol:
    """Build an external TypeSymbol from a dotted metadata name."""
    namespace, _, name = full_name.rpartition('.')
    return TypeSymbol(name=name, namespace=namespace, is_source=False, kind="external")


@dataclass(frozen=True)
class ExternalExtensionMethod:
    """One external extension method overload family."""
    name: str
    container: TypeSymbol
    receiver: TypeSymbol
    returns: Optional[TypeSymbol]

    def to_symbol(self, type_arguments: Tuple[Optional[TypeSymbol], ...] = ()) -> MethodSymbol:
        receiver_parameter = ParameterSymbol(
            name="this",
            type=self.receiver,
            type_display=self.receiver.full_name,
            is_this=True,
        )
        return MethodSymbol(
            name=self.name,
            containing_type=self.container,
            parameters=(receiver_parameter,),
            type_arguments=type_arguments,
            return_type=self.returns,
            is_extension=True,
            is_static=True,
        )


class ExternalApiCatalog:
    """Loads and indexes the external API description."""

    def __init__(self, catalog_path: Optional[Path] = None):
        """Initialize the catalog.

        Args:
            catalog_path: JSON file to load (defaults to the bundled catalog)
        """
        self.catalog_path = Path(catalog_path) if catalog_path else DEFAULT_CATALOG_PATH
        self._methods: Dict[str, List[ExternalExtensionMethod]] = {}
        self._bases: Dict[TypeSymbol, List[TypeSymbol]] = {}
        self._load()

    @classmethod
    def from_dict(cls, data: dict) -> 'ExternalApiCatalog':
        """Build a catalog from already-parsed data (no file access)."""
        catalog = cls.__new__(cls)
        catalog.catalog_path = None
        catalog._methods = {}
        catalog._bases = {}
        catalog._load_data(data)
        return catalog

    def _load(self):
        if not self.catalog_path.exists():
            warn(f"[ExternalApiCatalog] Catalog not found: {self.catalog_path}")
            return
        try:
            with open(self.catalog_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            warn(f"[ExternalApiCatalog] Error decoding JSON in {self.catalog_path.name}: {e}")
            return

        if not isinstance(data, dict):
            warn(f"[ExternalApiCatalog] {self.catalog_path.name} is malformed (expected object). Skipping.")
            return
        self._load_data(data)

    @staticmethod
    def _names(value) -> bool:
        return isinstance(value, list) and all(isinstance(item, str) and item for item in value)

    @classmethod
    def _valid_method(cls, entry) -> bool:
        if not isinstance(entry, dict):
            return False
        if not cls._names([entry.get('container'), entry.get('receiver')]):
            return False
        if entry.get('returns') is not None and not isinstance(entry['returns'], str):
            return False
        return cls._names(entry.get('names', []))

    @classmethod
    def _valid_type(cls, entry) -> bool:
        return isinstance(entry, dict) and cls._names([entry.get('name')]) \
            and cls._names(entry.get('bases', []))

    @staticmethod
    def _section(data: dict, key: str) -> list:
        section = data.get(key, [])
        if not isinstance(section, list):
            warn(f"[ExternalApiCatalog] '{key}' is malformed (expected list). Skipping.")
            return []
        return section

    def _load_data(self, data: dict):
        for entry in self._section(data, 'extension_methods'):
            if not self._valid_method(entry):
                warn(f"[ExternalApiCatalog] Skipping malformed extension method entry: {entry!r}")
                continue
            container = external_type(entry['container'])
            receiver = external_type(entry['receiver'])
            returns = external_type(entry['returns']) if entry.get('returns') else None
            for name in entry.get('names', []):
                self._methods.setdefault(name, []).append(
                    ExternalExtensionMethod(name, container, receiver, returns)
                )

        for entry in self._section(data, 'types'):
            if not self._valid_type(entry):
                warn(f"[ExternalApiCatalog] Skipping malformed type entry: {entry!r}")
                continue
            symbol = external_type(entry['name'])
            self._bases[symbol] = [external_type(base) for base in entry.get('bases', [])]

    def extension_methods(self, name: str, receiver: Optional[TypeSymbol]) -> List[ExternalExtensionMethod]:
        """Extension methods named ``name`` applicable to ``receiver``.

        An unknown receiver (None) matches by name alone. A source-declared
        receiver never matches: external extensions target external types.
        """
        candidates = self._methods.get(name, [])
        if receiver is None:
            return list(candidates)
        if receiver.is_source:
            return []
        return [
            method for method in candidates
            if method.receiver.name == receiver.name
            and (not receiver.namespace or method.receiver.namespace == receiver.namespace)
        ]

    def base_types(self, symbol: TypeSymbol) -> List[TypeSymbol]:
        """Known base types/interfaces of an external type."""
        if symbol in self._bases:
            return list(self._bases[symbol])
        if not symbol.namespace:
            # written without namespace: match on simple name
            for known, bases in self._bases.items():
                if known.name == symbol.name:
                    return list(bases)
        return []

    def known_types(self) -> List[TypeSymbol]:
        return list(self._bases)

    def __len__(self) -> int:
        return sum(len(methods) for methods in self._methods.values())

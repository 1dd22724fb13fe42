"""Resolved symbols produced by the binder."""
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .syntax import SyntaxNode


@dataclass(frozen=True)
class TypeSymbol:
    """A named type.

    Equality is semantic identity (namespace, containing types, name, arity,
    origin), so the parts of a partial class resolve to one symbol.
    """
    name: str
    namespace: str = ""
    container: str = ""  # dotted names of enclosing types
    arity: int = 0
    is_source: bool = True
    kind: str = field(default="class", compare=False)

    @property
    def full_name(self) -> str:
        parts = [p for p in (self.namespace, self.container, self.name) if p]
        return ".".join(parts)

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class ParameterSymbol:
    """A method parameter. ``type`` is None when the declared type is unknown."""
    name: str
    type: Optional[TypeSymbol]
    type_display: str = ""
    is_this: bool = False


@dataclass(frozen=True)
class MethodSymbol:
    """A bound method. ``declaration`` is None for catalog (external) methods."""
    name: str
    containing_type: Optional[TypeSymbol]
    parameters: Tuple[ParameterSymbol, ...] = ()
    type_arguments: Tuple[Optional[TypeSymbol], ...] = ()
    return_type: Optional[TypeSymbol] = None
    is_extension: bool = False
    is_static: bool = False
    declaration: Optional[SyntaxNode] = field(default=None, compare=False, repr=False)

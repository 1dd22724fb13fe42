"""Immutable syntax model consumed by the analyzer rules.

The tree-sitter concrete syntax tree is lowered (see ``lowering.py``) into a
small closed set of node kinds. Rules only ever see this model, so they can be
exercised with hand-built trees as well as with parsed C# sources.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterator, List, Optional, Tuple


class NodeKind(Enum):
    """Closed set of node kinds produced by the lowering pass."""
    COMPILATION_UNIT = "compilation_unit"
    USING = "using"
    NAMESPACE = "namespace"
    TYPE_DECLARATION = "type_declaration"
    METHOD = "method"
    PARAMETER = "parameter"
    PROPERTY = "property"
    FIELD = "field"
    LOCAL_DECLARATION = "local_declaration"
    DECLARATOR = "declarator"
    ATTRIBUTE = "attribute"
    TYPE_REFERENCE = "type_reference"
    INVOCATION = "invocation"
    MEMBER_ACCESS = "member_access"
    IDENTIFIER = "identifier"
    THIS = "this"
    OBJECT_CREATION = "object_creation"
    TYPEOF = "typeof"
    CAST = "cast"
    OTHER = "other"


@dataclass(frozen=True)
class Location:
    """Source span. Lines and columns are 1-based."""
    path: str
    line: int
    column: int
    end_line: int = 0
    end_column: int = 0
    start_byte: int = 0
    end_byte: int = 0

    def sort_key(self) -> Tuple[str, int, int]:
        return (self.path, self.line, self.column)

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.column}"


@dataclass(frozen=True)
class TypeName:
    """A type expression as written in source.

    ``Foo``, ``Ns.Foo`` and ``Foo<Bar>`` become ``TypeName('Foo')``,
    ``TypeName('Foo', qualifier='Ns')`` and
    ``TypeName('Foo', arguments=(TypeName('Bar'),))``.
    """
    name: str
    qualifier: str = ""
    arguments: Tuple["TypeName", ...] = ()
    arity: int = -1  # -1: same as len(arguments); set for unbound generics like Foo<,>
    predefined: bool = False

    @property
    def type_arity(self) -> int:
        return len(self.arguments) if self.arity < 0 else self.arity

    @property
    def full_text(self) -> str:
        text = f"{self.qualifier}.{self.name}" if self.qualifier else self.name
        if self.arguments:
            text += "<" + ", ".join(arg.full_text for arg in self.arguments) + ">"
        return text


@dataclass(eq=False)
class SyntaxNode:
    """One node of the lowered tree.

    Identity-hashed: two nodes are equal only if they are the same object.
    Payload fields are optional and their meaning depends on ``kind``:

    - ``name``: declared or referenced simple name (dotted for namespaces/usings)
    - ``type_name``: declared type (parameters, fields, ...) or referenced type
    - ``keyword``: declaration keyword (``class``, ``record``, ``constructor``)
      or the original CST node type for ``OTHER`` nodes
    - ``role``: position of a ``TYPE_REFERENCE`` (``base``, ``return``,
      ``type_argument``, ``type``, ``implicit`` for ``var``) or of an
      expression (``callee``, ``receiver``, ``argument``,
      ``initializer_member``)
    - ``declared_names``: variable names introduced by fields/locals, or the
      alias introduced by ``using Alias = ...;``
    """
    kind: NodeKind
    location: Location
    children: List["SyntaxNode"] = field(default_factory=list)
    name: Optional[str] = None
    type_name: Optional[TypeName] = None
    keyword: Optional[str] = None
    modifiers: FrozenSet[str] = frozenset()
    role: Optional[str] = None
    arity: int = 0
    declared_names: Tuple[str, ...] = ()
    name_location: Optional[Location] = None
    parent: Optional["SyntaxNode"] = field(default=None, repr=False)
    node_id: int = field(default=-1, repr=False)

    def walk(self) -> Iterator["SyntaxNode"]:
        """Yield this node and all descendants in pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def descendants(self) -> Iterator["SyntaxNode"]:
        iterator = self.walk()
        next(iterator)
        yield from iterator

    def ancestors(self) -> Iterator["SyntaxNode"]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def children_of_kind(self, kind: NodeKind) -> List["SyntaxNode"]:
        return [child for child in self.children if child.kind is kind]

    def enclosing(self, *kinds: NodeKind) -> Optional["SyntaxNode"]:
        for ancestor in self.ancestors():
            if ancestor.kind in kinds:
                return ancestor
        return None


class SyntaxTree:
    """A lowered compilation unit with parent links and stable pre-order ids."""

    def __init__(self, root: SyntaxNode, path: str = "<memory>", source: bytes = b""):
        self.root = root
        self.path = path
        self.source = source
        self._nodes: List[SyntaxNode] = []
        self._link(root)

    def _link(self, root: SyntaxNode):
        root.parent = None
        for node in root.walk():
            node.node_id = len(self._nodes)
            self._nodes.append(node)
            for child in node.children:
                child.parent = node

    def nodes(self) -> Iterator[SyntaxNode]:
        """All nodes in pre-order (root first)."""
        return iter(self._nodes)

    def nodes_of_kind(self, kind: NodeKind) -> Iterator[SyntaxNode]:
        return (node for node in self._nodes if node.kind is kind)

    def __len__(self) -> int:
        return len(self._nodes)

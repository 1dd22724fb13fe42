"""Semantic model: binds syntax nodes of one compilation unit to symbols.

Binding is local to the unit. Types declared in the unit resolve to source
symbols; anything else resolves to an external symbol carrying only what the
source spells out, or to None when the binding is ambiguous or unknowable.
Resolution never raises on bad input.
"""
from dataclasses import replace
from typing import Dict, List, Optional, Set

import networkx as nx

from .external_catalog import ExternalApiCatalog
from .symbols import MethodSymbol, ParameterSymbol, TypeSymbol
from .syntax import NodeKind, SyntaxNode, SyntaxTree, TypeName

# OTHER nodes that open a variable scope of their own
SCOPE_KEYWORDS = frozenset({
    'lambda_expression', 'anonymous_method_expression', 'accessor_declaration',
})

# OTHER nodes whose type is the type of their only child
TRANSPARENT_KEYWORDS = frozenset({'parenthesized_expression', 'checked_expression'})


def short_attribute_name(name: str) -> str:
    """``DataMemberAttribute`` and ``DataMember`` both name the same attribute."""
    if name.endswith('Attribute') and len(name) > len('Attribute'):
        return name[:-len('Attribute')]
    return name


class SemanticModel:
    """Resolution service for one lowered compilation unit."""

    def __init__(self, tree: SyntaxTree, catalog: Optional[ExternalApiCatalog] = None):
        """Index the declarations of ``tree``.

        Args:
            tree: Lowered compilation unit
            catalog: External API catalog (empty when omitted)
        """
        self.tree = tree
        self.catalog = catalog if catalog is not None else ExternalApiCatalog.from_dict({})
        self._declared: Dict[SyntaxNode, TypeSymbol] = {}
        self._declarations: Dict[TypeSymbol, List[SyntaxNode]] = {}
        self._by_name: Dict[str, List[TypeSymbol]] = {}
        self._imports: Set[str] = set()
        self._aliases: Dict[str, TypeName] = {}
        self._scopes: Dict[SyntaxNode, Dict[str, SyntaxNode]] = {}
        self._typing: Set[SyntaxNode] = set()
        self._graph: Optional[nx.DiGraph] = None
        self._index()

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def _index(self):
        for node in self.tree.nodes():
            if node.kind is NodeKind.USING and node.name and node.keyword is None:
                self._imports.add(node.name)
            elif node.kind is NodeKind.USING and node.keyword == 'alias' and node.declared_names:
                if node.type_name is not None:
                    self._aliases[node.declared_names[0]] = node.type_name
            elif node.kind is NodeKind.TYPE_DECLARATION and node.name:
                symbol = TypeSymbol(
                    name=node.name,
                    namespace=self.namespace_of(node),
                    container=".".join(
                        a.name for a in reversed(list(node.ancestors()))
                        if a.kind is NodeKind.TYPE_DECLARATION
                    ),
                    arity=node.arity,
                    kind=node.keyword or "class",
                )
                self._declared[node] = symbol
                if symbol not in self._declarations:
                    self._declarations[symbol] = []
                    self._by_name.setdefault(symbol.name, []).append(symbol)
                self._declarations[symbol].append(node)

    @staticmethod
    def namespace_of(node: SyntaxNode) -> str:
        parts = [a.name for a in node.ancestors() if a.kind is NodeKind.NAMESPACE and a.name]
        return ".".join(reversed(parts))

    def declared_symbol(self, node: SyntaxNode) -> Optional[TypeSymbol]:
        """Symbol declared by a TYPE_DECLARATION node."""
        return self._declared.get(node)

    def declarations_of(self, symbol: TypeSymbol) -> List[SyntaxNode]:
        return list(self._declarations.get(symbol, []))

    def enclosing_type(self, node: SyntaxNode) -> Optional[TypeSymbol]:
        declaration = node.enclosing(NodeKind.TYPE_DECLARATION)
        return self._declared.get(declaration) if declaration is not None else None

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def attributes_of(self, symbol: TypeSymbol) -> List[SyntaxNode]:
        """ATTRIBUTE nodes applied to any declaration of ``symbol``."""
        attributes = []
        for declaration in self._declarations.get(symbol, []):
            attributes.extend(declaration.children_of_kind(NodeKind.ATTRIBUTE))
        return attributes

    def resolve_attribute(self, node: SyntaxNode) -> Optional[TypeSymbol]:
        """Attribute class of an ATTRIBUTE node (``[Foo]`` binds ``FooAttribute`` or ``Foo``)."""
        type_name = node.type_name
        if type_name is None:
            return None
        if type_name.name.endswith('Attribute'):
            names = [type_name.name]
        else:
            names = [type_name.name + 'Attribute', type_name.name]
        for name in names:
            symbol = self.resolve_type_name(replace(type_name, name=name), node)
            if symbol is not None and symbol.is_source:
                return symbol
        return self.resolve_type_name(replace(type_name, name=names[0]), node)

    def attribute_names(self, attributes: List[SyntaxNode]) -> Set[str]:
        """Short names (without ``Attribute`` suffix) of the bound attribute classes."""
        names = set()
        for attribute in attributes:
            symbol = self.resolve_attribute(attribute)
            if symbol is not None:
                names.add(short_attribute_name(symbol.name))
        return names

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def resolve_type_name(self, type_name: Optional[TypeName], context: SyntaxNode) -> Optional[TypeSymbol]:
        """Bind a written type to a symbol.

        Returns:
            The source symbol, an external symbol when nothing in the unit
            matches, or None for predefined types and ambiguous names.
        """
        if type_name is None or type_name.predefined or not type_name.name:
            return None
        type_name = self._expand_alias(type_name)
        if type_name.predefined:
            return None
        arity = type_name.type_arity
        candidates = [s for s in self._by_name.get(type_name.name, []) if s.arity == arity]

        if type_name.qualifier:
            written = f"{type_name.qualifier}.{type_name.name}"
            candidates = [
                s for s in candidates
                if s.full_name == written or s.full_name.endswith('.' + written)
            ]
            if not candidates:
                return TypeSymbol(type_name.name, namespace=type_name.qualifier, arity=arity,
                                  is_source=False, kind="external")

        if not candidates:
            return TypeSymbol(type_name.name, arity=arity, is_source=False, kind="external")
        if len(candidates) == 1:
            return candidates[0]
        return self._closest(candidates, context)

    def _expand_alias(self, type_name: TypeName) -> TypeName:
        """Replace a ``using`` alias, written alone or as the head of a qualifier."""
        if not self._aliases:
            return type_name
        if not type_name.qualifier:
            target = self._aliases.get(type_name.name)
            if target is not None and not type_name.arguments and type_name.arity < 0:
                return target
            return type_name
        head, _, rest = type_name.qualifier.partition('.')
        target = self._aliases.get(head)
        if target is None or target.arguments:
            return type_name
        qualifier = f"{target.full_text}.{rest}" if rest else target.full_text
        return replace(type_name, qualifier=qualifier)

    def _closest(self, candidates: List[TypeSymbol], context: SyntaxNode) -> Optional[TypeSymbol]:
        context_namespace = self.namespace_of(context)
        containers = set()
        for ancestor in context.ancestors():
            symbol = self._declared.get(ancestor)
            if symbol is not None:
                containers.add(".".join(p for p in (symbol.container, symbol.name) if p))

        def score(symbol: TypeSymbol):
            if symbol.container and symbol.container in containers:
                return (3, len(symbol.container))
            if not symbol.container:
                if symbol.namespace == context_namespace or context_namespace.startswith(symbol.namespace + '.'):
                    return (2, len(symbol.namespace))
                if symbol.namespace in self._imports:
                    return (1, 0)
            return (0, 0)

        ranked = sorted(candidates, key=score, reverse=True)
        if score(ranked[0]) == score(ranked[1]):
            return None
        return ranked[0]

    def resolve_type_reference(self, node: SyntaxNode) -> Optional[TypeSymbol]:
        if node.role == 'implicit':
            return self._inferred_type(node)
        return self.resolve_type_name(node.type_name, node)

    def _inferred_type(self, node: SyntaxNode) -> Optional[TypeSymbol]:
        # var x = <initializer>: the type of the first initializer
        owner = node.parent
        if owner is None:
            return None
        declarator = next(iter(owner.children_of_kind(NodeKind.DECLARATOR)), None)
        if declarator is None or not declarator.children:
            return None
        return self.type_of(declarator.children[0])

    def declared_type(self, node: SyntaxNode) -> Optional[TypeSymbol]:
        """Declared type of a PARAMETER, PROPERTY, FIELD or LOCAL_DECLARATION."""
        return self.resolve_type_name(node.type_name, node)

    def referenced_type(self, node: SyntaxNode) -> Optional[TypeSymbol]:
        """Source type named by an expression, if it names a type at all.

        Handles ``Foo`` (IDENTIFIER) and ``Ns.Foo`` / ``Outer.Inner``
        (MEMBER_ACCESS over a chain of plain names). Variables and called
        methods never name a type, nor does the member assigned in an
        object initializer.
        """
        if not node.name or node.role in ('callee', 'initializer_member'):
            return None
        arguments = tuple(
            child.type_name for child in node.children
            if child.kind is NodeKind.TYPE_REFERENCE and child.type_name is not None
        )
        if node.kind is NodeKind.IDENTIFIER:
            if self._find_variable(node.name, node) is not None:
                return None
            type_name = TypeName(node.name, arguments=arguments)
        elif node.kind is NodeKind.MEMBER_ACCESS:
            receiver = self._receiver(node)
            qualifier = self._dotted_name(receiver) if receiver is not None else None
            if not qualifier or self._find_variable(qualifier.split('.')[0], node) is not None:
                return None
            type_name = TypeName(node.name, qualifier=qualifier, arguments=arguments)
        else:
            return None

        symbol = self.resolve_type_name(type_name, node)
        if symbol is None or not symbol.is_source:
            return None
        return symbol

    def _dotted_name(self, node: SyntaxNode) -> Optional[str]:
        if node.kind is NodeKind.IDENTIFIER and node.name and not node.children:
            return node.name
        if node.kind is NodeKind.MEMBER_ACCESS and node.name:
            receiver = self._receiver(node)
            prefix = self._dotted_name(receiver) if receiver is not None else None
            return f"{prefix}.{node.name}" if prefix else None
        return None

    def base_types(self, symbol: TypeSymbol) -> List[TypeSymbol]:
        """Direct base class and interfaces."""
        if not symbol.is_source:
            return self.catalog.base_types(symbol)
        bases = []
        for declaration in self._declarations.get(symbol, []):
            for child in declaration.children:
                if child.kind is NodeKind.TYPE_REFERENCE and child.role == 'base':
                    base = self.resolve_type_reference(child)
                    if base is not None and base != symbol and base not in bases:
                        bases.append(base)
        return bases

    def inheritance_graph(self) -> nx.DiGraph:
        """Directed graph with an edge from every type to each of its direct bases."""
        if self._graph is None:
            graph = nx.DiGraph()
            frontier = list(self._declarations) + self.catalog.known_types()
            while frontier:
                symbol = frontier.pop()
                if symbol in graph and graph.out_degree(symbol) > 0:
                    continue
                graph.add_node(symbol)
                for base in self.base_types(symbol):
                    if base not in graph:
                        frontier.append(base)
                    graph.add_edge(symbol, base)
            self._graph = graph
        return self._graph

    def ancestors(self, symbol: TypeSymbol) -> Set[TypeSymbol]:
        """All transitive base types of ``symbol``."""
        graph = self.inheritance_graph()
        if symbol in graph:
            return set(nx.descendants(graph, symbol))
        found: Set[TypeSymbol] = set()
        frontier = self.base_types(symbol)
        while frontier:
            base = frontier.pop()
            if base in found:
                continue
            found.add(base)
            if base in graph:
                found.update(nx.descendants(graph, base))
            else:
                frontier.extend(self.base_types(base))
        return found

    # ------------------------------------------------------------------
    # Variables and expressions
    # ------------------------------------------------------------------

    def _scope_table(self, scope: SyntaxNode) -> Dict[str, SyntaxNode]:
        table = self._scopes.get(scope)
        if table is not None:
            return table
        table = {}
        if scope.kind is NodeKind.TYPE_DECLARATION:
            for child in scope.children:
                if child.kind is NodeKind.PARAMETER and child.name:
                    table.setdefault(child.name, child)
                elif child.kind in (NodeKind.PROPERTY, NodeKind.FIELD):
                    for name in child.declared_names:
                        table.setdefault(name, child)
        else:
            if scope.kind is NodeKind.COMPILATION_UNIT:
                # top-level statements share one scope
                nodes = (
                    node for statement in scope.children
                    if statement.kind is NodeKind.OTHER and statement.keyword == 'global_statement'
                    for node in statement.walk()
                )
            else:
                nodes = scope.descendants()
            for node in nodes:
                if node.kind in (NodeKind.PARAMETER, NodeKind.DECLARATOR) and node.name:
                    table.setdefault(node.name, node)
                elif node.kind is NodeKind.LOCAL_DECLARATION and not node.children_of_kind(NodeKind.DECLARATOR):
                    for name in node.declared_names:
                        table.setdefault(name, node)
        self._scopes[scope] = table
        return table

    def _find_member(self, symbol: TypeSymbol, name: str) -> Optional[SyntaxNode]:
        seen = set()
        pending = [symbol]
        while pending:
            current = pending.pop(0)
            if current in seen or not current.is_source:
                continue
            seen.add(current)
            for declaration in self._declarations.get(current, []):
                member = self._scope_table(declaration).get(name)
                if member is not None:
                    return member
            pending.extend(self.base_types(current))
        return None

    def _find_variable(self, name: str, node: SyntaxNode) -> Optional[SyntaxNode]:
        for ancestor in node.ancestors():
            if ancestor.kind in (NodeKind.METHOD, NodeKind.PROPERTY, NodeKind.COMPILATION_UNIT) or (
                    ancestor.kind is NodeKind.OTHER and ancestor.keyword in SCOPE_KEYWORDS):
                found = self._scope_table(ancestor).get(name)
                if found is not None:
                    return found
            elif ancestor.kind is NodeKind.TYPE_DECLARATION:
                symbol = self._declared.get(ancestor)
                found = self._find_member(symbol, name) if symbol is not None else None
                if found is not None:
                    return found
        return None

    def _variable_type(self, declaration: SyntaxNode) -> Optional[TypeSymbol]:
        if declaration.kind is NodeKind.DECLARATOR:
            owner = declaration.parent
            if owner is not None and owner.type_name is not None:
                return self.resolve_type_name(owner.type_name, owner)
            # implicitly typed: var x = <initializer>
            if declaration.children:
                return self.type_of(declaration.children[0])
            return None
        return self.resolve_type_name(declaration.type_name, declaration)

    def type_of(self, node: SyntaxNode) -> Optional[TypeSymbol]:
        """Static type of an expression, when it can be determined locally."""
        if node in self._typing:
            return None
        self._typing.add(node)
        try:
            return self._type_of(node)
        finally:
            self._typing.discard(node)

    def _type_of(self, node: SyntaxNode) -> Optional[TypeSymbol]:
        kind = node.kind
        if kind is NodeKind.IDENTIFIER:
            declaration = self._find_variable(node.name, node) if node.name else None
            return self._variable_type(declaration) if declaration is not None else None
        if kind is NodeKind.THIS:
            return self.enclosing_type(node)
        if kind is NodeKind.MEMBER_ACCESS:
            receiver = self._receiver(node)
            if receiver is None:
                return None
            receiver_type = self.type_of(receiver) or self.referenced_type(receiver)
            if receiver_type is None or not receiver_type.is_source:
                return None
            member = self._find_member(receiver_type, node.name)
            return self._variable_type(member) if member is not None else None
        if kind in (NodeKind.OBJECT_CREATION, NodeKind.CAST):
            return self.resolve_type_name(node.type_name, node)
        if kind is NodeKind.INVOCATION:
            method = self.resolve_invocation(node)
            return method.return_type if method is not None else None
        if kind is NodeKind.OTHER and node.keyword in TRANSPARENT_KEYWORDS and len(node.children) == 1:
            return self.type_of(node.children[0])
        return None

    @staticmethod
    def _receiver(member_access: SyntaxNode) -> Optional[SyntaxNode]:
        return next((c for c in member_access.children if c.role == 'receiver'), None)

    # ------------------------------------------------------------------
    # Invocations
    # ------------------------------------------------------------------

    def _type_arguments(self, callee: SyntaxNode):
        return tuple(
            self.resolve_type_name(child.type_name, child)
            for child in callee.children
            if child.kind is NodeKind.TYPE_REFERENCE and child.role == 'type_argument'
        )

    def _source_methods(self, symbol: TypeSymbol, name: str) -> List[SyntaxNode]:
        methods, seen, pending = [], set(), [symbol]
        while pending:
            current = pending.pop(0)
            if current in seen or not current.is_source:
                continue
            seen.add(current)
            for declaration in self._declarations.get(current, []):
                methods.extend(
                    child for child in declaration.children_of_kind(NodeKind.METHOD)
                    if child.name == name and child.keyword == 'method'
                )
            pending.extend(self.base_types(current))
        return methods

    def _source_extensions(self, name: str, receiver_type: Optional[TypeSymbol]) -> List[SyntaxNode]:
        extensions = []
        for method in self.tree.nodes_of_kind(NodeKind.METHOD):
            if method.name != name or 'static' not in method.modifiers:
                continue
            parameters = method.children_of_kind(NodeKind.PARAMETER)
            if not parameters or 'this' not in parameters[0].modifiers:
                continue
            if receiver_type is None:
                extensions.append(method)
                continue
            this_type = self.resolve_type_name(parameters[0].type_name, parameters[0])
            if this_type is None:
                continue
            if this_type == receiver_type or this_type in self.ancestors(receiver_type) or (
                    not this_type.is_source and not receiver_type.is_source
                    and this_type.name == receiver_type.name):
                extensions.append(method)
        return extensions

    @staticmethod
    def _select_overload(methods: List[SyntaxNode], argument_count: int, reduced: bool) -> SyntaxNode:
        for method in methods:
            count = len(method.children_of_kind(NodeKind.PARAMETER)) - (1 if reduced else 0)
            if count == argument_count:
                return method
        return methods[0]

    def method_symbol(self, method: SyntaxNode, type_arguments=()) -> MethodSymbol:
        """Describe a source METHOD node."""
        parameters = []
        for parameter in method.children_of_kind(NodeKind.PARAMETER):
            parameter_type = self.resolve_type_name(parameter.type_name, parameter)
            written = parameter.type_name.full_text if parameter.type_name else ""
            parameters.append(ParameterSymbol(
                name=parameter.name or "",
                type=parameter_type,
                type_display=parameter_type.full_name if parameter_type is not None else written,
                is_this='this' in parameter.modifiers,
            ))
        is_static = 'static' in method.modifiers
        return MethodSymbol(
            name=method.name or "",
            containing_type=self.enclosing_type(method),
            parameters=tuple(parameters),
            type_arguments=tuple(type_arguments),
            return_type=self.resolve_type_name(method.type_name, method),
            is_extension=is_static and bool(parameters) and parameters[0].is_this,
            is_static=is_static,
            declaration=method,
        )

    def resolve_invocation(self, node: SyntaxNode) -> Optional[MethodSymbol]:
        """Bind an INVOCATION node to the method it calls."""
        callee = next((c for c in node.children if c.role == 'callee'), None)
        if callee is None:
            return None
        argument_count = sum(1 for c in node.children if c.role == 'argument')
        type_arguments = self._type_arguments(callee)

        if callee.kind is NodeKind.IDENTIFIER:
            enclosing = self.enclosing_type(node)
            methods = self._source_methods(enclosing, callee.name) if enclosing is not None else []
            if methods:
                chosen = self._select_overload(methods, argument_count, reduced=False)
                return self.method_symbol(chosen, type_arguments)
            return None

        if callee.kind is not NodeKind.MEMBER_ACCESS:
            return None

        name = callee.name
        receiver = self._receiver(callee)
        if receiver is None:
            return None

        static_type = self.referenced_type(receiver)
        if static_type is not None:
            methods = self._source_methods(static_type, name)
            if methods:
                chosen = self._select_overload(methods, argument_count, reduced=False)
                return self.method_symbol(chosen, type_arguments)
            return None

        receiver_type = self.type_of(receiver)
        if receiver_type is not None and receiver_type.is_source:
            methods = self._source_methods(receiver_type, name)
            if methods:
                chosen = self._select_overload(methods, argument_count, reduced=False)
                return self.method_symbol(chosen, type_arguments)

        extensions = self._source_extensions(name, receiver_type)
        if extensions:
            chosen = self._select_overload(extensions, argument_count, reduced=True)
            return self.method_symbol(chosen, type_arguments)

        external = self.catalog.extension_methods(name, receiver_type)
        if external:
            return external[0].to_symbol(type_arguments)

        if receiver_type is not None and not receiver_type.is_source:
            # member of an external type: only the name and containing type are known
            return MethodSymbol(name=name, containing_type=receiver_type, type_arguments=type_arguments)
        return None

"""Lower tree-sitter C# syntax trees into the analyzer's syntax model.

The lowering keeps every position that can name a type and drops the rest of
the concrete syntax. Declared names (classes, methods, variables) become node
payload, never ``IDENTIFIER`` children, so a declaration is not mistaken for a
reference to itself.
"""
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional

from tree_sitter import Node, Tree

from .syntax import Location, NodeKind, SyntaxNode, SyntaxTree, TypeName


# CST node types that denote a type expression
TYPE_NODE_TYPES = frozenset({
    'identifier', 'generic_name', 'qualified_name', 'alias_qualified_name',
    'predefined_type', 'nullable_type', 'array_type', 'pointer_type',
    'tuple_type', 'ref_type', 'scoped_type', 'implicit_type', 'function_pointer_type',
})

# Wrappers whose element type is the interesting one
WRAPPER_TYPE_NODES = frozenset({
    'nullable_type', 'array_type', 'pointer_type', 'ref_type', 'scoped_type',
})

NAME_NODE_TYPES = frozenset({
    'identifier', 'generic_name', 'qualified_name', 'alias_qualified_name',
})

TYPE_DECLARATION_KEYWORDS = {
    'class_declaration': 'class',
    'struct_declaration': 'struct',
    'interface_declaration': 'interface',
    'record_declaration': 'record',
    'record_struct_declaration': 'record struct',
    'enum_declaration': 'enum',
}

METHOD_KEYWORDS = {
    'method_declaration': 'method',
    'constructor_declaration': 'constructor',
    'destructor_declaration': 'destructor',
    'local_function_statement': 'local_function',
    'operator_declaration': 'operator',
    'conversion_operator_declaration': 'operator',
}

MODIFIER_WORDS = frozenset({
    'public', 'private', 'protected', 'internal', 'static', 'abstract', 'sealed',
    'partial', 'virtual', 'override', 'readonly', 'async', 'extern', 'new',
    'unsafe', 'volatile', 'const', 'required', 'file',
})

PARAMETER_MODIFIERS = frozenset({'this', 'ref', 'out', 'in', 'params', 'scoped', 'readonly'})

SKIPPED_NODE_TYPES = frozenset({'comment', 'name_colon', 'name_equals'})


class CSharpLowering:
    """Convert one tree-sitter C# tree into a ``SyntaxTree``."""

    def __init__(self, source: bytes, path: str = "<memory>"):
        """Initialize lowering for one compilation unit.

        Args:
            source: Source bytes the tree was parsed from
            path: Path recorded in every Location
        """
        self.source = source
        self.path = path
        self._handlers: Dict[str, Callable[[Node], List[SyntaxNode]]] = {
            'compilation_unit': self._single(self._compilation_unit),
            'namespace_declaration': self._single(self._namespace),
            'file_scoped_namespace_declaration': self._single(self._namespace),
            'using_directive': self._single(self._using),
            'attribute_list': self._attribute_list,
            'attribute': self._single(self._attribute),
            'parameter_list': self._parameter_list,
            'field_declaration': self._single(self._field),
            'event_field_declaration': self._single(self._field),
            'property_declaration': self._single(self._property),
            'variable_declaration': self._single(self._local_declaration),
            'foreach_statement': self._single(self._foreach),
            'invocation_expression': self._single(self._invocation),
            'member_access_expression': self._single(self._member_access),
            'identifier': self._single(self._identifier),
            'generic_name': self._single(self._identifier),
            'qualified_name': self._single(self._qualified_name),
            'this_expression': self._single(self._this),
            'this': self._single(self._this),
            'object_creation_expression': self._single(self._object_creation),
            'typeof_expression': self._single(self._typeof),
            'cast_expression': self._single(self._cast),
            'as_expression': self._single(self._as),
            'initializer_expression': self._single(self._initializer),
            'with_initializer_expression': self._single(self._initializer),
            'with_initializer': self._single(self._with_initializer),
            'argument': self._pass_through,
            'equals_value_clause': self._pass_through,
        }
        for cst_type in TYPE_DECLARATION_KEYWORDS:
            self._handlers[cst_type] = self._single(self._type_declaration)
        for cst_type in METHOD_KEYWORDS:
            self._handlers[cst_type] = self._single(self._method)

    def lower(self, tree: Tree) -> SyntaxTree:
        """Lower a parsed tree.

        Returns:
            SyntaxTree rooted at a COMPILATION_UNIT node
        """
        root = self._compilation_unit(tree.root_node)
        return SyntaxTree(root, path=self.path, source=self.source)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _single(handler: Callable[[Node], Optional[SyntaxNode]]) -> Callable[[Node], List[SyntaxNode]]:
        def wrapper(cst: Node) -> List[SyntaxNode]:
            node = handler(cst)
            return [node] if node is not None else []
        return wrapper

    def _location(self, cst: Node) -> Location:
        start_row, start_col = cst.start_point
        end_row, end_col = cst.end_point
        return Location(
            path=self.path,
            line=start_row + 1,
            column=start_col + 1,
            end_line=end_row + 1,
            end_column=end_col + 1,
            start_byte=cst.start_byte,
            end_byte=cst.end_byte,
        )

    def _text(self, cst: Optional[Node]) -> str:
        if cst is None:
            return ""
        return self.source[cst.start_byte:cst.end_byte].decode('utf-8', errors='ignore')

    def _compact_text(self, cst: Optional[Node]) -> str:
        return "".join(self._text(cst).split())

    def _lower_many(self, cst: Node) -> List[SyntaxNode]:
        if not cst.is_named or cst.type in SKIPPED_NODE_TYPES:
            return []
        handler = self._handlers.get(cst.type)
        if handler is not None:
            return handler(cst)
        return [self._generic(cst)]

    def _lower_all(self, nodes: Iterable[Node]) -> List[SyntaxNode]:
        lowered = []
        for cst in nodes:
            lowered.extend(self._lower_many(cst))
        return lowered

    def _pass_through(self, cst: Node) -> List[SyntaxNode]:
        # argument / equals_value_clause: keep only the expression
        expressions = [c for c in cst.named_children if c.type not in SKIPPED_NODE_TYPES]
        if not expressions:
            return []
        return self._lower_many(expressions[-1])

    def _generic(self, cst: Node) -> SyntaxNode:
        type_ids = {
            child.id for child in (cst.child_by_field_name('type'), cst.child_by_field_name('returns'))
            if child is not None
        }
        name_node = cst.child_by_field_name('name')
        skip_ids = {name_node.id} if name_node is not None else set()

        children = []
        for child in cst.named_children:
            if child.id in skip_ids:
                continue
            if child.id in type_ids:
                ref = self._type_reference(child, 'type')
                if ref is not None:
                    children.append(ref)
            else:
                children.extend(self._lower_many(child))
        return SyntaxNode(NodeKind.OTHER, self._location(cst), children, keyword=cst.type)

    def _find_type_child(self, cst: Node, exclude: Iterable[Optional[Node]] = ()) -> Optional[Node]:
        excluded = {node.id for node in exclude if node is not None}
        for child in cst.named_children:
            if child.id not in excluded and child.type in TYPE_NODE_TYPES:
                return child
        return None

    def _modifiers(self, cst: Node) -> set:
        modifiers = set()
        for child in cst.children:
            if not child.is_named and child.type in MODIFIER_WORDS:
                modifiers.add(child.type)
            elif child.type == 'modifier':
                modifiers.add(self._text(child).strip())
        return modifiers

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def _unwrap_type(self, cst: Optional[Node]) -> Optional[Node]:
        while cst is not None and cst.type in WRAPPER_TYPE_NODES:
            inner = cst.child_by_field_name('type')
            if inner is None:
                inner = next(iter(cst.named_children), None)
            cst = inner
        if cst is None or cst.type in ('implicit_type', 'function_pointer_type'):
            return None
        return cst

    def _type_argument_nodes(self, cst: Node) -> List[Node]:
        if cst.type == 'generic_name':
            for child in cst.named_children:
                if child.type == 'type_argument_list':
                    return [c for c in child.named_children if c.type not in SKIPPED_NODE_TYPES]
            return []
        if cst.type in ('qualified_name', 'alias_qualified_name'):
            name = cst.child_by_field_name('name')
            if name is None and cst.named_children:
                name = cst.named_children[-1]
            return self._type_argument_nodes(name) if name is not None else []
        if cst.type == 'tuple_type':
            elements = []
            for child in cst.named_children:
                element_type = child.child_by_field_name('type') if child.type == 'tuple_element' else child
                if element_type is not None:
                    elements.append(element_type)
            return elements
        return []

    def _is_implicit(self, cst: Optional[Node]) -> bool:
        if cst is None:
            return False
        return cst.type == 'implicit_type' or (cst.type == 'identifier' and self._text(cst) == 'var')

    def _type_name(self, cst: Optional[Node]) -> Optional[TypeName]:
        """Describe a type expression, or None for implicit/unsupported types."""
        cst = self._unwrap_type(cst)
        if cst is None:
            return None

        if cst.type == 'identifier':
            text = self._text(cst)
            if text == 'var':
                return None
            return TypeName(text)

        if cst.type == 'predefined_type':
            return TypeName(self._text(cst), predefined=True)

        if cst.type == 'generic_name':
            identifier = cst.child_by_field_name('name')
            if identifier is None:
                identifier = next((c for c in cst.named_children if c.type == 'identifier'), None)
            arguments = []
            for arg in self._type_argument_nodes(cst):
                arg_name = self._type_name(arg)
                arguments.append(arg_name if arg_name is not None else TypeName('?', predefined=True))
            arity = -1
            if not arguments:
                # unbound generic: Foo<,>
                type_arguments = next((c for c in cst.named_children if c.type == 'type_argument_list'), None)
                if type_arguments is not None:
                    arity = sum(1 for c in type_arguments.children if c.type == ',') + 1
            return TypeName(self._text(identifier), arguments=tuple(arguments), arity=arity)

        if cst.type in ('qualified_name', 'alias_qualified_name'):
            qualifier = cst.child_by_field_name('qualifier') or cst.child_by_field_name('alias')
            name = cst.child_by_field_name('name')
            if (qualifier is None or name is None) and len(cst.named_children) >= 2:
                qualifier, name = cst.named_children[0], cst.named_children[-1]
            inner = self._type_name(name)
            if inner is None:
                return None
            if cst.type == 'alias_qualified_name':
                return inner
            return replace(inner, qualifier=self._compact_text(qualifier))

        if cst.type == 'tuple_type':
            elements = [self._type_name(element) for element in self._type_argument_nodes(cst)]
            return TypeName(
                'ValueTuple',
                arguments=tuple(e for e in elements if e is not None),
                predefined=True,
            )

        return None

    def _type_reference(self, cst: Optional[Node], role: str) -> Optional[SyntaxNode]:
        element = self._unwrap_type(cst)
        if element is None:
            return None
        type_name = self._type_name(element)
        if type_name is None:
            return None
        children = []
        for arg in self._type_argument_nodes(element):
            ref = self._type_reference(arg, 'type_argument')
            if ref is not None:
                children.append(ref)
        if type_name.predefined and not children:
            return None
        return SyntaxNode(
            NodeKind.TYPE_REFERENCE,
            self._location(element),
            children,
            name=type_name.name,
            type_name=type_name,
            role=role,
        )

    def _nested_type_references(self, cst: Optional[Node]) -> List[SyntaxNode]:
        """Type references inside a declared type, excluding the declared type itself."""
        ref = self._type_reference(cst, 'type')
        return list(ref.children) if ref is not None else []

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def _compilation_unit(self, cst: Node) -> SyntaxNode:
        children = []
        file_namespace = None
        for child in cst.named_children:
            if child.type == 'file_scoped_namespace_declaration':
                file_namespace = self._namespace(child)
                children.append(file_namespace)
                continue
            lowered = self._lower_many(child)
            if file_namespace is not None:
                file_namespace.children.extend(lowered)
            else:
                children.extend(lowered)
        return SyntaxNode(NodeKind.COMPILATION_UNIT, self._location(cst), children)

    def _namespace(self, cst: Node) -> SyntaxNode:
        name_node = cst.child_by_field_name('name')
        body = cst.child_by_field_name('body')
        if body is not None:
            members = body.named_children
        else:
            members = [c for c in cst.named_children if name_node is None or c.id != name_node.id]
        return SyntaxNode(
            NodeKind.NAMESPACE,
            self._location(cst),
            self._lower_all(members),
            name=self._compact_text(name_node),
        )

    def _using(self, cst: Node) -> SyntaxNode:
        tokens = {c.type for c in cst.children if not c.is_named}
        alias = cst.child_by_field_name('alias')
        if alias is None:
            name_equals = next((c for c in cst.named_children if c.type == 'name_equals'), None)
            if name_equals is not None:
                alias = next((c for c in name_equals.named_children if c.type == 'identifier'), None)
        if alias is None and '=' in tokens and cst.named_children:
            alias = cst.named_children[0]

        keyword = None
        if 'static' in tokens:
            keyword = 'static'
        elif alias is not None:
            keyword = 'alias'
        names = [
            c for c in cst.named_children
            if c.type in NAME_NODE_TYPES and (alias is None or c.id != alias.id)
        ]
        name = self._compact_text(names[-1]) if names else None
        if alias is None:
            return SyntaxNode(NodeKind.USING, self._location(cst), name=name, keyword=keyword)

        # the target is kept as payload: the directive itself is not a usage
        targets = [c for c in cst.named_children if c.type in TYPE_NODE_TYPES and c.id != alias.id]
        return SyntaxNode(
            NodeKind.USING,
            self._location(cst),
            name=name,
            type_name=self._type_name(targets[-1]) if targets else None,
            keyword=keyword,
            declared_names=(self._text(alias),),
        )

    def _attribute_list(self, cst: Node) -> List[SyntaxNode]:
        return [
            self._attribute(child) for child in cst.named_children
            if child.type == 'attribute'
        ]

    def _attribute(self, cst: Node) -> SyntaxNode:
        name_node = cst.child_by_field_name('name')
        if name_node is None:
            name_node = next((c for c in cst.named_children if c.type in NAME_NODE_TYPES), None)
        type_name = self._type_name(name_node)
        arguments = []
        for child in cst.named_children:
            if child.type == 'attribute_argument_list':
                for argument in child.named_children:
                    arguments.extend(self._pass_through(argument))
        return SyntaxNode(
            NodeKind.ATTRIBUTE,
            self._location(cst),
            arguments,
            name=type_name.name if type_name else None,
            type_name=type_name,
        )

    def _type_declaration(self, cst: Node) -> SyntaxNode:
        keyword = TYPE_DECLARATION_KEYWORDS[cst.type]
        name_node = cst.child_by_field_name('name')
        tokens = {c.type for c in cst.children if not c.is_named}
        if keyword == 'record' and 'struct' in tokens:
            keyword = 'record struct'

        attributes, bases, members = [], [], []
        arity = 0
        for child in cst.named_children:
            if name_node is not None and child.id == name_node.id:
                continue
            if child.type == 'modifier':
                continue
            if child.type == 'attribute_list':
                attributes.extend(self._attribute_list(child))
            elif child.type == 'type_parameter_list':
                arity = sum(1 for c in child.named_children if c.type == 'type_parameter')
            elif child.type == 'base_list':
                bases.extend(self._base_list(child))
            elif child.type == 'parameter_list':
                members.extend(self._parameter_list(child))
            elif child.type in ('declaration_list', 'enum_member_declaration_list'):
                members.extend(self._lower_all(child.named_children))
            else:
                members.extend(self._lower_many(child))

        return SyntaxNode(
            NodeKind.TYPE_DECLARATION,
            self._location(cst),
            attributes + bases + members,
            name=self._text(name_node),
            keyword=keyword,
            modifiers=frozenset(self._modifiers(cst)),
            arity=arity,
            name_location=self._location(name_node) if name_node is not None else None,
        )

    def _base_list(self, cst: Node) -> List[SyntaxNode]:
        lowered = []
        for child in cst.named_children:
            if child.type == 'primary_constructor_base_type':
                base_type = child.child_by_field_name('type') or self._find_type_child(child)
                ref = self._type_reference(base_type, 'base')
                if ref is not None:
                    lowered.append(ref)
                for part in child.named_children:
                    if part.type == 'argument_list':
                        lowered.extend(self._arguments(part))
            elif child.type == 'argument_list':
                lowered.extend(self._arguments(child))
            else:
                ref = self._type_reference(child, 'base')
                if ref is not None:
                    lowered.append(ref)
        return lowered

    def _method(self, cst: Node) -> SyntaxNode:
        keyword = METHOD_KEYWORDS[cst.type]
        name_node = cst.child_by_field_name('name')
        return_node = cst.child_by_field_name('returns') or cst.child_by_field_name('type')
        if keyword in ('method', 'local_function') and return_node is None:
            return_node = self._find_type_child(cst, exclude=(name_node,))
        skip = {n.id for n in (name_node, return_node) if n is not None}

        attributes, parameters, rest = [], [], []
        arity = 0
        for child in cst.named_children:
            if child.id in skip or child.type == 'modifier':
                continue
            if child.type == 'attribute_list':
                attributes.extend(self._attribute_list(child))
            elif child.type == 'type_parameter_list':
                arity = sum(1 for c in child.named_children if c.type == 'type_parameter')
            elif child.type == 'parameter_list':
                parameters.extend(self._parameter_list(child))
            else:
                rest.extend(self._lower_many(child))

        returns = self._type_reference(return_node, 'return') if return_node is not None else None
        return SyntaxNode(
            NodeKind.METHOD,
            self._location(cst),
            attributes + ([returns] if returns is not None else []) + parameters + rest,
            name=self._text(name_node) if name_node is not None else None,
            type_name=self._type_name(return_node) if return_node is not None else None,
            keyword=keyword,
            modifiers=frozenset(self._modifiers(cst)),
            arity=arity,
            name_location=self._location(name_node) if name_node is not None else None,
        )

    def _parameter_list(self, cst: Node) -> List[SyntaxNode]:
        return [self._parameter(child) for child in cst.named_children if child.type == 'parameter']

    def _parameter(self, cst: Node) -> SyntaxNode:
        name_node = cst.child_by_field_name('name')
        type_node = cst.child_by_field_name('type')
        if type_node is None:
            candidate = self._find_type_child(cst, exclude=(name_node,))
            # a lone identifier is the parameter name of an implicitly typed lambda
            if candidate is not None and name_node is not None:
                type_node = candidate
        skip = {n.id for n in (name_node, type_node) if n is not None}

        modifiers = set()
        attributes, rest = [], []
        for child in cst.children:
            if child.id in skip:
                continue
            if not child.is_named:
                if child.type in PARAMETER_MODIFIERS:
                    modifiers.add(child.type)
                continue
            if child.type in ('modifier', 'parameter_modifier', 'this'):
                modifiers.add(self._text(child).strip())
            elif child.type == 'attribute_list':
                attributes.extend(self._attribute_list(child))
            else:
                rest.extend(self._lower_many(child))

        return SyntaxNode(
            NodeKind.PARAMETER,
            self._location(cst),
            attributes + self._nested_type_references(type_node) + rest,
            name=self._text(name_node) if name_node is not None else None,
            type_name=self._type_name(type_node) if type_node is not None else None,
            modifiers=frozenset(modifiers),
        )

    def _property(self, cst: Node) -> SyntaxNode:
        name_node = cst.child_by_field_name('name')
        type_node = cst.child_by_field_name('type') or self._find_type_child(cst, exclude=(name_node,))
        skip = {n.id for n in (name_node, type_node) if n is not None}

        attributes, rest = [], []
        for child in cst.named_children:
            if child.id in skip or child.type == 'modifier':
                continue
            if child.type == 'attribute_list':
                attributes.extend(self._attribute_list(child))
            else:
                rest.extend(self._lower_many(child))

        return SyntaxNode(
            NodeKind.PROPERTY,
            self._location(cst),
            attributes + self._nested_type_references(type_node) + rest,
            name=self._text(name_node),
            type_name=self._type_name(type_node),
            modifiers=frozenset(self._modifiers(cst)),
            declared_names=(self._text(name_node),) if name_node is not None else (),
            name_location=self._location(name_node) if name_node is not None else None,
        )

    def _variable_parts(self, declaration: Node):
        type_node = declaration.child_by_field_name('type') or self._find_type_child(declaration)
        declarators = []
        for child in declaration.named_children:
            if child.type != 'variable_declarator':
                continue
            name_node = child.child_by_field_name('name')
            if name_node is None:
                name_node = next((c for c in child.named_children if c.type == 'identifier'), None)
            initializer = self._lower_all(
                c for c in child.named_children
                if name_node is None or c.id != name_node.id
            )
            declarators.append(SyntaxNode(
                NodeKind.DECLARATOR,
                self._location(child),
                initializer,
                name=self._text(name_node),
            ))
        return type_node, declarators

    def _field(self, cst: Node) -> SyntaxNode:
        declaration = next((c for c in cst.named_children if c.type == 'variable_declaration'), None)
        attributes = []
        for child in cst.named_children:
            if child.type == 'attribute_list':
                attributes.extend(self._attribute_list(child))

        type_node, declarators = (None, [])
        if declaration is not None:
            type_node, declarators = self._variable_parts(declaration)

        names = tuple(d.name for d in declarators if d.name)
        return SyntaxNode(
            NodeKind.FIELD,
            self._location(cst),
            attributes + self._nested_type_references(type_node) + declarators,
            name=names[0] if names else None,
            type_name=self._type_name(type_node),
            keyword='event' if cst.type == 'event_field_declaration' else None,
            modifiers=frozenset(self._modifiers(cst)),
            declared_names=names,
        )

    def _local_declaration(self, cst: Node) -> SyntaxNode:
        type_node, declarators = self._variable_parts(cst)
        ref = self._type_reference(type_node, 'type')
        if ref is None and self._is_implicit(type_node):
            # bound later to the type of the initializer
            ref = SyntaxNode(NodeKind.TYPE_REFERENCE, self._location(type_node), name='var', role='implicit')
        return SyntaxNode(
            NodeKind.LOCAL_DECLARATION,
            self._location(cst),
            ([ref] if ref is not None else []) + declarators,
            type_name=self._type_name(type_node),
            declared_names=tuple(d.name for d in declarators if d.name),
        )

    def _foreach(self, cst: Node) -> SyntaxNode:
        type_node = cst.child_by_field_name('type')
        left = cst.child_by_field_name('left')
        if type_node is None or left is None or left.type != 'identifier':
            return self._generic(cst)

        ref = self._type_reference(type_node, 'type')
        variable = SyntaxNode(
            NodeKind.LOCAL_DECLARATION,
            self._location(type_node),
            [ref] if ref is not None else [],
            type_name=self._type_name(type_node),
            declared_names=(self._text(left),),
        )
        rest = self._lower_all(
            c for c in cst.named_children if c.id not in (type_node.id, left.id)
        )
        return SyntaxNode(NodeKind.OTHER, self._location(cst), [variable] + rest, keyword=cst.type)

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _arguments(self, argument_list: Optional[Node]) -> List[SyntaxNode]:
        if argument_list is None:
            return []
        arguments = []
        for child in argument_list.named_children:
            for lowered in self._lower_many(child):
                lowered.role = 'argument'
                arguments.append(lowered)
        return arguments

    def _invocation(self, cst: Node) -> SyntaxNode:
        function = cst.child_by_field_name('function')
        arguments = cst.child_by_field_name('arguments')
        if function is None and cst.named_children:
            function = cst.named_children[0]
        if arguments is None:
            arguments = next((c for c in cst.named_children if c.type == 'argument_list'), None)

        callee = self._lower_many(function) if function is not None else []
        for node in callee:
            node.role = 'callee'
        return SyntaxNode(
            NodeKind.INVOCATION,
            self._location(cst),
            callee + self._arguments(arguments),
        )

    def _type_arguments_of(self, name_node: Node) -> List[SyntaxNode]:
        refs = []
        for arg in self._type_argument_nodes(name_node):
            ref = self._type_reference(arg, 'type_argument')
            if ref is not None:
                refs.append(ref)
        return refs

    def _simple_name(self, name_node: Node) -> str:
        if name_node.type == 'generic_name':
            identifier = name_node.child_by_field_name('name')
            if identifier is None:
                identifier = next((c for c in name_node.named_children if c.type == 'identifier'), None)
            return self._text(identifier)
        return self._text(name_node)

    def _member_access(self, cst: Node) -> SyntaxNode:
        expression = cst.child_by_field_name('expression')
        name_node = cst.child_by_field_name('name')
        if (expression is None or name_node is None) and len(cst.named_children) >= 2:
            expression, name_node = cst.named_children[0], cst.named_children[-1]
        if name_node is None:
            return self._generic(cst)

        receiver = self._lower_many(expression) if expression is not None else []
        for node in receiver:
            node.role = 'receiver'
        return SyntaxNode(
            NodeKind.MEMBER_ACCESS,
            self._location(cst),
            receiver + self._type_arguments_of(name_node),
            name=self._simple_name(name_node),
            name_location=self._location(name_node),
        )

    def _identifier(self, cst: Node) -> SyntaxNode:
        return SyntaxNode(
            NodeKind.IDENTIFIER,
            self._location(cst),
            self._type_arguments_of(cst),
            name=self._simple_name(cst),
        )

    def _qualified_name(self, cst: Node) -> Optional[SyntaxNode]:
        return self._type_reference(cst, 'type')

    def _this(self, cst: Node) -> SyntaxNode:
        return SyntaxNode(NodeKind.THIS, self._location(cst))

    def _object_creation(self, cst: Node) -> SyntaxNode:
        type_node = cst.child_by_field_name('type') or self._find_type_child(cst)
        arguments = cst.child_by_field_name('arguments')
        ref = self._type_reference(type_node, 'type')
        rest = self._lower_all(
            c for c in cst.named_children
            if (type_node is None or c.id != type_node.id) and (arguments is None or c.id != arguments.id)
        )
        type_name = self._type_name(type_node)
        return SyntaxNode(
            NodeKind.OBJECT_CREATION,
            self._location(cst),
            ([ref] if ref is not None else []) + self._arguments(arguments) + rest,
            name=type_name.name if type_name else None,
            type_name=type_name,
        )

    def _assigned_members(self, cst: Node) -> List[SyntaxNode]:
        """Lower ``Member = value`` pairs; the member name is not a reference."""
        lowered = []
        for child in cst.children:
            nodes = self._lower_many(child)
            following = child.next_sibling
            if child.type == 'identifier' and following is not None and following.type == '=':
                for node in nodes:
                    node.role = 'initializer_member'
            lowered.extend(nodes)
        return lowered

    def _initializer(self, cst: Node) -> SyntaxNode:
        children = []
        for child in cst.named_children:
            if child.type in ('assignment_expression', 'simple_assignment_expression'):
                children.append(SyntaxNode(
                    NodeKind.OTHER,
                    self._location(child),
                    self._assigned_members(child),
                    keyword=child.type,
                ))
            else:
                children.extend(self._lower_many(child))
        return SyntaxNode(NodeKind.OTHER, self._location(cst), children, keyword=cst.type)

    def _with_initializer(self, cst: Node) -> SyntaxNode:
        return SyntaxNode(NodeKind.OTHER, self._location(cst), self._assigned_members(cst), keyword=cst.type)

    def _typeof(self, cst: Node) -> SyntaxNode:
        type_node = cst.child_by_field_name('type') or self._find_type_child(cst)
        ref = self._type_reference(type_node, 'type')
        type_name = self._type_name(type_node)
        return SyntaxNode(
            NodeKind.TYPEOF,
            self._location(cst),
            [ref] if ref is not None else [],
            name=type_name.name if type_name else None,
            type_name=type_name,
        )

    def _cast(self, cst: Node) -> SyntaxNode:
        type_node = cst.child_by_field_name('type')
        value = cst.child_by_field_name('value')
        if type_node is None or value is None:
            return self._generic(cst)
        ref = self._type_reference(type_node, 'type')
        type_name = self._type_name(type_node)
        return SyntaxNode(
            NodeKind.CAST,
            self._location(cst),
            ([ref] if ref is not None else []) + self._lower_many(value),
            name=type_name.name if type_name else None,
            type_name=type_name,
            keyword='cast',
        )

    def _as(self, cst: Node) -> SyntaxNode:
        left = cst.child_by_field_name('left')
        right = cst.child_by_field_name('right')
        if left is None or right is None or right.type not in TYPE_NODE_TYPES:
            return self._generic(cst)
        ref = self._type_reference(right, 'type')
        type_name = self._type_name(right)
        return SyntaxNode(
            NodeKind.CAST,
            self._location(cst),
            ([ref] if ref is not None else []) + self._lower_many(left),
            name=type_name.name if type_name else None,
            type_name=type_name,
            keyword='as',
        )


def lower_tree(tree: Tree, source: bytes, path: str = "<memory>") -> SyntaxTree:
    """Convenience wrapper: lower a tree-sitter tree parsed from ``source``."""
    return CSharpLowering(source, path).lower(tree)

"""Mindbox1027: calls into code reserved for last-resort use."""
from typing import List, Optional, Tuple

from ..analyzer.binder import SemanticModel
from ..analyzer.syntax import NodeKind, SyntaxNode, SyntaxTree
from .base import AnalyzerRule, Diagnostic, DiagnosticDescriptor, Severity

MARKER_ATTRIBUTE = "LastResortUse"


class AvoidUsingMarkedWithLastResortUseRule(AnalyzerRule):
    """Flags invocations and object creations whose target, or the target's
    containing type, carries ``[LastResortUse]``."""

    descriptor = DiagnosticDescriptor(
        id="Mindbox1027",
        title="Avoid using symbols, marked with LastResortUse attribute",
        message_format="Avoid using symbols, marked with LastResortUse attribute",
        category="Usage",
        severity=Severity.ERROR,
        description="Avoid using symbols, marked with LastResortUse attribute",
    )

    def analyze(self, tree: SyntaxTree, model: SemanticModel) -> List[Diagnostic]:
        found = []
        for node in tree.nodes():
            if node.kind is NodeKind.INVOCATION:
                target = self._invoked(node, model)
            elif node.kind is NodeKind.OBJECT_CREATION:
                target = self._constructed(node, model)
            else:
                continue
            if target is None:
                continue
            name, attributes = target
            if MARKER_ATTRIBUTE in model.attribute_names(attributes):
                found.append(self.create_diagnostic(node.location, name))
        return found

    @staticmethod
    def _invoked(node: SyntaxNode, model: SemanticModel) -> Optional[Tuple[str, list]]:
        method = model.resolve_invocation(node)
        if method is None or method.declaration is None:
            return None
        attributes = method.declaration.children_of_kind(NodeKind.ATTRIBUTE)
        if method.containing_type is not None:
            attributes = attributes + model.attributes_of(method.containing_type)
        return method.name, attributes

    @staticmethod
    def _constructed(node: SyntaxNode, model: SemanticModel) -> Optional[Tuple[str, list]]:
        symbol = model.resolve_type_name(node.type_name, node)
        if symbol is None or not symbol.is_source:
            return None
        arguments = sum(1 for child in node.children if child.role == 'argument')
        attributes = list(model.attributes_of(symbol))
        for declaration in model.declarations_of(symbol):
            for member in declaration.children_of_kind(NodeKind.METHOD):
                if member.keyword == 'constructor' and \
                        len(member.children_of_kind(NodeKind.PARAMETER)) == arguments:
                    attributes.extend(member.children_of_kind(NodeKind.ATTRIBUTE))
        return symbol.name, attributes

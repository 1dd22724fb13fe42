"""Mindbox2003: ``[DataMember]`` members require ``[DataContract]`` on the type or a base."""
from typing import List, Set

from ..analyzer.binder import SemanticModel
from ..analyzer.symbols import TypeSymbol
from ..analyzer.syntax import NodeKind, SyntaxTree
from .base import AnalyzerRule, Diagnostic, DiagnosticDescriptor, Severity


class DataContractRequireIfUsingDataMemberRule(AnalyzerRule):

    descriptor = DiagnosticDescriptor(
        id="Mindbox2003",
        title="DataContract attribute must be specified on a class or on its parent "
              "if property or field has DataMember attribute",
        message_format="Specify DataContract attribute on a class or on its parent "
                       "since you have DataMember attribute on property or field",
        category="Usage",
        severity=Severity.WARNING,
        description="DataContract attribute must be specified on a class or on its parent "
                    "if you have at least one DataMember attribute on field or property",
    )

    def analyze(self, tree: SyntaxTree, model: SemanticModel) -> List[Diagnostic]:
        offenders: List[TypeSymbol] = []
        for member in tree.nodes():
            if member.kind not in (NodeKind.PROPERTY, NodeKind.FIELD):
                continue
            owner = member.parent
            if owner is None or owner.kind is not NodeKind.TYPE_DECLARATION:
                continue
            if "DataMember" not in model.attribute_names(member.children_of_kind(NodeKind.ATTRIBUTE)):
                continue
            symbol = model.declared_symbol(owner)
            if symbol is None or symbol in offenders:
                continue
            if "DataContract" not in self._hierarchy_attributes(symbol, model):
                offenders.append(symbol)

        found = []
        for symbol in offenders:
            for declaration in model.declarations_of(symbol):
                found.append(self.create_diagnostic(declaration.name_location or declaration.location))
        return found

    @staticmethod
    def _hierarchy_attributes(symbol: TypeSymbol, model: SemanticModel) -> Set[str]:
        """Attribute names on the type and its base classes (interfaces excluded)."""
        names = model.attribute_names(model.attributes_of(symbol))
        for base in model.ancestors(symbol):
            if base.kind == 'interface':
                continue
            names |= model.attribute_names(model.attributes_of(base))
        return names

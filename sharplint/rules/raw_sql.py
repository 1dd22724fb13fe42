"""Mindbox2004: raw ADO.NET command usage outside provider-specific classes."""
from typing import List, Optional

from ..analyzer.binder import SemanticModel
from ..analyzer.symbols import TypeSymbol
from ..analyzer.syntax import NodeKind, SyntaxNode, SyntaxTree
from .base import AnalyzerRule, Diagnostic, DiagnosticDescriptor, Severity

PROVIDER_PREFIXES = ("SqlServer", "Postgres")
DB_COMMAND_INTERFACE = "IDbCommand"
DB_COMMAND_NAMESPACE = "System.Data"


class ForbidRawSqlOutsideDbProviderSpecificCodeRule(AnalyzerRule):

    descriptor = DiagnosticDescriptor(
        id="Mindbox2004",
        title="Forbids raw sql usage outside database provider-specific classes.",
        message_format="Dont use raw sql outside database provider-specific classes. Extract the provider-specific "
                       "code with raw SQL queries into separate classes and configure them through Dependency "
                       "Injection. The class names should start either with 'SqlServer' or 'Postgres'.",
        category="Usage",
        severity=Severity.WARNING,
        description="This rule is intended to prevent the use of raw SQL in shared code when working with a "
                    "solution that uses the Entity Framework and supports SQL Server and PostgreSQL databases. "
                    "Raw SQL is only valid in database provider-specific classes whose names begin with "
                    "'SqlServer' or 'Postgres'.",
        enabled_by_default=False,
    )

    def analyze(self, tree: SyntaxTree, model: SemanticModel) -> List[Diagnostic]:
        found = []
        for member_access in tree.nodes_of_kind(NodeKind.MEMBER_ACCESS):
            if self._containing_class_name(member_access).startswith(PROVIDER_PREFIXES):
                continue
            receiver = next((c for c in member_access.children if c.role == 'receiver'), None)
            if receiver is None:
                continue
            if self._is_db_command(model.type_of(receiver), model):
                found.append(self.create_diagnostic(member_access.location))
        return found

    @staticmethod
    def _containing_class_name(node: SyntaxNode) -> str:
        for ancestor in node.ancestors():
            if ancestor.kind is NodeKind.TYPE_DECLARATION and ancestor.keyword in ('class', 'record'):
                return ancestor.name or ""
        return ""

    @staticmethod
    def _is_db_command(symbol: Optional[TypeSymbol], model: SemanticModel) -> bool:
        if symbol is None:
            return False
        for candidate in {symbol} | model.ancestors(symbol):
            if candidate.name == DB_COMMAND_INTERFACE and candidate.namespace in ("", DB_COMMAND_NAMESPACE):
                return True
        return False

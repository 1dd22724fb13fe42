"""Mindbox2006: direct topic/partition creation through the Kafka admin client."""
from typing import List

from ..analyzer.binder import SemanticModel
from ..analyzer.syntax import NodeKind, SyntaxTree
from .base import AnalyzerRule, Diagnostic, DiagnosticDescriptor, Severity

FORBIDDEN_METHODS = frozenset({"CreateTopicsAsync", "CreatePartitionsAsync"})


class KafkaAdminClientCreateTopicsAndPartitionsProhibitedRule(AnalyzerRule):

    descriptor = DiagnosticDescriptor(
        id="Mindbox2006",
        title="Forbids the use of IAdminClient.CreateTopicsAsync and CreatePartitionsAsync.",
        message_format="Cannot use IAdminClient.CreateTopicsAsync or CreatePartitionsAsync. "
                       "Use IKafkaTopicsManager from Mindbox.Kafka to account for partition limits and ensure SLO.",
        category="Usage",
        severity=Severity.WARNING,
        description="Using IAdminClient.CreateTopicsAsync and CreatePartitionsAsync is prohibited because these "
                    "methods do not enforce partition limits required for SLO. Instead, use IKafkaTopicsManager "
                    "from Mindbox.Kafka.",
    )

    def analyze(self, tree: SyntaxTree, model: SemanticModel) -> List[Diagnostic]:
        found = []
        for invocation in tree.nodes_of_kind(NodeKind.INVOCATION):
            method = model.resolve_invocation(invocation)
            if method is None or method.name not in FORBIDDEN_METHODS:
                continue
            if method.containing_type is not None and method.containing_type.name == "IAdminClient":
                found.append(self.create_diagnostic(invocation.location))
        return found

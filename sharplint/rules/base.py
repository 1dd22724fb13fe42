"""Shared rule infrastructure: severities, descriptors, diagnostics."""
from dataclasses import dataclass
from enum import Enum
from typing import List

from ..analyzer.binder import SemanticModel
from ..analyzer.syntax import Location, SyntaxTree


class Severity(Enum):
    HIDDEN = "hidden"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class DiagnosticDescriptor:
    """Static description of what a rule reports."""
    id: str
    title: str
    message_format: str
    category: str
    severity: Severity
    description: str = ""
    enabled_by_default: bool = True


@dataclass(frozen=True)
class Diagnostic:
    """One reported finding."""
    rule_id: str
    message: str
    severity: Severity
    location: Location

    def sort_key(self):
        return (self.location.line, self.location.column, self.rule_id)

    def to_dict(self) -> dict:
        return {
            'rule_id': self.rule_id,
            'message': self.message,
            'severity': self.severity.value,
            'path': self.location.path,
            'line': self.location.line,
            'column': self.location.column,
            'end_line': self.location.end_line,
            'end_column': self.location.end_column,
            'start_byte': self.location.start_byte,
            'end_byte': self.location.end_byte,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Diagnostic':
        return cls(
            rule_id=data['rule_id'],
            message=data['message'],
            severity=Severity(data['severity']),
            location=Location(
                path=data['path'],
                line=data['line'],
                column=data['column'],
                end_line=data.get('end_line', 0),
                end_column=data.get('end_column', 0),
                start_byte=data.get('start_byte', 0),
                end_byte=data.get('end_byte', 0),
            ),
        )


class AnalyzerRule:
    """Base class for rules. Subclasses set ``descriptor`` and implement ``analyze``."""

    descriptor: DiagnosticDescriptor

    @property
    def rule_id(self) -> str:
        return self.descriptor.id

    def create_diagnostic(self, location: Location, *arguments) -> Diagnostic:
        return Diagnostic(
            rule_id=self.descriptor.id,
            message=self.descriptor.message_format.format(*arguments),
            severity=self.descriptor.severity,
            location=location,
        )

    def analyze(self, tree: SyntaxTree, model: SemanticModel) -> List[Diagnostic]:
        """Analyze one compilation unit.

        Args:
            tree: Lowered compilation unit
            model: Semantic model bound to ``tree``

        Returns:
            Diagnostics in discovery order
        """
        raise NotImplementedError

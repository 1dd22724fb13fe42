"""MB1050: classes that are unused, DI-registered only, or used exactly once.

Flow per compilation unit:

1. ``SymbolRegistry`` records every eligible class declaration in a
   ``SymbolLedger`` with state ``UNUSED``.
2. One pre-order walk over the tree classifies each node with
   ``ReferenceClassifier`` and folds the reference into the symbol's state.
   A symbol proven to have multiple genuine usages is tombstoned.
3. Every entry still alive is reported at its declaration.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from ..analyzer.binder import SemanticModel
from ..analyzer.policy_registry import ExclusionPolicy
from ..analyzer.symbols import TypeSymbol
from ..analyzer.syntax import Location, NodeKind, SyntaxNode, SyntaxTree
from .base import AnalyzerRule, Diagnostic, DiagnosticDescriptor, Severity
from .reference_classifier import ReferenceClassifier


class UsageState(Enum):
    UNUSED = "unused"
    ONLY_DI_USAGE = "only_di_usage"
    SINGLE_NON_DI_USAGE = "single_non_di_usage"
    MULTIPLE_USAGES = "multiple_usages"


def fold(state: UsageState, is_di_usage: bool) -> Tuple[UsageState, bool]:
    """Advance a usage state by one reference.

    Returns:
        Tuple of (new_state, keep). ``keep`` is False once the symbol has
        multiple genuine usages; it must not be folded again after that.

    Raises:
        ValueError: If called with ``MULTIPLE_USAGES``
    """
    if state is UsageState.UNUSED:
        if is_di_usage:
            return UsageState.ONLY_DI_USAGE, True
        return UsageState.SINGLE_NON_DI_USAGE, True
    if state is UsageState.ONLY_DI_USAGE:
        if is_di_usage:
            return UsageState.ONLY_DI_USAGE, True
        return UsageState.MULTIPLE_USAGES, False
    if state is UsageState.SINGLE_NON_DI_USAGE:
        return UsageState.MULTIPLE_USAGES, False
    raise ValueError(f"No transition out of {state.name}")


@dataclass
class TrackedSymbol:
    """Ledger entry for one class symbol."""
    entry_id: int
    symbol: TypeSymbol
    location: Location
    state: UsageState = UsageState.UNUSED
    removed: bool = False


class SymbolLedger:
    """Arena of tracked symbols indexed by a stable integer id.

    Removal sets a tombstone flag instead of mutating the index, so entries
    can be dropped while the tree walk is in progress.
    """

    def __init__(self):
        self._entries: List[TrackedSymbol] = []
        self._index: Dict[TypeSymbol, int] = {}
        self._live = 0

    def add(self, symbol: TypeSymbol, location: Location) -> TrackedSymbol:
        """Track ``symbol``; a second declaration of the same symbol keeps the first location."""
        entry_id = self._index.get(symbol)
        if entry_id is not None:
            return self._entries[entry_id]
        entry = TrackedSymbol(len(self._entries), symbol, location)
        self._entries.append(entry)
        self._index[symbol] = entry.entry_id
        self._live += 1
        return entry

    def get(self, symbol: TypeSymbol) -> Optional[TrackedSymbol]:
        """Live entry for ``symbol`` (None if untracked or tombstoned)."""
        entry_id = self._index.get(symbol)
        if entry_id is None:
            return None
        entry = self._entries[entry_id]
        return None if entry.removed else entry

    def record(self, symbol: TypeSymbol, is_di_usage: bool) -> Optional[UsageState]:
        """Fold one reference into the symbol's state.

        Returns:
            The new state, or None when the symbol is not (or no longer) tracked
        """
        entry = self.get(symbol)
        if entry is None:
            return None
        entry.state, keep = fold(entry.state, is_di_usage)
        if not keep:
            entry.removed = True
            self._live -= 1
        return entry.state

    def survivors(self) -> Iterator[TrackedSymbol]:
        """Live entries in registration order."""
        return (entry for entry in self._entries if not entry.removed)

    def __contains__(self, symbol: TypeSymbol) -> bool:
        return self.get(symbol) is not None

    def __len__(self) -> int:
        return self._live


class SymbolRegistry:
    """Decides which class declarations are tracked."""

    def __init__(self, model: SemanticModel, policy: ExclusionPolicy, ledger: Optional[SymbolLedger] = None):
        self.model = model
        self.policy = policy
        self.ledger = ledger if ledger is not None else SymbolLedger()

    def register(self, declaration: SyntaxNode) -> Optional[TrackedSymbol]:
        """Track a class declaration if it is eligible.

        Only plain classes qualify; attributed classes, framework entry
        points and excluded namespaces are skipped.
        """
        if declaration.kind is not NodeKind.TYPE_DECLARATION or declaration.keyword != 'class':
            return None
        symbol = self.model.declared_symbol(declaration)
        if symbol is None:
            return None
        if self.model.attributes_of(symbol):
            return None
        excluded, _reason = self.policy.is_excluded(symbol.name, symbol.namespace)
        if excluded:
            return None
        return self.ledger.add(symbol, declaration.location)

    def build(self, tree: SyntaxTree) -> SymbolLedger:
        for declaration in tree.nodes_of_kind(NodeKind.TYPE_DECLARATION):
            self.register(declaration)
        return self.ledger


class DiagnosticEmitter:
    """Turns surviving ledger entries into diagnostics."""

    def __init__(self, rule: AnalyzerRule):
        self.rule = rule

    def emit(self, ledger: SymbolLedger) -> List[Diagnostic]:
        return [
            self.rule.create_diagnostic(entry.location, entry.symbol.name)
            for entry in ledger.survivors()
        ]


class UnusedAndSingleUsageClassesRule(AnalyzerRule):
    """Flags classes with no, DI-only, or a single usage."""

    descriptor = DiagnosticDescriptor(
        id="MB1050",
        title="Class usage analysis",
        message_format="Class '{0}' is never used or used only once or used only registered in DI but not used elsewhere",
        category="Usage",
        severity=Severity.WARNING,
        description="Classes that are never used, used only once, or only registered in "
                    "dependency injection are candidates for removal or inlining.",
    )

    def __init__(self, policy: Optional[ExclusionPolicy] = None):
        self.policy = policy if policy is not None else ExclusionPolicy()

    def analyze(self, tree: SyntaxTree, model: SemanticModel) -> List[Diagnostic]:
        ledger = SymbolRegistry(model, self.policy).build(tree)
        if not ledger:
            return []

        classifier = ReferenceClassifier(model, self.policy, ledger.__contains__)
        for node in tree.nodes():
            reference = classifier.classify(node)
            if reference is None:
                continue
            ledger.record(reference.symbol, reference.is_di_usage)
            if not ledger:
                # every tracked class has multiple usages
                return []

        return DiagnosticEmitter(self).emit(ledger)

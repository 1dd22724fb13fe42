"""Classify syntax nodes as references to tracked class symbols."""
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Set

from ..analyzer.binder import SemanticModel
from ..analyzer.policy_registry import ExclusionPolicy
from ..analyzer.symbols import TypeSymbol
from ..analyzer.syntax import NodeKind, SyntaxNode


@dataclass(frozen=True)
class Reference:
    """One observed occurrence of a tracked symbol.

    ``consumed`` is the node id of the type reference a DI registration took
    its implementation type from; that node is not counted a second time.
    """
    symbol: TypeSymbol
    is_di_usage: bool
    consumed: Optional[int] = None


class ReferenceClassifier:
    """Maps one node to at most one ``Reference``.

    Stateful within one compilation unit: nodes consumed by a DI registration
    are remembered so the pre-order walk skips them when it gets there.
    """

    def __init__(self, model: SemanticModel, policy: ExclusionPolicy,
                 is_tracked: Callable[[TypeSymbol], bool]):
        self.model = model
        self.policy = policy
        self.is_tracked = is_tracked
        self._consumed: Set[int] = set()
        self._dispatch: Dict[NodeKind, Callable[[SyntaxNode], Optional[Reference]]] = {
            NodeKind.INVOCATION: self._invocation,
            NodeKind.TYPE_REFERENCE: self._type_reference,
            NodeKind.IDENTIFIER: self._named_type,
            NodeKind.MEMBER_ACCESS: self._named_type,
            NodeKind.PARAMETER: self._declared_type,
            NodeKind.PROPERTY: self._declared_type,
            NodeKind.FIELD: self._declared_type,
            NodeKind.ATTRIBUTE: self._attribute,
        }

    def classify(self, node: SyntaxNode) -> Optional[Reference]:
        handler = self._dispatch.get(node.kind)
        if handler is None or node.node_id in self._consumed:
            return None
        return handler(node)

    def _regular(self, symbol: Optional[TypeSymbol]) -> Optional[Reference]:
        if symbol is None or not self.is_tracked(symbol):
            return None
        return Reference(symbol, is_di_usage=False)

    def _type_reference(self, node: SyntaxNode) -> Optional[Reference]:
        return self._regular(self.model.resolve_type_reference(node))

    def _named_type(self, node: SyntaxNode) -> Optional[Reference]:
        return self._regular(self.model.referenced_type(node))

    def _declared_type(self, node: SyntaxNode) -> Optional[Reference]:
        return self._regular(self.model.declared_type(node))

    def _attribute(self, node: SyntaxNode) -> Optional[Reference]:
        return self._regular(self.model.resolve_attribute(node))

    # ------------------------------------------------------------------
    # DI registrations
    # ------------------------------------------------------------------

    def is_registration(self, node: SyntaxNode) -> bool:
        """Whether an INVOCATION is a container registration call."""
        method = self.model.resolve_invocation(node)
        if method is None or not method.is_extension or not method.parameters:
            return False
        if not self.policy.is_di_container(method.parameters[0].type_display):
            return False
        return self.policy.is_registration_method(method.name)

    @staticmethod
    def registered_type_node(node: SyntaxNode) -> Optional[SyntaxNode]:
        """Type reference naming the implementation a registration call registers.

        ``AddScoped<IBar, Bar>()`` registers ``Bar`` (last type argument);
        ``AddScoped(typeof(IBar), typeof(Bar))`` registers ``Bar`` (last of the
        leading ``typeof`` arguments).
        """
        callee = next((c for c in node.children if c.role == 'callee'), None)
        if callee is not None:
            type_arguments = [
                c for c in callee.children
                if c.kind is NodeKind.TYPE_REFERENCE and c.role == 'type_argument'
            ]
            if type_arguments:
                return type_arguments[-1]

        registered = None
        for argument in node.children:
            if argument.role != 'argument':
                continue
            if argument.kind is not NodeKind.TYPEOF:
                break
            literal = argument.children_of_kind(NodeKind.TYPE_REFERENCE)
            if not literal:
                break
            registered = literal[0]
        return registered

    def _invocation(self, node: SyntaxNode) -> Optional[Reference]:
        if not self.is_registration(node):
            return None
        target = self.registered_type_node(node)
        if target is None:
            return None
        self._consumed.add(target.node_id)
        symbol = self.model.resolve_type_reference(target)
        if symbol is None or not self.is_tracked(symbol):
            return None
        return Reference(symbol, is_di_usage=True, consumed=target.node_id)

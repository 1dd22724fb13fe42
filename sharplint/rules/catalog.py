"""Registry of the available rules."""
from typing import Dict, Iterable, List, Optional, Type

from ..analyzer.policy_registry import ExclusionPolicy
from .base import AnalyzerRule
from .data_contract import DataContractRequireIfUsingDataMemberRule
from .kafka_admin_client import KafkaAdminClientCreateTopicsAndPartitionsProhibitedRule
from .last_resort_use import AvoidUsingMarkedWithLastResortUseRule
from .raw_sql import ForbidRawSqlOutsideDbProviderSpecificCodeRule
from .unused_classes import UnusedAndSingleUsageClassesRule

RULE_TYPES: Dict[str, Type[AnalyzerRule]] = {
    rule_type.descriptor.id: rule_type
    for rule_type in (
        UnusedAndSingleUsageClassesRule,
        AvoidUsingMarkedWithLastResortUseRule,
        DataContractRequireIfUsingDataMemberRule,
        ForbidRawSqlOutsideDbProviderSpecificCodeRule,
        KafkaAdminClientCreateTopicsAndPartitionsProhibitedRule,
    )
}


def validate_rule_ids(rule_ids: Iterable[str]):
    """Raises ValueError naming the first unknown rule id."""
    for rule_id in rule_ids:
        if rule_id not in RULE_TYPES:
            known = ", ".join(sorted(RULE_TYPES))
            raise ValueError(f"Unknown rule id: {rule_id} (known: {known})")


def build_rules(policy: Optional[ExclusionPolicy] = None,
                enable: Iterable[str] = (),
                disable: Iterable[str] = ()) -> List[AnalyzerRule]:
    """Instantiate the active rules.

    A rule runs when it is enabled by default or explicitly enabled, and is
    not disabled. Disabling wins over enabling.

    Raises:
        ValueError: If ``enable`` or ``disable`` names an unknown rule
    """
    enable, disable = set(enable), set(disable)
    validate_rule_ids(enable | disable)

    rules = []
    for rule_id, rule_type in RULE_TYPES.items():
        if rule_id in disable:
            continue
        if not (rule_type.descriptor.enabled_by_default or rule_id in enable):
            continue
        if rule_type is UnusedAndSingleUsageClassesRule:
            rules.append(rule_type(policy))
        else:
            rules.append(rule_type())
    return rules

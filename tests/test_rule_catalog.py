"""Tests for rule selection."""
import pytest

from sharplint.analyzer.policy_registry import ExclusionPolicy
from sharplint.rules.catalog import RULE_TYPES, build_rules, validate_rule_ids
from sharplint.rules.unused_classes import UnusedAndSingleUsageClassesRule


def ids(rules):
    return sorted(rule.rule_id for rule in rules)


def test_defaults_skip_opt_in_rules():
    assert ids(build_rules()) == ["MB1050", "Mindbox1027", "Mindbox2003", "Mindbox2006"]


def test_enable_opt_in_rule():
    assert "Mindbox2004" in ids(build_rules(enable=["Mindbox2004"]))


def test_disable_wins_over_enable():
    rules = build_rules(enable=["Mindbox2004"], disable=["Mindbox2004", "MB1050"])
    assert ids(rules) == ["Mindbox1027", "Mindbox2003", "Mindbox2006"]


def test_unknown_ids_are_rejected():
    with pytest.raises(ValueError, match="MB0000"):
        build_rules(disable=["MB0000"])
    with pytest.raises(ValueError):
        validate_rule_ids(["MB1050", "nope"])


def test_policy_reaches_unused_classes_rule():
    policy = ExclusionPolicy(excluded_names=frozenset({"Keep"}))
    rule = next(r for r in build_rules(policy) if isinstance(r, UnusedAndSingleUsageClassesRule))
    assert rule.policy is policy


def test_descriptors_are_keyed_by_id():
    for rule_id, rule_type in RULE_TYPES.items():
        assert rule_type.descriptor.id == rule_id
        assert rule_type.descriptor.category == "Usage"

"""Shared fixtures: an engine over tree-sitter parsed C# and message helpers."""
import re

import pytest

from sharplint.analyzer.engine import AnalysisEngine
from sharplint.analyzer.external_catalog import ExternalApiCatalog
from sharplint.analyzer.policy_registry import ExclusionPolicy
from sharplint.rules.unused_classes import UnusedAndSingleUsageClassesRule

CLASS_NAME = re.compile(r"Class '([^']+)'")


def reported_classes(diagnostics):
    """Class names named by MB1050 diagnostics."""
    names = []
    for diagnostic in diagnostics:
        if diagnostic.rule_id == "MB1050":
            names.append(CLASS_NAME.search(diagnostic.message).group(1))
    return names


@pytest.fixture
def catalog():
    """The bundled external API catalog."""
    return ExternalApiCatalog()


@pytest.fixture
def analyze(catalog):
    """Run rules (MB1050 by default) over C# source text."""
    def run(code, rules=None):
        if rules is None:
            rules = [UnusedAndSingleUsageClassesRule(ExclusionPolicy())]
        engine = AnalysisEngine(rules, catalog=catalog)
        return engine.analyze_source(code, "Test0.cs")
    return run

"""Tests for the exclusion policy and its JSON loading."""
import json

import pytest

from sharplint.analyzer.policy_registry import DEFAULT_POLICY_PATH, ExclusionPolicy


@pytest.fixture
def policy():
    return ExclusionPolicy()


class TestIsExcluded:

    @pytest.mark.parametrize("name", [
        "Program", "Startup", "ServiceCollectionExtensions", "WebApplicationBuilder", "IWebHostBuilder",
    ])
    def test_entry_point_names(self, policy, name):
        excluded, reason = policy.is_excluded(name, "App")
        assert excluded
        assert reason == f"Exact match: {name}"

    def test_extensions_suffix(self, policy):
        excluded, reason = policy.is_excluded("StringExtensions", "App")
        assert excluded
        assert "Suffix" in reason

    @pytest.mark.parametrize("namespace", ["Microsoft.Extensions.Foo", "System.Linq"])
    def test_framework_namespaces(self, policy, namespace):
        assert policy.is_excluded("Helper", namespace)[0]

    @pytest.mark.parametrize("namespace", ["App.Configuration", "Shop.Infrastructure.Db", "Api.Startup"])
    def test_wiring_namespaces(self, policy, namespace):
        assert policy.is_excluded("Helper", namespace)[0]

    @pytest.mark.parametrize("name, namespace", [
        ("OrderService", "App"),
        ("Helper", ""),
        ("Helper", "Microsoft"),
        ("Helper", "MySystem.Core"),
        ("ProgramRunner", "App"),
    ])
    def test_regular_classes_are_tracked(self, policy, name, namespace):
        assert policy.is_excluded(name, namespace) == (False, "")


class TestRegistrationMethods:

    @pytest.mark.parametrize("name", [
        "AddScoped", "AddSingleton", "AddTransient", "TryAddScoped",
        "AddKeyedSingleton", "AddService", "TryAddService",
    ])
    def test_registration_names(self, policy, name):
        assert policy.is_registration_method(name)

    @pytest.mark.parametrize("name", ["AddLogging", "AddOptions", "Scoped", "RegisterScoped", "Add"])
    def test_other_names(self, policy, name):
        assert not policy.is_registration_method(name)

    def test_container_match_is_substring(self, policy):
        assert policy.is_di_container("Microsoft.Extensions.DependencyInjection.IServiceCollection")
        assert policy.is_di_container("IServiceCollection")
        assert not policy.is_di_container("IServiceProvider")
        assert not policy.is_di_container("")


class TestLoading:

    def test_bundled_policy_matches_defaults(self):
        assert DEFAULT_POLICY_PATH.exists()
        assert ExclusionPolicy.load() == ExclusionPolicy()

    def test_partial_file_keeps_defaults(self, tmp_path):
        policy_file = tmp_path / "policy.json"
        policy_file.write_text(json.dumps({"excluded_names": ["Bootstrap"]}), encoding="utf-8")

        policy = ExclusionPolicy.load(policy_file)

        assert policy.excluded_names == frozenset({"Bootstrap"})
        assert policy.excluded_suffixes == ("Extensions",)
        assert policy.is_excluded("Bootstrap", "App")[0]
        assert not policy.is_excluded("Program", "App")[0]

    def test_missing_file_uses_defaults(self, tmp_path, capsys):
        policy = ExclusionPolicy.load(tmp_path / "absent.json")
        assert policy == ExclusionPolicy()
        assert "[PolicyRegistry]" in capsys.readouterr().err

    def test_invalid_json_uses_defaults(self, tmp_path, capsys):
        policy_file = tmp_path / "policy.json"
        policy_file.write_text("{not json", encoding="utf-8")
        assert ExclusionPolicy.load(policy_file) == ExclusionPolicy()
        assert "Error decoding JSON" in capsys.readouterr().err

    def test_non_object_raises(self, tmp_path):
        policy_file = tmp_path / "policy.json"
        policy_file.write_text("[]", encoding="utf-8")
        with pytest.raises(ValueError, match="JSON object"):
            ExclusionPolicy.load(policy_file)

    def test_wrong_value_shape_raises(self):
        with pytest.raises(ValueError, match="excluded_suffixes"):
            ExclusionPolicy.from_dict({"excluded_suffixes": "Extensions"})

    def test_to_dict_round_trips(self):
        policy = ExclusionPolicy(excluded_suffixes=("Extensions", "Module"))
        assert ExclusionPolicy.from_dict(policy.to_dict()) == policy

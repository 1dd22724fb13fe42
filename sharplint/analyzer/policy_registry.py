"""Exclusion policy for the class usage rule.

The policy is plain data: which class declarations are never tracked, and
which invocations count as dependency-injection registrations. It is loaded
once from JSON and evaluated once per declaration.
"""
import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import FrozenSet, Optional, Tuple

from ..utils.logger import warn

DEFAULT_POLICY_PATH = Path(__file__).parent.parent / "policies" / "default_policy.json"

DEFAULT_EXCLUDED_NAMES = frozenset({
    "Program", "Startup", "ServiceCollectionExtensions", "ApplicationBuilder",
    "WebApplication", "WebApplicationBuilder", "HostBuilder", "IHostBuilder",
    "IApplicationBuilder", "IWebHostBuilder",
})


@dataclass(frozen=True)
class ExclusionPolicy:
    """Static exclusion and DI-registration configuration."""
    excluded_names: FrozenSet[str] = DEFAULT_EXCLUDED_NAMES
    excluded_suffixes: Tuple[str, ...] = ("Extensions",)
    excluded_namespace_prefixes: Tuple[str, ...] = ("Microsoft.", "System.")
    excluded_namespace_fragments: Tuple[str, ...] = (".Configuration", ".Infrastructure", ".Startup")
    di_container_type: str = "IServiceCollection"
    registration_prefixes: Tuple[str, ...] = ("Add", "TryAdd")
    lifetime_keywords: Tuple[str, ...] = ("Scoped", "Singleton", "Transient")
    registration_allow_list: FrozenSet[str] = field(
        default_factory=lambda: frozenset({"AddService", "TryAddService"})
    )

    def is_excluded(self, name: str, namespace: str) -> Tuple[bool, str]:
        """Check whether a class is out of scope for usage tracking.

        Args:
            name: Simple class name
            namespace: Containing namespace ('' for the global namespace)

        Returns:
            Tuple of (is_excluded, reason)
        """
        # Stage 1: framework entry points
        if name in self.excluded_names:
            return True, f"Exact match: {name}"

        # Stage 2: suffix match (extension method holders)
        for suffix in self.excluded_suffixes:
            if name.endswith(suffix):
                return True, f"Suffix match: {suffix}"

        # Stage 3: framework namespaces
        for prefix in self.excluded_namespace_prefixes:
            if namespace.startswith(prefix):
                return True, f"Namespace prefix: {prefix}"

        # Stage 4: wiring namespaces
        for fragment in self.excluded_namespace_fragments:
            if fragment in namespace:
                return True, f"Namespace fragment: {fragment}"

        return False, ""

    def is_registration_method(self, name: str) -> bool:
        """``AddScoped``, ``TryAddSingleton``, ``AddService``... but not ``AddLogging``."""
        if name in self.registration_allow_list:
            return True
        if not any(name.startswith(prefix) for prefix in self.registration_prefixes):
            return False
        return any(keyword in name for keyword in self.lifetime_keywords)

    def is_di_container(self, type_display: str) -> bool:
        """Whether a parameter type, as written or resolved, is the DI container."""
        return bool(type_display) and self.di_container_type in type_display

    @classmethod
    def from_dict(cls, data: dict) -> 'ExclusionPolicy':
        """Build a policy from parsed JSON; missing keys keep their defaults.

        Raises:
            ValueError: If ``data`` is not an object or a value has the wrong shape
        """
        if not isinstance(data, dict):
            raise ValueError(
                f"Exclusion policy must be a JSON object, got {type(data).__name__}"
            )

        values = {}
        for policy_field in fields(cls):
            if policy_field.name not in data:
                continue
            raw = data[policy_field.name]
            if policy_field.name == 'di_container_type':
                if not isinstance(raw, str) or not raw:
                    raise ValueError("di_container_type must be a non-empty string")
                values[policy_field.name] = raw
                continue
            if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
                raise ValueError(f"{policy_field.name} must be a list of strings")
            if policy_field.name in ('excluded_names', 'registration_allow_list'):
                values[policy_field.name] = frozenset(raw)
            else:
                values[policy_field.name] = tuple(raw)
        return cls(**values)

    @classmethod
    def load(cls, policy_path: Optional[Path] = None) -> 'ExclusionPolicy':
        """Load a policy file, falling back to the built-in defaults.

        Args:
            policy_path: JSON file (defaults to the bundled default policy)

        Raises:
            ValueError: If the file holds valid JSON of the wrong shape
        """
        policy_path = Path(policy_path) if policy_path else DEFAULT_POLICY_PATH
        if not policy_path.exists():
            warn(f"[PolicyRegistry] Policy file not found: {policy_path}. Using defaults.")
            return cls()

        try:
            with open(policy_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            warn(f"[PolicyRegistry] Error decoding JSON in {policy_path.name}: {e}. Using defaults.")
            return cls()

        return cls.from_dict(data)

    def to_dict(self) -> dict:
        """JSON-ready form (sorted, so it can be fingerprinted)."""
        result = {}
        for policy_field in fields(self):
            value = getattr(self, policy_field.name)
            result[policy_field.name] = value if isinstance(value, str) else sorted(value)
        return result

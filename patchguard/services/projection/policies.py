"""
Named allowlist policies for the profile service.

Each write endpoint declares the fields a caller may set; payloads are
projected through the policy before any field is read.
"""
import threading
from dataclasses import dataclass
from typing import Any, Iterable

from patchguard.services.exceptions import UnknownPolicyError
from patchguard.services.projection.field_projector import project


@dataclass(frozen=True)
class AllowlistPolicy:
    """A named, ordered set of writable field names."""
    name: str
    keys: tuple[str, ...]

    @classmethod
    def of(cls, name: str, keys: Iterable[str]) -> "AllowlistPolicy":
        """Build a policy, dropping duplicate keys while keeping order."""
        return cls(name=name, keys=tuple(dict.fromkeys(keys)))

    def project(self, payload: Any) -> dict:
        return project(payload, self.keys)


PROFILE_SELF = AllowlistPolicy.of(
    "profile.self",
    ["fullName", "phone", "photoUri"],
)

PROFILE_ADMIN_SELF_EXTRA = AllowlistPolicy.of(
    "profile.admin_self_extra",
    [
        # Personal details
        "firstName",
        "lastName",
        # Storefront
        "storefrontBusinessName",
        "storefrontCategory",
        "storefrontTags",
        "storefrontServices",
        "storefrontVatNumber",
        "storefrontStreetAddress",
        "storefrontStreetNumber",
        "storefrontCity",
        "storefrontRegion",
        "storefrontCountry",
        # Optional GPS
        "storefrontLat",
        "storefrontLng",
        # Public toggle
        "storefrontPublicEnabled",
    ],
)

PROFILE_ADMIN_SELF = AllowlistPolicy.of(
    "profile.admin_self",
    [*PROFILE_SELF.keys, *PROFILE_ADMIN_SELF_EXTRA.keys],
)

PROFILE_ADMIN_CLIENT = AllowlistPolicy.of(
    "profile.admin_client",
    ["email", *PROFILE_SELF.keys],
)

DEFAULT_POLICIES = (
    PROFILE_SELF,
    PROFILE_ADMIN_SELF_EXTRA,
    PROFILE_ADMIN_SELF,
    PROFILE_ADMIN_CLIENT,
)


class PolicyRegistry:
    """
    Thread-safe registry of allowlist policies by name.

    Usage:
        registry = get_policy_registry()
        safe = registry.project("profile.self", payload)
    """

    def __init__(self, policies: Iterable[AllowlistPolicy] = DEFAULT_POLICIES):
        self._lock = threading.Lock()
        self._policies: dict[str, AllowlistPolicy] = {}
        for policy in policies:
            self.register(policy)

    def register(self, policy: AllowlistPolicy) -> None:
        """Register or replace a policy."""
        with self._lock:
            self._policies[policy.name] = policy

    def get(self, name: str) -> AllowlistPolicy:
        """
        Look up a policy.

        Raises:
            UnknownPolicyError: If no policy is registered under name
        """
        with self._lock:
            policy = self._policies.get(name)
        if policy is None:
            raise UnknownPolicyError(name)
        return policy

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._policies)

    def project(self, name: str, payload: Any) -> dict:
        """Project payload through the named policy."""
        return self.get(name).project(payload)


_registry: PolicyRegistry | None = None
_registry_lock = threading.Lock()


def get_policy_registry() -> PolicyRegistry:
    """Get the process-wide policy registry (default policies preloaded)."""
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = PolicyRegistry()
    return _registry

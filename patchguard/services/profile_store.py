"""
In-memory profile store with role-based update rules.

Client payloads never touch a stored user directly: every update is first
projected through an allowlist policy, and only the projected fields are
read, coerced and written.

PII-safe: logs carry policy names, counts and error codes only.
"""
import math
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from patchguard.core.config import get_settings
from patchguard.core.logging import get_safe_logger
from patchguard.core.metrics import get_metrics_collector
from patchguard.services.exceptions import (
    EmailChangeRestrictedError,
    EmailConflictError,
    EmailRequiredError,
    ForbiddenError,
    ProfileNotFoundError,
)
from patchguard.services.projection.field_projector import dropped_keys, project
from patchguard.services.projection.policies import (
    PROFILE_ADMIN_CLIENT,
    PROFILE_ADMIN_SELF,
    PROFILE_SELF,
    PolicyRegistry,
    get_policy_registry,
)

logger = get_safe_logger(__name__)

# Internal fields never returned to clients
PRIVATE_FIELDS = frozenset({"password", "passwordHash"})

MAX_LIST_ITEMS = 20

ADMIN_ROLES = frozenset({"ADMIN", "BUSINESS"})
CUSTOMER_ROLES = frozenset({"USER", "CLIENT", "CUSTOMER", "STAFF"})


def is_admin_or_business(role: Any) -> bool:
    return str(role or "").upper() in ADMIN_ROLES


def is_customer_or_staff(role: Any) -> bool:
    return str(role or "").upper() in CUSTOMER_ROLES


@dataclass
class Workspace:
    id: str
    name: str


@dataclass
class AuditEntry:
    """One profile change. before/after hold public profiles (no secrets)."""
    workspace_id: str
    actor_id: str
    action: str
    target_user_id: str
    before: Dict[str, Any]
    after: Dict[str, Any]
    id: str = field(default_factory=lambda: f"audit_{uuid.uuid4().hex}")
    created_at: float = field(default_factory=time.time)


def public_profile(user: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of a stored user without private fields."""
    return {key: value for key, value in user.items() if key not in PRIVATE_FIELDS}


def _as_string(value: Any) -> str:
    """String coercion with lower-case booleans ("true"; False and None become "")."""
    if isinstance(value, bool):
        return "true" if value else ""
    return str(value or "")


def _normalize_text(value: Any) -> str:
    return _as_string(value).strip()


def _normalize_list(value: Any) -> List[str]:
    """Trimmed, non-empty strings; a comma-separated string is split."""
    if isinstance(value, (list, tuple)):
        items = value
    elif isinstance(value, str):
        items = value.split(",")
    else:
        return []
    cleaned = [_normalize_text(item) for item in items]
    return [item for item in cleaned if item][:MAX_LIST_ITEMS]


def _parse_coordinate(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    raw = value if isinstance(value, (int, float)) else _normalize_text(value)
    if raw == "":
        return None
    try:
        number = float(raw)
    except (ValueError, OverflowError):
        # Integers beyond float range are treated as non-finite.
        return None
    return number if math.isfinite(number) else None


def has_complete_storefront_address(user: Dict[str, Any]) -> bool:
    return all(
        _normalize_text(user.get(key))
        for key in (
            "storefrontStreetAddress",
            "storefrontStreetNumber",
            "storefrontCity",
            "storefrontRegion",
            "storefrontCountry",
        )
    )


def has_valid_storefront_coords(user: Dict[str, Any]) -> bool:
    lat = _parse_coordinate(user.get("storefrontLat"))
    lng = _parse_coordinate(user.get("storefrontLng"))
    if lat is None or lng is None:
        return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


class ProfileStore:
    """
    Thread-safe in-memory store of workspaces, users and profile audit trail.

    Usage:
        store = ProfileStore.get_instance()
        profile = store.update_profile(workspace_id, actor_id, target_id, payload)
    """
    _instance: Optional["ProfileStore"] = None
    _instance_lock = threading.Lock()

    def __init__(self, policies: Optional[PolicyRegistry] = None):
        self._lock = threading.Lock()
        self._policies = policies or get_policy_registry()
        self._workspaces: Dict[str, Workspace] = {}
        self._users: Dict[str, Dict[str, Any]] = {}
        self._memberships: set[tuple[str, str]] = set()
        self._audit: List[AuditEntry] = []

    @classmethod
    def get_instance(cls) -> "ProfileStore":
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Drop the shared store (useful for testing)."""
        with cls._instance_lock:
            cls._instance = None

    # === Seeding ===

    def add_workspace(self, workspace_id: str, name: str) -> Workspace:
        workspace = Workspace(id=workspace_id, name=name)
        with self._lock:
            self._workspaces[workspace_id] = workspace
        return workspace

    def add_user(self, user: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a user record (trusted input: seeding and admin tooling only)."""
        record = dict(user)
        record.setdefault("id", f"user_{uuid.uuid4().hex}")
        with self._lock:
            self._users[record["id"]] = record
        return public_profile(record)

    def add_membership(self, user_id: str, workspace_id: str) -> None:
        with self._lock:
            self._memberships.add((user_id, workspace_id))

    # === Reads ===

    def get_profile(self, workspace_id: str, user_id: str) -> Dict[str, Any]:
        with self._lock:
            self._assert_workspace_exists(workspace_id)
            user = self._users.get(user_id)
            if user is None or user.get("workspaceId") != workspace_id:
                raise ProfileNotFoundError("user")
            return public_profile(user)

    def audit_entries(self, workspace_id: str) -> List[AuditEntry]:
        """Audit entries for a workspace, newest first."""
        with self._lock:
            return [entry for entry in self._audit if entry.workspace_id == workspace_id]

    # === Authorization ===

    def _assert_workspace_exists(self, workspace_id: str) -> None:
        if workspace_id not in self._workspaces:
            raise ProfileNotFoundError("workspace")

    def _assert_actor_in_workspace(self, actor: Optional[Dict[str, Any]], workspace_id: str) -> None:
        if actor is None:
            raise ProfileNotFoundError("user")
        role = actor.get("role")
        if is_customer_or_staff(role) and actor.get("workspaceId") != workspace_id:
            raise ForbiddenError("Workspace isolation violation")
        if is_admin_or_business(role):
            member = (actor["id"], workspace_id) in self._memberships
            if actor.get("workspaceId") != workspace_id and not member:
                raise ForbiddenError("Workspace not allowed for this user")

    @staticmethod
    def _assert_target_in_workspace(target: Optional[Dict[str, Any]], workspace_id: str) -> None:
        if target is None:
            raise ProfileNotFoundError("user")
        if target.get("workspaceId") != workspace_id:
            raise ForbiddenError("Workspace isolation violation")

    # === Projection ===

    def _project(self, policy_name: str, updates: Any) -> Dict[str, Any]:
        """Project a client payload through a named policy and record counts."""
        policy = self._policies.get(policy_name)
        safe = policy.project(updates)
        dropped = len(dropped_keys(updates, policy.keys))
        get_metrics_collector().record_projection(
            policy=policy.name, kept=len(safe), dropped=dropped
        )
        if dropped and get_settings().log_projection_drops:
            logger.info(
                "Discarded non-allowlisted payload keys",
                policy=policy.name,
                kept_count=len(safe),
                dropped_count=dropped,
            )
        return safe

    @staticmethod
    def _reject_self_email_change(updates: Any, reason: str) -> None:
        # Own key presence only; the value is never read.
        if project(updates, ("email",)):
            raise EmailChangeRestrictedError(reason)

    # === Writes ===

    def update_profile(
        self,
        workspace_id: str,
        actor_id: str,
        target_user_id: str,
        updates: Any,
    ) -> Dict[str, Any]:
        """
        Apply a client-supplied profile patch with role-based rules.

        Rules:
        - CLIENT/STAFF self update: fullName, phone, photoUri; no email change
        - ADMIN/BUSINESS self update: the above plus personal and storefront
          fields; no email change
        - ADMIN/BUSINESS on another user: email (CLIENT/STAFF targets only)
          plus fullName, phone, photoUri

        Args:
            workspace_id: Workspace the update is scoped to
            actor_id: Authenticated user performing the update
            target_user_id: User whose profile is updated
            updates: Untrusted payload (any shape; unknown keys are discarded)

        Returns:
            Public profile of the target after the update

        Raises:
            ProfileNotFoundError, ForbiddenError, EmailChangeRestrictedError,
            EmailConflictError, EmailRequiredError
        """
        with self._lock:
            self._assert_workspace_exists(workspace_id)
            actor = self._users.get(actor_id)
            target = self._users.get(target_user_id)
            self._assert_actor_in_workspace(actor, workspace_id)
            self._assert_target_in_workspace(target, workspace_id)

            before = public_profile(target)

            if actor_id == target_user_id:
                action = "user.update_self"
                self._apply_self_update(target, updates)
            else:
                action = "user.admin_update"
                if not is_admin_or_business(actor.get("role")):
                    raise ForbiddenError()
                self._apply_admin_update(target, updates)

            after = public_profile(target)
            self._audit.insert(0, AuditEntry(
                workspace_id=workspace_id,
                actor_id=actor_id,
                action=action,
                target_user_id=target_user_id,
                before=before,
                after=after,
            ))

        logger.info("Profile updated", action=action)
        return after

    def _apply_self_update(self, target: Dict[str, Any], updates: Any) -> None:
        if is_customer_or_staff(target.get("role")):
            self._reject_self_email_change(updates, "Email changes require admin approval")
            staged = {
                key: _as_string(value)
                for key, value in self._project(PROFILE_SELF.name, updates).items()
            }
            target.update(staged)
            return

        self._reject_self_email_change(updates, "Email change is restricted for this account")
        staged: Dict[str, Any] = {}
        for key, value in self._project(PROFILE_ADMIN_SELF.name, updates).items():
            if key in PROFILE_SELF.keys:
                staged[key] = _as_string(value)
            elif key == "storefrontPublicEnabled":
                staged[key] = bool(value)
            elif key in ("storefrontTags", "storefrontServices"):
                staged[key] = _normalize_list(value)
            elif key in ("storefrontLat", "storefrontLng"):
                staged[key] = _parse_coordinate(value)
            else:
                staged[key] = _as_string(value)
        target.update(staged)

        # A public storefront needs a complete address and valid coordinates.
        if target.get("storefrontPublicEnabled") and not (
            has_complete_storefront_address(target) and has_valid_storefront_coords(target)
        ):
            target["storefrontPublicEnabled"] = False

    def _apply_admin_update(self, target: Dict[str, Any], updates: Any) -> None:
        safe = self._project(PROFILE_ADMIN_CLIENT.name, updates)
        staged: Dict[str, Any] = {}

        if "email" in safe:
            if not is_customer_or_staff(target.get("role")):
                raise ForbiddenError("Only customer email can be changed by admin")
            next_email = _normalize_text(safe.pop("email")).lower()
            if not next_email:
                raise EmailRequiredError()
            taken = any(
                user["id"] != target["id"] and str(user.get("email") or "").lower() == next_email
                for user in self._users.values()
            )
            if taken:
                raise EmailConflictError()
            staged["email"] = next_email

        for key, value in safe.items():
            staged[key] = _as_string(value)
        target.update(staged)


def seed_demo_workspace(store: ProfileStore, admin_id: str = "dev_uid") -> None:
    """Populate a store with one workspace, an admin and a client."""
    store.add_workspace("ws_demo", "Demo workspace")
    store.add_user({
        "id": admin_id,
        "workspaceId": "ws_demo",
        "role": "ADMIN",
        "email": "admin@example.com",
        "fullName": "Demo Admin",
        "passwordHash": "!",
    })
    store.add_user({
        "id": "client_demo",
        "workspaceId": "ws_demo",
        "role": "CLIENT",
        "email": "client@example.com",
        "fullName": "Demo Client",
        "passwordHash": "!",
    })

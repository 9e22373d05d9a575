"""PolicyManager for system and user policies.

This module provides the PolicyManager class which handles:
- Seeding the fixed, always-active system policies
- Adding and removing user policies
- Activating and deactivating user policies by name or by tag
- Serializing policies for prompt injection
- Reconciling the active set against the registered policies
"""

import logging
from typing import Iterable

from mac_engine.errors import (
    NameConflictError,
    PolicyStateError,
    SystemPolicyError,
    UnknownNameError,
)
from mac_engine.policies.policy import SYSTEM_POLICIES, Policy

logger = logging.getLogger(__name__)


class PolicyManager:
    """Owns system policies and a toggleable set of user policies.

    System policies are always active and cannot be removed, replaced or
    toggled. User policies are registered once, then activated and
    deactivated independently of registration.
    """

    def __init__(self) -> None:
        self._system_policies: dict[str, Policy] = {p.name: p for p in SYSTEM_POLICIES}
        self._policies: dict[str, Policy] = {}
        self._active: dict[str, Policy] = {}

    # --- Registration ---

    def add_policy(self, policy: Policy) -> None:
        """Register a user policy (inactive until activated).

        Raises:
            NameConflictError: If a system or user policy has the same name
        """
        if policy.name in self._policies or policy.name in self._system_policies:
            raise NameConflictError(f"Policy: {policy.name}, already exists.")
        self._policies[policy.name] = policy
        logger.info(f"Added policy '{policy.name}'")

    def add_policies(self, policies: Iterable[Policy]) -> None:
        for policy in policies:
            self.add_policy(policy)

    def remove_policy(self, name: str) -> None:
        """Remove a user policy.

        An active reference to the removed policy is dropped by the next
        refresh_active_policies() call.

        Raises:
            SystemPolicyError: If the name belongs to a system policy
            UnknownNameError: If no user policy has this name
        """
        self._reject_system(name, "removed")
        if name not in self._policies:
            raise UnknownNameError(f"Policy: {name}, does not exist.")
        del self._policies[name]
        logger.info(f"Removed policy '{name}'")

    def remove_policies(self, names: Iterable[str]) -> None:
        for name in names:
            self.remove_policy(name)

    def get_policy(self, name: str) -> Policy | None:
        return self._policies.get(name)

    def get_policies(self, names: Iterable[str]) -> list[Policy]:
        """Get the user policies with the given names, skipping unknown ones."""
        return [self._policies[name] for name in names if name in self._policies]

    def clear(self) -> None:
        """Remove every user policy and every activation."""
        self._policies.clear()
        self._active.clear()

    # --- Activation ---

    def activate_policy(self, name: str) -> None:
        """Activate a user policy.

        Raises:
            SystemPolicyError: If the name belongs to a system policy
            UnknownNameError: If no user policy has this name
            PolicyStateError: If the policy is already active
        """
        self._reject_system(name, "activated")
        policy = self._policies.get(name)
        if policy is None:
            raise UnknownNameError(f"Policy: {name}, does not exist.")
        if name in self._active:
            raise PolicyStateError(f"Policy: {name}, is already active.")
        self._active[name] = policy
        logger.debug(f"Activated policy '{name}'")

    def deactivate_policy(self, name: str) -> None:
        """Deactivate a user policy.

        Raises:
            SystemPolicyError: If the name belongs to a system policy
            UnknownNameError: If the name is neither registered nor active
            PolicyStateError: If the policy is not active
        """
        self._reject_system(name, "deactivated")
        if name not in self._policies and name not in self._active:
            raise UnknownNameError(f"Policy: {name}, does not exist.")
        if name not in self._active:
            raise PolicyStateError(f"Policy: {name}, is not active.")
        del self._active[name]
        logger.debug(f"Deactivated policy '{name}'")

    def set_active_policies_with_names(self, names: Iterable[str]) -> None:
        """Replace the active set with exactly the named policies.

        All names are checked before anything changes, so a bad name leaves
        the active set untouched.
        """
        names = list(dict.fromkeys(names))
        for name in names:
            self._reject_system(name, "activated")
            if name not in self._policies:
                raise UnknownNameError(f"Policy: {name}, does not exist.")

        self._active.clear()
        for name in names:
            self.activate_policy(name)

    def set_active_policies_with_tags(self, tags: Iterable[str]) -> list[str]:
        """Replace the active set with the user policies sharing any tag.

        The outcome depends only on `tags` and the registered policies, not
        on earlier activation calls.

        Returns:
            Names of the activated policies
        """
        wanted = set(tags)
        self._active.clear()
        for policy in self._policies.values():
            if policy.matches_tags(wanted):
                self._active[policy.name] = policy
        logger.debug(f"Activated policies for tags {sorted(wanted)}: {list(self._active)}")
        return list(self._active)

    def activate_all_policies(self) -> None:
        self._active = dict(self._policies)

    def deactivate_policies_with_names(self, names: Iterable[str]) -> None:
        for name in names:
            self.deactivate_policy(name)

    def deactivate_policies_with_tags(self, tags: Iterable[str]) -> list[str]:
        """Deactivate every active policy sharing any tag.

        Returns:
            Names of the deactivated policies
        """
        wanted = set(tags)
        removed = [
            name for name, policy in self._active.items() if policy.matches_tags(wanted)
        ]
        for name in removed:
            del self._active[name]
        return removed

    def deactivate_all_policies(self) -> None:
        """Deactivate every user policy. System policies stay active."""
        self._active.clear()

    def refresh_active_policies(self) -> list[str]:
        """Drop active references whose backing policy no longer exists.

        Returns:
            Names of the dropped references
        """
        stale = [
            name
            for name, policy in self._active.items()
            if self._policies.get(name) is not policy
        ]
        for name in stale:
            del self._active[name]
        if stale:
            logger.warning(f"Dropped stale active policies: {stale}")
        return stale

    # --- Queries ---

    def list_all_policies(self) -> list[str]:
        return list(self._policies)

    def list_active_policies(self) -> list[str]:
        return list(self._active)

    def list_inactive_policies(self) -> list[str]:
        return [name for name in self._policies if name not in self._active]

    def list_system_policies(self) -> list[str]:
        return list(self._system_policies)

    def is_active(self, name: str) -> bool:
        return name in self._system_policies or name in self._active

    # --- Prompt serialization ---

    def system_policies_to_prompt(self) -> list[str]:
        return self.policies_to_prompt(self._system_policies.values())

    def active_policies_to_prompt(self) -> list[str]:
        return self.policies_to_prompt(self._active.values())

    def all_policies_to_prompt(self) -> list[str]:
        return self.policies_to_prompt(self._policies.values())

    def inactive_policies_to_prompt(self) -> list[str]:
        return self.policies_to_prompt(
            self._policies[name] for name in self.list_inactive_policies()
        )

    @staticmethod
    def policies_to_prompt(policies: Iterable[Policy]) -> list[str]:
        return [policy.to_prompt() for policy in policies]

    def _reject_system(self, name: str, action: str) -> None:
        if name in self._system_policies:
            raise SystemPolicyError(
                f"Policy: {name}, is a system policy and cannot be {action}."
            )

"""Behavioral policies injected into every prompt.

This package provides the Policy value type, its builder, the fixed system
policies and the PolicyManager that tracks which user policies are active.
"""

from mac_engine.policies.manager import PolicyManager
from mac_engine.policies.policy import (
    EMBED_CONTENT_POLICY,
    JSON_ONLY_POLICY,
    NO_DUPLICATE_REQUESTS_POLICY,
    SYSTEM_POLICIES,
    SYSTEM_PRIORITY_POLICY,
    Policy,
    PolicyBuilder,
)

__all__ = [
    "Policy",
    "PolicyBuilder",
    "PolicyManager",
    # System policies
    "SYSTEM_POLICIES",
    "JSON_ONLY_POLICY",
    "NO_DUPLICATE_REQUESTS_POLICY",
    "EMBED_CONTENT_POLICY",
    "SYSTEM_PRIORITY_POLICY",
]

"""Lifecycle script policy for dependency installation."""

from .engine import LIFECYCLE_SCRIPTS, MonotonicClock, matches_pattern, sanitize
from .hook import ScriptPolicyHook
from .loader import load_policy, load_policy_file, write_policy_file

__all__ = [
    "LIFECYCLE_SCRIPTS",
    "MonotonicClock",
    "ScriptPolicyHook",
    "load_policy",
    "load_policy_file",
    "matches_pattern",
    "sanitize",
    "write_policy_file",
]

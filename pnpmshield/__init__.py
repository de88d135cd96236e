"""
pnpmshield: supply-chain audit and secure pnpm migration

pnpmshield protects a fleet of Node.js repositories against malicious
install-time scripts:
- Classifies each repository into a LOW/MEDIUM/HIGH risk tier
- Filters dependency lifecycle scripts through an allow/deny policy
- Migrates repositories to pnpm with scripts disabled, highest risk first

Usage:
    from pnpmshield import FleetAuditor
    from pnpmshield.orchestrator import MigrationPipeline

    # Or use CLI:
    $ pnpmshield audit
    $ pnpmshield migrate-fleet
"""

__version__ = "1.0.0"

from .config import get_settings
from .logging import get_logger

from .audit import FleetAuditor, classify
from .policy import ScriptPolicyHook, sanitize

__all__ = [
    "FleetAuditor",
    "ScriptPolicyHook",
    "classify",
    "get_logger",
    "get_settings",
    "sanitize",
    "__version__",
]

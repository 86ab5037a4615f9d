"""Hera Journal.

A biometric cycle journal sealed in a password-derived encryption vault.
"""
from .version import __version__
from .journal import (
    Action,
    CycleDay,
    JournalState,
    UserProfile,
    default_state,
    reduce,
)
from .session import JournalSession, SessionState
from .vault import JournalVault, VaultArtifact, VaultConfig

__all__ = [
    "__version__",
    "Action",
    "CycleDay",
    "JournalState",
    "UserProfile",
    "default_state",
    "reduce",
    "JournalSession",
    "SessionState",
    "JournalVault",
    "VaultArtifact",
    "VaultConfig",
]

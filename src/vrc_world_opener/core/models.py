"""
Purpose: Shared data models for cross-module communication.
Constraints: Data containers only; no logic.
"""

# Imports
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

# Constants
KIND_ID = "id"
KIND_NAME = "name"


# Public API
@dataclass(frozen=True)
class WorldReference:
    """A pointer to a world: an opaque id from a URL, or a free-text name."""

    kind: str
    value: str


@dataclass
class MutationRecord:
    """One childList mutation as reported by the host document."""

    added_nodes: Sequence[Any] = ()
    removed_nodes: Sequence[Any] = ()


@dataclass
class ScanReport:
    seen: int = 0
    processed: int = 0
    attached: int = 0
    failed: int = 0


@dataclass
class AuthStatus:
    authenticated: bool
    user: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


@dataclass
class LoginResult:
    success: bool
    user: Optional[Dict[str, Any]] = None
    requires_2fa: bool = False
    two_factor_types: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class SearchResult:
    success: bool
    world_id: Optional[str] = None
    world_name: Optional[str] = None
    needs_auth: bool = False
    not_found: bool = False
    error: Optional[str] = None

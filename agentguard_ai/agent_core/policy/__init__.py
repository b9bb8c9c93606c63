"""Named policy profiles and their store."""

from .models import ALL_TOOL_SCOPES, ApprovalMode, PolicyProfile
from .store import InMemoryPolicyStore, PolicyStore, default_profiles

__all__ = [
    "ALL_TOOL_SCOPES",
    "ApprovalMode",
    "PolicyProfile",
    "InMemoryPolicyStore",
    "PolicyStore",
    "default_profiles",
]

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Union

from pydantic import ValidationError

from ..errors import PolicyInvalidError
from .models import ApprovalMode, PolicyProfile

logger = logging.getLogger(__name__)


def default_profiles() -> List[PolicyProfile]:
    """The three built-in profiles: ``strict``, ``balanced`` and ``fast``."""
    return [
        PolicyProfile(name="strict", approval_mode=ApprovalMode.always),
        PolicyProfile(name="balanced", approval_mode=ApprovalMode.risk_based),
        PolicyProfile(name="fast", approval_mode=ApprovalMode.never),
    ]


class PolicyStore(Protocol):
    """Resolve named policy profiles.

    Implementations must raise ``PolicyInvalidError`` for unknown names and
    must return copies so callers cannot mutate stored profiles.
    """

    def get_profile(self, name: str) -> PolicyProfile: ...

    def set_profile(self, profile: Union[PolicyProfile, Mapping[str, Any]]) -> PolicyProfile: ...


class InMemoryPolicyStore(PolicyStore):
    """PolicyStore backed by a dict, seeded with the built-in profiles.

    Profiles passed to the constructor override (or add to) the defaults.
    Returned profiles are deep-copied to prevent accidental mutation.
    """

    def __init__(self, profiles: Optional[Iterable[Union[PolicyProfile, Mapping[str, Any]]]] = None) -> None:
        self._profiles: Dict[str, PolicyProfile] = {p.name: p for p in default_profiles()}
        for p in profiles or ():
            self.set_profile(p)

    def get_profile(self, name: str) -> PolicyProfile:
        profile = self._profiles.get(name) if isinstance(name, str) else None
        if profile is None:
            raise PolicyInvalidError(f"Unknown policy profile: {name!r}", details={"policy_profile": name})
        return profile.model_copy(deep=True)

    def set_profile(self, profile: Union[PolicyProfile, Mapping[str, Any]]) -> PolicyProfile:
        try:
            parsed = PolicyProfile.model_validate(profile if isinstance(profile, Mapping) else profile.model_dump())
        except ValidationError as exc:
            raise PolicyInvalidError(
                f"Invalid policy profile: {exc}",
                details={"errors": exc.errors(include_url=False, include_context=False)},
            ) from exc
        self._profiles[parsed.name] = parsed
        logger.debug("policy profile registered: %s (%s)", parsed.name, parsed.approval_mode.value)
        return parsed.model_copy(deep=True)

    def list_profiles(self) -> List[str]:
        return list(self._profiles)

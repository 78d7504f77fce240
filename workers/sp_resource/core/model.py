"""
Model — the security profile value object and its property flags.

A SecurityProfile is immutable: every "copy" is an independent value,
so the stored, incoming and candidate profiles can never share state.
Decoded profiles may be incomplete; which fields a decode actually saw
is tracked separately in an SpProperty flag set.
"""
from dataclasses import dataclass, field, replace
from enum import Flag
from typing import Iterable, Optional, Tuple

from sp_resource.core.errors import InvalidArgument

BASELINE_PROFILE = "oic.sec.sp.baseline"

CREDID_MAX = 0xFFFF


class SpProperty(Flag):
    """Presence / inclusion set over the three profile fields."""

    NONE = 0
    SUPPORTED_PROFILES = 1
    ACTIVE_PROFILE = 2
    CRED_ID = 4
    ALL = SUPPORTED_PROFILES | ACTIVE_PROFILE | CRED_ID

    @property
    def supported_profiles(self) -> bool:
        return SpProperty.SUPPORTED_PROFILES in self

    @property
    def active_profile(self) -> bool:
        return SpProperty.ACTIVE_PROFILE in self

    @property
    def cred_id(self) -> bool:
        return SpProperty.CRED_ID in self


@dataclass(frozen=True)
class SecurityProfile:
    """Supported profiles, the active one, and an optional credential id."""

    supported_profiles: Tuple[str, ...] = field(default_factory=tuple)
    active_profile: Optional[str] = None
    credid: int = 0

    def __post_init__(self):
        # Accept any iterable of names but always hold a private tuple.
        object.__setattr__(
            self, "supported_profiles", tuple(self.supported_profiles)
        )
        # credid must survive an encode/decode round trip.
        if not 0 <= self.credid <= CREDID_MAX:
            raise InvalidArgument(
                f"credid {self.credid} outside 0..{CREDID_MAX}"
            )

    @classmethod
    def default(cls) -> "SecurityProfile":
        """Built-in profile used before any stored state is available."""
        return cls(
            supported_profiles=(BASELINE_PROFILE,),
            active_profile=BASELINE_PROFILE,
            credid=0,
        )

    def dup(self) -> "SecurityProfile":
        return replace(self, supported_profiles=tuple(self.supported_profiles))

    def with_fields(self, **changes) -> "SecurityProfile":
        return replace(self, **changes)


def profile_index(supported_profiles: Iterable[str], name: Optional[str]) -> int:
    """Index of the first exact match of *name*, or -1."""
    if name is None:
        return -1
    for i, candidate in enumerate(supported_profiles):
        if candidate == name:
            return i
    return -1

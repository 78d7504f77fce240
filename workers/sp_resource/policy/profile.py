"""
Policy — resource descriptor and tunable parameters.

All knobs of the security-profile resource live here so that the codec
and validator contain no hard-coded opinions.  Adding a profile that
requires a credential, or moving the buffer ceiling, is a policy change,
not a code change.
"""
from dataclasses import dataclass, field
from typing import FrozenSet, Optional


@dataclass(frozen=True)
class ResourcePolicy:
    """Describes the sp resource and how its payloads are sized."""

    # Identity
    policy_id: str

    # Resource registration
    uri: str = "/oic/sec/sp"
    resource_type: str = "oic.r.sp"
    interface: str = "oic.if.baseline"
    store_key: str = "sp"

    # Profiles whose activation mandates a credid
    credential_profiles: FrozenSet[str] = field(default_factory=frozenset)

    # CBOR buffer sizing
    initial_cbor_size: int = 512
    max_cbor_size: int = 4400

    def requires_credential(self, profile_name: Optional[str]) -> bool:
        """Pure function of the name; unknown names never need a credential."""
        if profile_name is None:
            return False
        return profile_name in self.credential_profiles

    @classmethod
    def v1(cls) -> "ResourcePolicy":
        """The default policy: black and blue profiles carry a credential."""
        return cls(
            policy_id="oic-sec-sp-v1",
            credential_profiles=frozenset({"oic.sec.sp.black", "oic.sec.sp.blue"}),
            initial_cbor_size=512,
            max_cbor_size=4400,
        )

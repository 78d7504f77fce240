"""
Merge — build the update candidate from a partial incoming profile.

Each field comes from the incoming profile when the decode saw it, else
from the stored profile.  credid follows the resolved active profile: it
is carried (incoming first, stored second) only when that profile needs
a credential and forced to 0 otherwise.

The stored profile only "has" a credid when its own active profile
requires one; otherwise its credid is a placeholder and does not count
as present in the candidate.

Pure functions, no IO.
"""
import logging
from dataclasses import dataclass, field
from typing import List

from sp_resource.core.model import SecurityProfile, SpProperty, profile_index
from sp_resource.policy.profile import ResourcePolicy

logger = logging.getLogger(__name__)

MERGE_ACTIVE_NOT_SUPPORTED = "MERGE_ACTIVE_NOT_SUPPORTED"


@dataclass(frozen=True)
class MergeResult:
    """Candidate profile, the fields it really carries, and any rejects."""
    candidate: SecurityProfile
    present: SpProperty
    reasons: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.reasons


def merge_profiles(
    current: SecurityProfile,
    incoming: SecurityProfile,
    incoming_present: SpProperty,
    policy: ResourcePolicy,
) -> MergeResult:
    """Field-by-field merge of *incoming* over *current*."""
    supported_src = (
        incoming if SpProperty.SUPPORTED_PROFILES in incoming_present else current
    )
    active_src = incoming if SpProperty.ACTIVE_PROFILE in incoming_present else current

    supported = tuple(supported_src.supported_profiles)
    active = active_src.active_profile
    present = SpProperty.SUPPORTED_PROFILES | SpProperty.ACTIVE_PROFILE

    if profile_index(supported, active) < 0:
        logger.warning(
            "sp POST : active_profile %r is not contained in supported_profiles list",
            active,
        )
        return MergeResult(
            candidate=SecurityProfile(supported, active, 0),
            present=present,
            reasons=[MERGE_ACTIVE_NOT_SUPPORTED],
        )

    credid = 0
    if policy.requires_credential(active):
        if SpProperty.CRED_ID in incoming_present:
            credid = incoming.credid
            present |= SpProperty.CRED_ID
        elif policy.requires_credential(current.active_profile):
            credid = current.credid
            present |= SpProperty.CRED_ID
        else:
            logger.debug("sp POST : no credid available for %r", active)
    else:
        present |= SpProperty.CRED_ID

    return MergeResult(
        candidate=SecurityProfile(supported, active, credid),
        present=present,
    )

"""
Verdict — ACCEPT / REJECT decisions over a decoded or merged profile.

A profile is acceptable when:
  1. supported_profiles is present and non-empty,
  2. active_profile is present and non-empty,
  3. active_profile is one of supported_profiles,
  4. a credid is present if the active profile requires one.

Failures are logged as warnings and returned as reason strings; nothing
here raises.  Policy rules read the ResourcePolicy for the credential
set but never touch the codec.
"""
import logging
from enum import Enum, unique
from typing import List, Optional, Tuple

from sp_resource.core.model import SecurityProfile, SpProperty, profile_index
from sp_resource.policy.profile import ResourcePolicy

logger = logging.getLogger(__name__)


# ── Verdict enum ──────────────────────────────────────────────────────────────

@unique
class Verdict(str, Enum):
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"


# ── Reject reasons ───────────────────────────────────────────────────────────

@unique
class SpRejectReason(str, Enum):
    SUPPORTED_PROFILES_MISSING = "SUPPORTED_PROFILES_MISSING"
    SUPPORTED_PROFILES_EMPTY = "SUPPORTED_PROFILES_EMPTY"
    ACTIVE_PROFILE_MISSING = "ACTIVE_PROFILE_MISSING"
    ACTIVE_PROFILE_EMPTY = "ACTIVE_PROFILE_EMPTY"
    ACTIVE_NOT_SUPPORTED = "ACTIVE_NOT_SUPPORTED"
    CREDID_REQUIRED = "CREDID_REQUIRED"


_REASON_TEXT = {
    SpRejectReason.SUPPORTED_PROFILES_MISSING: "Required SP property supported_profiles not present",
    SpRejectReason.SUPPORTED_PROFILES_EMPTY: "Required SP property supported_profiles list is empty",
    SpRejectReason.ACTIVE_PROFILE_MISSING: "Required SP property active_profile not present",
    SpRejectReason.ACTIVE_PROFILE_EMPTY: "Required SP property active_profile is invalid",
    SpRejectReason.ACTIVE_NOT_SUPPORTED: "Active_profile is not contained in supported_profiles list",
    SpRejectReason.CREDID_REQUIRED: "Active profile requires credential, but none is present",
}


# ── Required-property gate ───────────────────────────────────────────────────

def check_required_props(
    profile: SecurityProfile,
    present: SpProperty,
    policy: Optional[ResourcePolicy] = None,
) -> Tuple[Verdict, List[str]]:
    """
    Evaluate a profile plus its presence set.

    Returns (Verdict, list_of_reason_strings).
    Any single reason → REJECT.
    """
    if policy is None:
        policy = ResourcePolicy.v1()
    reasons: List[SpRejectReason] = []

    if SpProperty.SUPPORTED_PROFILES not in present:
        reasons.append(SpRejectReason.SUPPORTED_PROFILES_MISSING)
    elif not profile.supported_profiles:
        reasons.append(SpRejectReason.SUPPORTED_PROFILES_EMPTY)

    if SpProperty.ACTIVE_PROFILE not in present:
        reasons.append(SpRejectReason.ACTIVE_PROFILE_MISSING)
    elif not profile.active_profile:
        reasons.append(SpRejectReason.ACTIVE_PROFILE_EMPTY)

    # Membership only makes sense once both fields passed
    if not reasons:
        if profile_index(profile.supported_profiles, profile.active_profile) < 0:
            reasons.append(SpRejectReason.ACTIVE_NOT_SUPPORTED)

    if (
        SpProperty.ACTIVE_PROFILE in present
        and policy.requires_credential(profile.active_profile)
        and SpProperty.CRED_ID not in present
    ):
        reasons.append(SpRejectReason.CREDID_REQUIRED)

    if reasons:
        for reason in reasons:
            logger.warning("%s", _REASON_TEXT[reason])
        return Verdict.REJECT, [r.value for r in reasons]
    return Verdict.ACCEPT, []


def required_props_present_and_valid(
    profile: SecurityProfile,
    present: SpProperty,
    policy: Optional[ResourcePolicy] = None,
) -> bool:
    verdict, _ = check_required_props(profile, present, policy)
    return verdict == Verdict.ACCEPT


# ── Equality ─────────────────────────────────────────────────────────────────

def is_same(
    a: Optional[SecurityProfile],
    b: Optional[SecurityProfile],
    fields: Optional[SpProperty] = None,
) -> bool:
    """
    Compare the selected fields; supported lists compare as sets.

    An unset active profile or an empty supported list is never the same
    as anything, itself included.
    """
    if a is None or b is None:
        return False
    if fields is None:
        fields = SpProperty.ALL

    if SpProperty.SUPPORTED_PROFILES in fields:
        if not a.supported_profiles or not b.supported_profiles:
            return False
        if len(a.supported_profiles) != len(b.supported_profiles):
            return False
        for name in a.supported_profiles:
            if profile_index(b.supported_profiles, name) < 0:
                return False

    if SpProperty.ACTIVE_PROFILE in fields:
        if a.active_profile is None or b.active_profile is None:
            return False
        if a.active_profile != b.active_profile:
            return False

    if SpProperty.CRED_ID in fields:
        if a.credid != b.credid:
            return False

    return True

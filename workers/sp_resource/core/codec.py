"""
Codec — SecurityProfile <-> CBOR map.

Wire layout (one map, keys in any order on decode):

    supported_profiles : [text, ...]      optional
    active_profile     : text             optional
    credid             : uint             optional
    rt                 : ["oic.r.sp"]     always emitted
    if                 : ["oic.if.baseline"]  always emitted

Encoding retries with a larger buffer when it overflows, growing by the
exact overflow the encoder reports, until the policy ceiling.  Decoding
records which known fields were present instead of failing on absence;
completeness is the validator's job.
"""
import logging
from typing import Optional, Tuple

from sp_resource.core.cbor import (
    MAJOR_ARRAY,
    MAJOR_MAP,
    MAJOR_NAMES,
    MAJOR_TEXT,
    MAJOR_UINT,
    CborEncoder,
    CborReader,
)
from sp_resource.core.errors import (
    DecodeFailure,
    EncodeFailure,
    EncodeOverflow,
    InvalidArgument,
)
from sp_resource.core.model import CREDID_MAX, SecurityProfile, SpProperty
from sp_resource.policy.profile import ResourcePolicy

logger = logging.getLogger(__name__)

# ── Map keys ─────────────────────────────────────────────────────────────────

SUPPORTED_PROFILES_KEY = "supported_profiles"
ACTIVE_PROFILE_KEY = "active_profile"
CREDID_KEY = "credid"
RT_KEY = "rt"
IF_KEY = "if"

# rt and if are always present
SP_MIN_MAP_SIZE = 2

_FIELD_ORDER = (
    SpProperty.SUPPORTED_PROFILES,
    SpProperty.ACTIVE_PROFILE,
    SpProperty.CRED_ID,
)


# ── Encode ───────────────────────────────────────────────────────────────────

def full_property_set(profile: SecurityProfile, policy: ResourcePolicy) -> SpProperty:
    """Fields a full encode emits: credid only for credential profiles."""
    props = SpProperty.SUPPORTED_PROFILES | SpProperty.ACTIVE_PROFILE
    if policy.requires_credential(profile.active_profile):
        props |= SpProperty.CRED_ID
    return props


def encode_profile(
    profile: SecurityProfile,
    policy: Optional[ResourcePolicy] = None,
    size: int = 0,
) -> bytes:
    """Encode every field the profile's active profile calls for."""
    if policy is None:
        policy = ResourcePolicy.v1()
    if not isinstance(profile, SecurityProfile):
        raise InvalidArgument("profile must be a SecurityProfile")
    return encode_profile_partial(
        profile, full_property_set(profile, policy), policy=policy, size=size
    )


def encode_profile_partial(
    profile: SecurityProfile,
    include: SpProperty,
    policy: Optional[ResourcePolicy] = None,
    size: int = 0,
) -> bytes:
    """
    Encode only the fields selected by *include* (plus rt and if).

    Parameters
    ----------
    profile : SecurityProfile
        Profile to serialize.
    include : SpProperty
        Exact set of profile fields to emit.
    policy : ResourcePolicy, optional
        Supplies rt/if values and buffer sizing.  Defaults to v1.
    size : int
        Suggested first buffer size, capped at ``policy.max_cbor_size``;
        0 means the policy default.

    Returns
    -------
    bytes
        The exact encoding.

    Raises
    ------
    InvalidArgument
        Bad profile, inclusion set or size.
    EncodeFailure
        A selected field cannot be encoded, or the encoding would exceed
        ``policy.max_cbor_size``.
    """
    if policy is None:
        policy = ResourcePolicy.v1()
    if not isinstance(profile, SecurityProfile):
        raise InvalidArgument("profile must be a SecurityProfile")
    if not isinstance(include, SpProperty):
        raise InvalidArgument("include must be an SpProperty set")
    if size < 0:
        raise InvalidArgument(f"buffer size must not be negative, got {size}")

    # A suggested size never lifts the ceiling.
    capacity = min(size or policy.initial_cbor_size, policy.max_cbor_size)

    # Each retry grows the buffer by at least one byte and never past the
    # ceiling, so the loop is bounded by max_cbor_size.
    while True:
        try:
            payload = _encode_into(profile, include, policy, capacity)
        except EncodeOverflow as overflow:
            grown = capacity + overflow.bytes_needed
            if grown > policy.max_cbor_size:
                logger.error(
                    "sp encode needs %d bytes, above the %d byte ceiling",
                    grown, policy.max_cbor_size,
                )
                raise EncodeFailure(
                    f"encoded profile needs {grown} bytes, "
                    f"ceiling is {policy.max_cbor_size}"
                ) from overflow
            logger.debug(
                "sp encode overflowed %d byte buffer, retrying with %d",
                capacity, grown,
            )
            capacity = grown
            continue
        logger.debug("sp encoded into %d bytes", len(payload))
        return payload


def _encode_into(
    profile: SecurityProfile,
    include: SpProperty,
    policy: ResourcePolicy,
    capacity: int,
) -> bytes:
    """Single encode attempt into a buffer of *capacity* bytes."""
    map_size = SP_MIN_MAP_SIZE + sum(1 for p in _FIELD_ORDER if p in include)

    enc = CborEncoder(capacity)
    enc.create_map(map_size)

    if SpProperty.SUPPORTED_PROFILES in include:
        if not profile.supported_profiles:
            raise EncodeFailure("List of supported security profiles can't be empty")
        enc.encode_text_string(SUPPORTED_PROFILES_KEY)
        enc.create_array(len(profile.supported_profiles))
        for name in profile.supported_profiles:
            enc.encode_text_string(name)
        enc.close_container()

    if SpProperty.ACTIVE_PROFILE in include:
        if profile.active_profile is None:
            raise EncodeFailure("active_profile selected for encoding but not set")
        enc.encode_text_string(ACTIVE_PROFILE_KEY)
        enc.encode_text_string(profile.active_profile)

    if SpProperty.CRED_ID in include:
        enc.encode_text_string(CREDID_KEY)
        enc.encode_uint(profile.credid)

    enc.encode_text_string(RT_KEY)
    enc.create_array(1)
    enc.encode_text_string(policy.resource_type)
    enc.close_container()

    enc.encode_text_string(IF_KEY)
    enc.create_array(1)
    enc.encode_text_string(policy.interface)
    enc.close_container()

    enc.close_container()
    return enc.getvalue()


# ── Decode ───────────────────────────────────────────────────────────────────

def decode_profile(payload: bytes) -> Tuple[SecurityProfile, SpProperty]:
    """
    Decode a CBOR sp map.

    Returns (profile, presence).  Fields absent from the payload keep
    their defaults and are missing from *presence*.

    Raises
    ------
    InvalidArgument
        *payload* is None or empty.
    DecodeFailure
        The envelope is not a map, a known key carries the wrong type,
        an array's declared length disagrees with its content, or the
        bytes are otherwise malformed.
    """
    if payload is None or len(payload) == 0:
        raise InvalidArgument("sp payload is empty")

    reader = CborReader(payload)
    if reader.peek_major() != MAJOR_MAP:
        raise DecodeFailure(
            f"sp payload is a {MAJOR_NAMES[reader.peek_major()]}, expected a map"
        )
    pairs = reader.read_map_header()

    supported = ()
    active = None
    credid = 0
    presence = SpProperty.NONE

    seen = 0
    while _more_pairs(reader, pairs, seen):
        seen += 1
        if reader.peek_major() != MAJOR_TEXT:
            logger.debug("skipping non-text key in sp map")
            reader.skip_value()
            reader.skip_value()
            continue

        key = reader.read_text()
        if key == SUPPORTED_PROFILES_KEY:
            supported = _read_supported_profiles(reader)
            presence |= SpProperty.SUPPORTED_PROFILES
        elif key == ACTIVE_PROFILE_KEY:
            active = _read_active_profile(reader)
            presence |= SpProperty.ACTIVE_PROFILE
        elif key == CREDID_KEY:
            credid = _read_credid(reader)
            presence |= SpProperty.CRED_ID
        else:
            logger.debug("skipping unknown sp key %r", key)
            reader.skip_value()

    if pairs is None:
        reader.read_break()
    if not reader.at_end:
        raise DecodeFailure(f"{reader.remaining} trailing bytes after sp map")

    profile = SecurityProfile(
        supported_profiles=supported,
        active_profile=active,
        credid=credid,
    )
    return profile, presence


def _more_pairs(reader: CborReader, pairs: Optional[int], seen: int) -> bool:
    if pairs is None:
        return not reader.peek_is_break()
    return seen < pairs


def _require_major(reader: CborReader, expected: int, key: str) -> None:
    found = reader.peek_major()
    if found != expected:
        raise DecodeFailure(
            f"sp {key} must be a {MAJOR_NAMES[expected]}, found {MAJOR_NAMES[found]}"
        )


def _read_supported_profiles(reader: CborReader) -> Tuple[str, ...]:
    _require_major(reader, MAJOR_ARRAY, SUPPORTED_PROFILES_KEY)
    declared = reader.read_array_header()

    names = []
    if declared is None:
        while not reader.peek_is_break():
            _require_major(reader, MAJOR_TEXT, SUPPORTED_PROFILES_KEY + " entry")
            names.append(reader.read_text())
        reader.read_break()
        return tuple(names)

    for _ in range(declared):
        if reader.at_end or reader.peek_major() != MAJOR_TEXT:
            break
        names.append(reader.read_text())

    if len(names) != declared:
        raise DecodeFailure(
            f"extracted {len(names)} of {declared} supported_profiles entries"
        )
    return tuple(names)


def _read_active_profile(reader: CborReader) -> str:
    _require_major(reader, MAJOR_TEXT, ACTIVE_PROFILE_KEY)
    return reader.read_text()


def _read_credid(reader: CborReader) -> int:
    _require_major(reader, MAJOR_UINT, CREDID_KEY)
    value = reader.read_uint()
    if value > CREDID_MAX:
        raise DecodeFailure(f"sp credid {value} exceeds {CREDID_MAX}")
    return value

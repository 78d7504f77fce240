"""
Shared pytest fixtures for sp_resource tests.

Everything is pure Python: profiles, an in-memory store, and a few
helpers that hand-assemble CBOR so tests can feed the decoder payloads
the encoder would never produce (reordered keys, unknown nested values,
indefinite lengths, malformed items).
"""
import pytest

from sp_resource.core.model import SecurityProfile
from sp_resource.io.store import MemoryStore
from sp_resource.policy.profile import ResourcePolicy
from sp_resource.runner import SpResource

BASELINE = "oic.sec.sp.baseline"
BLACK = "oic.sec.sp.black"
BLUE = "oic.sec.sp.blue"
PURPLE = "oic.sec.sp.purple"


# ── Raw CBOR helpers ─────────────────────────────────────────────────────────

def _head(major: int, value: int) -> bytes:
    ib = major << 5
    if value < 24:
        return bytes([ib | value])
    if value < 0x100:
        return bytes([ib | 24, value])
    if value < 0x10000:
        return bytes([ib | 25]) + value.to_bytes(2, "big")
    return bytes([ib | 26]) + value.to_bytes(4, "big")


def cbor_uint(value: int) -> bytes:
    return _head(0, value)


def cbor_text(text: str) -> bytes:
    data = text.encode("utf-8")
    return _head(3, len(data)) + data


def cbor_array(length: int) -> bytes:
    return _head(4, length)


def cbor_map(pairs: int) -> bytes:
    return _head(5, pairs)


def cbor_text_array(names) -> bytes:
    names = list(names)
    return cbor_array(len(names)) + b"".join(cbor_text(n) for n in names)


# A map whose values exercise every kind of item skip_value must step over:
# an indefinite array holding a negative int, a byte string, a half float
# and a tagged uint32, then an indefinite (chunked) text string.
EXOTIC_VALUE = bytes.fromhex(
    "a2"
    "6161" "9f" "20" "41ff" "f93c00" "c11a00000001" "ff"
    "6162" "7f" "626869" "ff"
)


# ── Fixtures ─────────────────────────────────────────────────────────────────

@pytest.fixture
def policy() -> ResourcePolicy:
    return ResourcePolicy.v1()


@pytest.fixture
def baseline_profile() -> SecurityProfile:
    return SecurityProfile.default()


@pytest.fixture
def black_profile() -> SecurityProfile:
    return SecurityProfile(
        supported_profiles=(BASELINE, BLACK),
        active_profile=BLACK,
        credid=7,
    )


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def resource(store, policy) -> SpResource:
    return SpResource.from_store(store, policy)

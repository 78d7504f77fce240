"""
Errors raised by the codec and the persistence path.

Validation problems are not errors: the validator returns a REJECT
verdict with reasons.  Everything here is caught at the SpResource
boundary and turned into a result code.
"""


class SpResourceError(Exception):
    """Base class for security-profile resource errors."""


class InvalidArgument(SpResourceError, ValueError):
    """Caller passed something unusable; no work was attempted."""


class EncodeOverflow(SpResourceError):
    """The output buffer was too small.

    ``bytes_needed`` is the exact number of additional bytes the encoder
    would have needed to finish.
    """

    def __init__(self, bytes_needed: int, capacity: int):
        super().__init__(
            f"CBOR buffer of {capacity} bytes overflowed by {bytes_needed} bytes"
        )
        self.bytes_needed = bytes_needed
        self.capacity = capacity


class EncodeFailure(SpResourceError):
    """Terminal encode error; no payload is produced."""


class DecodeFailure(SpResourceError):
    """Malformed CBOR envelope or a value of the wrong type."""


class PersistenceFailure(SpResourceError):
    """The store refused or failed to write the encoded profile."""

"""
sp_resource — security profile (``/oic/sec/sp``) resource core.

CBOR codec, consistency validator and update orchestrator for the
device security-profile descriptor.
"""

__version__ = "0.1.0"
RESOURCE_VERSION = "v1"
PACKAGE_NAME = "sp_resource"
SCHEMA_VERSION = "0.1"

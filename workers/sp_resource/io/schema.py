"""
Schema — Pydantic models for the JSON-facing views of the resource.

The wire format is CBOR (see core/codec.py); these models only back the
diagnostic JSON endpoint and update reports.

Runtime contract fields (present in every output):
  package_name, resource_version, policy_id, schema_version.
"""
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from sp_resource import PACKAGE_NAME, RESOURCE_VERSION, SCHEMA_VERSION
from sp_resource.core.model import SecurityProfile


class SecurityProfileView(BaseModel):
    """JSON rendering of the stored security profile."""

    package_name: str = PACKAGE_NAME
    resource_version: str = RESOURCE_VERSION
    schema_version: str = SCHEMA_VERSION
    policy_id: str

    supported_profiles: List[str] = Field(default_factory=list)
    active_profile: Optional[str] = None
    credid: Optional[int] = None     # only set for credential profiles

    @classmethod
    def from_profile(
        cls,
        profile: SecurityProfile,
        policy_id: str,
        include_credid: bool,
    ) -> "SecurityProfileView":
        return cls(
            policy_id=policy_id,
            supported_profiles=list(profile.supported_profiles),
            active_profile=profile.active_profile,
            credid=profile.credid if include_credid else None,
        )


class UpdateReport(BaseModel):
    """Summary of one POST update, for logs and diagnostics."""

    package_name: str = PACKAGE_NAME
    resource_version: str = RESOURCE_VERSION
    schema_version: str = SCHEMA_VERSION
    policy_id: str

    result: str              # OK | ERROR | NOT_ACCEPTABLE
    stage: str               # COMMITTED | REJECTED
    failed_stage: Optional[str] = None
    reasons: List[str] = Field(default_factory=list)

    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

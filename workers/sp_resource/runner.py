"""
Resource runner — owns the stored profile and serves GET / POST.

SpResource is the explicit state handle: it holds the one live
SecurityProfile, the policy and the store.  Updates go through

    DECODING → MERGING → VALIDATING → PERSISTING → COMMITTED

and any failure lands in REJECTED with the stored profile untouched.
The stored profile is only ever replaced wholesale, after the new
encoding has been persisted.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum, unique
from typing import List, Optional

from sp_resource.core.codec import decode_profile, encode_profile, full_property_set
from sp_resource.core.errors import (
    DecodeFailure,
    EncodeFailure,
    InvalidArgument,
    PersistenceFailure,
    SpResourceError,
)
from sp_resource.core.merge import merge_profiles
from sp_resource.core.model import SecurityProfile, SpProperty
from sp_resource.core.query import validate_query
from sp_resource.io.schema import SecurityProfileView, UpdateReport
from sp_resource.io.store import SecureStore
from sp_resource.policy.profile import ResourcePolicy
from sp_resource.policy.verdict import Verdict, check_required_props

logger = logging.getLogger(__name__)


# ── Result codes ─────────────────────────────────────────────────────────────

@unique
class EntityHandlerResult(str, Enum):
    OK = "OK"
    ERROR = "ERROR"
    NOT_ACCEPTABLE = "NOT_ACCEPTABLE"


@unique
class UpdateStage(str, Enum):
    IDLE = "IDLE"
    DECODING = "DECODING"
    MERGING = "MERGING"
    VALIDATING = "VALIDATING"
    PERSISTING = "PERSISTING"
    COMMITTED = "COMMITTED"
    REJECTED = "REJECTED"


@unique
class UpdateRejectReason(str, Enum):
    NO_PAYLOAD = "NO_PAYLOAD"
    DECODE_ERROR = "DECODE_ERROR"
    ENCODE_ERROR = "ENCODE_ERROR"
    PERSIST_ERROR = "PERSIST_ERROR"


@dataclass(frozen=True)
class ResourceResponse:
    """What goes back to the transport: a result code and optional body."""
    result: EntityHandlerResult
    payload: Optional[bytes] = None

    @property
    def size(self) -> int:
        return len(self.payload) if self.payload else 0


@dataclass
class UpdateOutcome:
    """Where one update ended up and why."""
    stage: UpdateStage = UpdateStage.IDLE
    failed_stage: Optional[UpdateStage] = None
    result: EntityHandlerResult = EntityHandlerResult.NOT_ACCEPTABLE
    reasons: List[str] = field(default_factory=list)
    candidate: Optional[SecurityProfile] = None

    @property
    def committed(self) -> bool:
        return self.stage == UpdateStage.COMMITTED

    def reject(self, reasons: List[str]) -> "UpdateOutcome":
        self.failed_stage = self.stage
        self.stage = UpdateStage.REJECTED
        self.result = EntityHandlerResult.NOT_ACCEPTABLE
        self.reasons.extend(reasons)
        return self

    def to_report(self, policy_id: str) -> UpdateReport:
        return UpdateReport(
            policy_id=policy_id,
            result=self.result.value,
            stage=self.stage.value,
            failed_stage=self.failed_stage.value if self.failed_stage else None,
            reasons=list(self.reasons),
        )


# ── Logging helper ───────────────────────────────────────────────────────────

def log_profile(profile: SecurityProfile, msg: str, level: int = logging.DEBUG) -> None:
    if not logger.isEnabledFor(level):
        return
    logger.log(level, "%s", msg)
    logger.log(level, "  active_profile: %s", profile.active_profile)
    logger.log(level, "  credid: %d", profile.credid)
    logger.log(level, "  %d supported profiles:", len(profile.supported_profiles))
    for name in profile.supported_profiles:
        logger.log(level, "    %s", name)


# ── Resource ─────────────────────────────────────────────────────────────────

class SpResource:
    """The security-profile resource and its single stored profile."""

    def __init__(
        self,
        store: SecureStore,
        policy: Optional[ResourcePolicy] = None,
        profile: Optional[SecurityProfile] = None,
    ):
        self.store = store
        self.policy = policy if policy is not None else ResourcePolicy.v1()
        self._profile = profile.dup() if profile is not None else SecurityProfile.default()
        self.last_report: Optional[UpdateReport] = None

    @classmethod
    def from_store(
        cls,
        store: SecureStore,
        policy: Optional[ResourcePolicy] = None,
    ) -> "SpResource":
        """
        Startup: use the persisted profile if it decodes and validates,
        otherwise the built-in default.
        """
        resource = cls(store, policy)
        data = store.load(resource.policy.store_key)
        if not data:
            logger.info("No persisted sp resource, using default")
        else:
            try:
                stored, present = decode_profile(data)
            except SpResourceError as e:
                logger.error("Persisted sp resource is corrupt, using default: %s", e)
            else:
                verdict, reasons = check_required_props(stored, present, resource.policy)
                if verdict == Verdict.ACCEPT:
                    resource._profile = stored
                else:
                    logger.warning(
                        "Persisted sp resource invalid (%s), using default",
                        ", ".join(reasons),
                    )
        log_profile(resource._profile, "SP resource after startup initialization")
        return resource

    # ── State access ─────────────────────────────────────────────────

    @property
    def profile(self) -> SecurityProfile:
        """The stored profile.  Immutable, so safe to hand out."""
        return self._profile

    def view(self) -> SecurityProfileView:
        return SecurityProfileView.from_profile(
            self._profile,
            policy_id=self.policy.policy_id,
            include_credid=SpProperty.CRED_ID in full_property_set(self._profile, self.policy),
        )

    def install(self, profile: SecurityProfile) -> bool:
        """Replace the stored profile with a copy of *profile* (not persisted)."""
        if not isinstance(profile, SecurityProfile):
            logger.error("install: not a SecurityProfile: %r", profile)
            return False
        self._profile = profile.dup()
        log_profile(self._profile, "SP resource installed")
        return True

    def reset(self) -> None:
        """Drop back to the built-in default."""
        self._profile = SecurityProfile.default()

    # ── Request dispatch ─────────────────────────────────────────────

    def handle(
        self,
        method: str,
        query: Optional[str] = None,
        payload: Optional[bytes] = None,
    ) -> ResourceResponse:
        method = method.upper()
        if method == "GET":
            return self.get(query)
        if method == "POST":
            return self.post(payload)
        logger.warning("Unsupported method %s on %s", method, self.policy.uri)
        return ResourceResponse(EntityHandlerResult.ERROR)

    def get(self, query: Optional[str] = None) -> ResourceResponse:
        if query and not validate_query(query, self.policy):
            logger.warning("sp GET : query %r does not match interface", query)
            return ResourceResponse(EntityHandlerResult.ERROR)

        try:
            payload = encode_profile(self._profile, self.policy)
        except SpResourceError as e:
            logger.error("sp GET : failed to encode resource: %s", e)
            return ResourceResponse(EntityHandlerResult.ERROR)

        log_profile(self._profile, "SP resource being sent in response to GET:")
        return ResourceResponse(EntityHandlerResult.OK, payload)

    def post(self, payload: Optional[bytes]) -> ResourceResponse:
        outcome = self.update(payload)
        return ResourceResponse(outcome.result)

    # ── Update orchestration ─────────────────────────────────────────

    def update(self, payload: Optional[bytes]) -> UpdateOutcome:
        outcome = UpdateOutcome()
        try:
            self._run_update(payload, outcome)
        finally:
            self.last_report = outcome.to_report(self.policy.policy_id)
        return outcome

    def _run_update(self, payload: Optional[bytes], outcome: UpdateOutcome) -> None:
        current = self._profile

        # ── Step 1: decode ───────────────────────────────────────────
        outcome.stage = UpdateStage.DECODING
        if not payload:
            logger.error("sp POST : no payload supplied")
            outcome.reject([UpdateRejectReason.NO_PAYLOAD.value])
            return
        try:
            incoming, present = decode_profile(payload)
        except (InvalidArgument, DecodeFailure) as e:
            logger.error("sp POST : error decoding incoming payload: %s", e)
            outcome.reject([UpdateRejectReason.DECODE_ERROR.value])
            return

        # ── Step 2: merge ────────────────────────────────────────────
        outcome.stage = UpdateStage.MERGING
        merged = merge_profiles(current, incoming, present, self.policy)
        outcome.candidate = merged.candidate
        if not merged.ok:
            outcome.reject(merged.reasons)
            return

        # ── Step 3: validate ─────────────────────────────────────────
        outcome.stage = UpdateStage.VALIDATING
        verdict, reasons = check_required_props(merged.candidate, merged.present, self.policy)
        if verdict == Verdict.REJECT:
            logger.error(
                "sp POST : update version of security profiles not valid, not updating"
            )
            outcome.reject(reasons)
            return

        # ── Step 4: persist ──────────────────────────────────────────
        outcome.stage = UpdateStage.PERSISTING
        try:
            self._persist(merged.candidate)
        except EncodeFailure as e:
            logger.error("sp POST : cannot encode candidate: %s", e)
            outcome.reject([UpdateRejectReason.ENCODE_ERROR.value])
            return
        except PersistenceFailure as e:
            logger.error("sp POST : %s", e)
            outcome.reject([UpdateRejectReason.PERSIST_ERROR.value])
            return

        # ── Step 5: commit ───────────────────────────────────────────
        self._profile = merged.candidate
        outcome.stage = UpdateStage.COMMITTED
        outcome.result = EntityHandlerResult.OK
        log_profile(self._profile, "State of SP resource after being updated by POST:")

    def _persist(self, profile: SecurityProfile) -> None:
        payload = encode_profile(profile, self.policy)
        if not self.store.save(self.policy.store_key, payload):
            raise PersistenceFailure(
                f"store rejected {len(payload)} byte {self.policy.store_key!r} record"
            )

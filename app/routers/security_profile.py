"""
Security Profile Router
CBOR transport for the /oic/sec/sp resource.

GET returns the stored profile's full CBOR encoding (optionally filtered
by an ``if=`` query), POST applies a partial CBOR update.  Neither ever
returns a partially decoded or partially accepted profile: failures come
back as an error status with an empty body.

Handlers are ``async def`` and call the resource synchronously, so every
request against the stored profile runs to completion on the event loop
before the next one starts.
"""
import logging

from fastapi import APIRouter, Depends, Request, Response, status

from sp_resource.io.schema import SecurityProfileView  # type: ignore
from sp_resource.runner import EntityHandlerResult, SpResource  # type: ignore

logger = logging.getLogger(__name__)

CBOR_MEDIA_TYPE = "application/cbor"

_POST_STATUS = {
    EntityHandlerResult.OK: status.HTTP_204_NO_CONTENT,
    EntityHandlerResult.NOT_ACCEPTABLE: status.HTTP_406_NOT_ACCEPTABLE,
    EntityHandlerResult.ERROR: status.HTTP_400_BAD_REQUEST,
}


# =============================================================================
# Dependencies
# =============================================================================

def get_sp_resource(request: Request) -> SpResource:
    return request.app.state.sp_resource  # type: ignore[attr-defined]


# =============================================================================
# Router
# =============================================================================

router = APIRouter()


@router.get(
    "",
    response_class=Response,
    summary="Read the security profile resource as CBOR",
)
async def get_security_profile(
    request: Request,
    resource: SpResource = Depends(get_sp_resource),
):
    """
    Return the stored profile encoded as CBOR.

    A query carrying ``if=`` must name the resource interface
    (``oic.if.baseline``); anything else yields 400 with no body.
    """
    response = resource.get(request.url.query or None)
    if response.result != EntityHandlerResult.OK:
        return Response(status_code=status.HTTP_400_BAD_REQUEST)
    return Response(content=response.payload, media_type=CBOR_MEDIA_TYPE)


@router.post(
    "",
    response_class=Response,
    summary="Update the security profile resource from a CBOR payload",
)
async def post_security_profile(
    request: Request,
    resource: SpResource = Depends(get_sp_resource),
):
    """
    Apply a (possibly partial) CBOR update.

    204 when the merged profile was validated, persisted and committed;
    406 when it was rejected at any stage.  The stored profile is
    unchanged on rejection.
    """
    body = await request.body()
    response = resource.post(body)
    if resource.last_report is not None:
        logger.info("sp POST : %s", resource.last_report.model_dump_json())
    return Response(status_code=_POST_STATUS[response.result])


@router.get(
    "/view",
    response_model=SecurityProfileView,
    summary="JSON view of the stored security profile",
)
async def view_security_profile(
    resource: SpResource = Depends(get_sp_resource),
):
    """Diagnostic JSON rendering; credid only shown for credential profiles."""
    return resource.view()

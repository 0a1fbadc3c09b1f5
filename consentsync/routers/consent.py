"""Consent router — consent information for the host application.

Endpoints:
  POST /api/consent/update           — fetch and merge consent info
  GET  /api/consent/status           — current consent status
  PUT  /api/consent/status           — set status programmatically
  GET  /api/consent/providers        — known ad providers
  GET  /api/consent/under-age        — under-age-of-consent tag
  PUT  /api/consent/under-age        — set the under-age tag
  GET  /api/consent/debug-geography  — debug region override
  PUT  /api/consent/debug-geography  — set the debug region override
  POST /api/consent/test-devices     — register a hashed test device id
  POST /api/consent/form-result      — apply a consent dialog dismissal
  POST /api/consent/reset            — restore defaults
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, status

from consentsync.deps import Manager
from consentsync.errors import (
    ConsentError,
    FormResultError,
    MalformedResponse,
    NetworkFailure,
    PartialLookupFailure,
    SerializationFailure,
    UnderAgeOfConsentError,
)
from consentsync.schemas.consent import (
    AdProvider,
    ConsentStatusBody,
    ConsentUpdateRequest,
    DebugGeographyBody,
    DeviceRegistrationBody,
    FormResultBody,
    FormResultResponse,
    UnderAgeBody,
)

logger = structlog.get_logger()

router = APIRouter()

_ERROR_STATUS: list[tuple[type[ConsentError], int]] = [
    (NetworkFailure, status.HTTP_502_BAD_GATEWAY),
    (MalformedResponse, status.HTTP_502_BAD_GATEWAY),
    (PartialLookupFailure, status.HTTP_502_BAD_GATEWAY),
    (SerializationFailure, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (FormResultError, 422),
    (UnderAgeOfConsentError, status.HTTP_403_FORBIDDEN),
]


def _to_http_error(exc: ConsentError) -> HTTPException:
    for error_type, code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return HTTPException(status_code=code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("/consent/update", response_model=ConsentStatusBody)
async def update_consent(body: ConsentUpdateRequest, manager: Manager):
    """Request a consent info update for the given publisher ids."""
    try:
        consent_status = await manager.update_consent_info(body.publisher_ids)
    except ConsentError as e:
        logger.warning("consent_update_rejected", error=str(e))
        raise _to_http_error(e) from e
    return ConsentStatusBody(status=consent_status)


@router.get("/consent/status", response_model=ConsentStatusBody)
async def get_status(manager: Manager):
    return ConsentStatusBody(status=await manager.get_status())


@router.put("/consent/status", response_model=ConsentStatusBody)
async def set_status(body: ConsentStatusBody, manager: Manager):
    """Set consent status directly (source: programmatic)."""
    try:
        await manager.set_status(body.status)
    except ConsentError as e:
        raise _to_http_error(e) from e
    return body


@router.get("/consent/providers", response_model=list[AdProvider])
async def get_providers(manager: Manager):
    return await manager.get_ad_providers()


@router.get("/consent/under-age", response_model=UnderAgeBody)
async def get_under_age(manager: Manager):
    return UnderAgeBody(under_age_of_consent=await manager.is_tagged_under_age())


@router.put("/consent/under-age", response_model=UnderAgeBody)
async def set_under_age(body: UnderAgeBody, manager: Manager):
    try:
        await manager.tag_under_age(body.under_age_of_consent)
    except ConsentError as e:
        raise _to_http_error(e) from e
    return body


@router.get("/consent/debug-geography", response_model=DebugGeographyBody)
async def get_debug_geography(manager: Manager):
    return DebugGeographyBody(debug_geography=manager.debug_geography)


@router.put("/consent/debug-geography", response_model=DebugGeographyBody)
async def set_debug_geography(body: DebugGeographyBody, manager: Manager):
    manager.debug_geography = body.debug_geography
    logger.info("debug_geography_set", debug_geography=body.debug_geography.name)
    return body


@router.post("/consent/test-devices", status_code=status.HTTP_201_CREATED)
async def add_test_device(body: DeviceRegistrationBody, manager: Manager):
    manager.add_test_device(body.hashed_device_id)
    return {"hashed_device_id": body.hashed_device_id, "is_test_device": manager.is_test_device()}


@router.post("/consent/form-result", response_model=FormResultResponse)
async def apply_form_result(body: FormResultBody, manager: Manager):
    """Persist the status a consent dialog reported on dismissal (source: form)."""
    try:
        result = await manager.apply_form_result(body.status)
    except ConsentError as e:
        raise _to_http_error(e) from e
    return FormResultResponse(status=result.status, user_prefers_ad_free=result.user_prefers_ad_free)


@router.post("/consent/reset", status_code=status.HTTP_200_OK)
async def reset(manager: Manager):
    """Restore the default consent record and clear registered test devices."""
    try:
        await manager.reset()
    except ConsentError as e:
        raise _to_http_error(e) from e
    return {"reset": True}

"""Consent dialog boundary — form payload in, dismissal status out.

The dialog itself is rendered by the host. This module only builds the
info it displays and interprets the status string it reports back.
"""

from __future__ import annotations

from consentsync.errors import FormResultError
from consentsync.schemas.consent import ConsentRecord, ConsentStatus, FormOptions, FormResult

_DISMISSAL_STATUSES: dict[str, FormResult] = {
    "personalized": FormResult(ConsentStatus.PERSONALIZED),
    "non_personalized": FormResult(ConsentStatus.NON_PERSONALIZED),
    "ad_free": FormResult(ConsentStatus.UNKNOWN, user_prefers_ad_free=True),
}


def parse_form_status(status: str | None) -> FormResult:
    """Map a dismissal status string to a FormResult.

    Unrecognized statuses are rejected instead of being read as UNKNOWN.
    """
    if not status:
        raise FormResultError("No information provided.")
    if "Error" in status:
        raise FormResultError(status)
    try:
        return _DISMISSAL_STATUSES[status]
    except KeyError:
        raise FormResultError(f"Unrecognized consent form status: {status}") from None


def build_form_info(options: FormOptions, record: ConsentRecord) -> dict:
    """Arguments handed to the dialog's setUpConsentDialog entry point."""
    return {
        "offer_personalized": options.offer_personalized,
        "offer_non_personalized": options.offer_non_personalized,
        "offer_ad_free": options.offer_ad_free,
        "is_request_in_eea_or_unknown": record.is_in_regulated_region_or_unknown,
        "app_privacy_url": options.app_privacy_policy_url,
        "plat": record.sdk_platform,
        "consent_info": record.model_dump(mode="json", by_alias=True),
    }

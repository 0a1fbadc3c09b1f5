"""Consent merge engine — reconciles a validated response with the stored record.

Consent binds to a specific provider set. While the request is in a
regulated region, any change to that set (a provider added or dropped,
or a switch in the NPA-only selection) voids prior consent because the
user never saw the new set. A region flag of false means no consent
obligation applies, so prior consent is left as it was.

merge() is pure: the caller persists the returned record.
"""

from __future__ import annotations

from collections.abc import Iterable

from consentsync.schemas.consent import AdProvider, ConsentRecord, ConsentSource, ConsentStatus
from consentsync.schemas.server import AdNetworkLookup, ValidatedResponse


def non_personalized_provider_ids(lookups: Iterable[AdNetworkLookup]) -> tuple[bool, set[str]]:
    """Return (any NPA entry present, union of company ids of NPA entries)."""
    has_npa = False
    provider_ids: set[str] = set()
    for lookup in lookups:
        if not lookup.is_npa:
            continue
        has_npa = True
        provider_ids.update(lookup.company_ids or [])
    return has_npa, provider_ids


def compute_known_providers(
    companies: Iterable[AdProvider] | None,
    has_npa: bool,
    npa_provider_ids: set[str],
) -> frozenset[AdProvider]:
    if companies is None:
        return frozenset()
    if has_npa:
        return frozenset(p for p in companies if p.id in npa_provider_ids)
    return frozenset(companies)


def requires_invalidation(
    previous: ConsentRecord,
    new_known_providers: frozenset[AdProvider],
    has_npa: bool,
) -> bool:
    return (
        new_known_providers != previous.consented_providers
        or has_npa != previous.has_non_personalized_publisher_id
    )


def merge(
    validated: ValidatedResponse,
    requested_publisher_ids: Iterable[str],
    previous: ConsentRecord,
) -> ConsentRecord:
    """Build the updated record from a validated response and the prior record."""
    has_npa, npa_provider_ids = non_personalized_provider_ids(validated.ad_network_ids)
    new_known_providers = compute_known_providers(validated.companies, has_npa, npa_provider_ids)

    updated = previous.model_copy(
        update={
            "known_providers": new_known_providers,
            "publisher_ids": frozenset(requested_publisher_ids),
            "has_non_personalized_publisher_id": has_npa,
            "raw_response": validated.raw,
            "is_in_regulated_region_or_unknown": validated.is_request_in_eea_or_unknown,
        }
    )

    if not validated.is_request_in_eea_or_unknown:
        return updated

    if requires_invalidation(previous, new_known_providers, has_npa):
        updated = updated.model_copy(
            update={
                "status": ConsentStatus.UNKNOWN,
                "consented_providers": frozenset(),
                "consent_source": ConsentSource.SDK,
            }
        )

    return updated

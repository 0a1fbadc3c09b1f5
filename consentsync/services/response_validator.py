"""Response validator — parse, then check, the consent server's answer.

Pure function of the raw payload; never touches persisted state.

Rules, in order:
1. Region flag absent                      → MalformedResponse
2. Region flag true and companies absent   → MalformedResponse
3. Region flag false                       → valid (lookup list ignored)
4. Any lookup_failed / not_found entry     → PartialLookupFailure
"""

from __future__ import annotations

import structlog
from pydantic import ValidationError

from consentsync.errors import MalformedResponse, PartialLookupFailure
from consentsync.schemas.server import AdNetworkLookup, ServerResponse, ValidatedResponse

logger = structlog.get_logger()


def _lookup_id(entry: AdNetworkLookup) -> str:
    return entry.ad_network_id if entry.ad_network_id is not None else "null"


def parse_response(raw: str) -> ServerResponse:
    try:
        return ServerResponse.model_validate_json(raw)
    except ValidationError as e:
        logger.warning("consent_response_unparseable", errors=e.error_count())
        raise MalformedResponse() from e


def validate(raw: str) -> ValidatedResponse:
    """Return a validated response or raise a ConsentError subclass."""
    response = parse_response(raw)

    if response.is_request_in_eea_or_unknown is None:
        raise MalformedResponse()

    if response.is_request_in_eea_or_unknown and response.companies is None:
        raise MalformedResponse()

    lookups = tuple(response.ad_network_ids or ())
    validated = ValidatedResponse(
        is_request_in_eea_or_unknown=response.is_request_in_eea_or_unknown,
        companies=tuple(response.companies) if response.companies is not None else None,
        ad_network_ids=lookups,
        raw=raw,
    )

    if not response.is_request_in_eea_or_unknown:
        return validated

    lookup_failed = {_lookup_id(entry) for entry in lookups if entry.lookup_failed}
    not_found = {_lookup_id(entry) for entry in lookups if entry.not_found}

    if lookup_failed or not_found:
        raise PartialLookupFailure(lookup_failed, not_found)

    return validated

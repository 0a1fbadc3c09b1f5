"""Builds the pubvendors request URL for a consent info update."""

from __future__ import annotations

from collections.abc import Sequence

import httpx

from consentsync.schemas.consent import DebugGeography
from consentsync.services.identity_gate import IdentityGate


def build_request_url(
    base_url: str,
    publisher_ids: Sequence[str],
    platform: str,
    version: str,
    protocol_version: str,
    gate: IdentityGate,
    debug_geography: DebugGeography = DebugGeography.DISABLED,
) -> httpx.URL:
    """Encode publisher ids and SDK identity as query parameters.

    Publisher ids keep the caller's order. ``debug_geo`` is only added when
    the identity gate reports a test context and an override is set, so a
    debug setting never reaches production traffic.
    """
    params: list[tuple[str, str]] = [
        ("pubs", ",".join(publisher_ids)),
        ("es", protocol_version),
        ("plat", platform),
        ("v", version),
    ]
    if debug_geography != DebugGeography.DISABLED and gate.is_test_context():
        params.append(("debug_geo", str(debug_geography.value)))

    return httpx.URL(base_url).copy_merge_params(params)

"""Builders for providers and canned consent server responses."""

from __future__ import annotations

import json

import httpx

from consentsync.schemas.consent import AdProvider

SERVER_URL = "https://consent.test/getconfig/pubvendors"


def provider(company_id: str) -> AdProvider:
    return AdProvider(
        id=company_id,
        name=f"Company {company_id}",
        privacy_policy_url=f"https://{company_id.lower()}.example/privacy",
    )


def provider_json(company_id: str) -> dict:
    return provider(company_id).model_dump(by_alias=True)


def server_payload(
    in_eea: bool | None = True,
    companies: list[str] | None = None,
    ad_network_ids: list[dict] | None = None,
) -> str:
    """Encode a pubvendors response; None fields are left out entirely."""
    payload: dict = {}
    if in_eea is not None:
        payload["is_request_in_eea_or_unknown"] = in_eea
    if companies is not None:
        payload["companies"] = [provider_json(c) for c in companies]
    if ad_network_ids is not None:
        payload["ad_network_ids"] = ad_network_ids
    return json.dumps(payload)


class StubServer:
    """Canned consent server behind an httpx.MockTransport."""

    def __init__(self, body: str = "", status_code: int = 200):
        self.body = body
        self.status_code = status_code
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, text=self.body)

"""Consent manager — the caller-facing consent information API.

Owns the identity gate and the consent store, and serializes every
load → mutate → save cycle on the record behind one lock. Update
requests are queued: a second request waits for the first to finish
its fetch and merge before starting its own.

Usage:
    manager = ConsentManager(store, gate)
    status = await manager.update_consent_info(["pub-123"])
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Protocol

import httpx
import structlog

from consentsync.config import settings
from consentsync.errors import ConsentError, NetworkFailure, UnderAgeOfConsentError
from consentsync.schemas.consent import (
    AdProvider,
    ConsentRecord,
    ConsentSource,
    ConsentStatus,
    DebugGeography,
    FormOptions,
    FormResult,
)
from consentsync.services.consent_form import build_form_info, parse_form_status
from consentsync.services.consent_store import ConsentStore
from consentsync.services.identity_gate import IdentityGate
from consentsync.services.merge import merge, requires_invalidation
from consentsync.services.request_builder import build_request_url
from consentsync.services.response_validator import validate

logger = structlog.get_logger()


class ConsentInfoUpdateListener(Protocol):
    """Receives exactly one of the two callbacks per update request."""

    def on_consent_info_updated(self, status: ConsentStatus) -> None: ...

    def on_failed_to_update_consent_info(self, reason: str) -> None: ...


class ConsentManager:
    """Reads, updates and persists the consent record of one installation."""

    def __init__(
        self,
        store: ConsentStore,
        gate: IdentityGate,
        server_url: str = settings.CONSENT_SERVER_URL,
        protocol_version: str = settings.CONSENT_PROTOCOL_VERSION,
        timeout: float = settings.HTTP_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.store = store
        self.gate = gate
        self.server_url = server_url
        self.protocol_version = protocol_version
        self.timeout = timeout
        self.transport = transport
        self.debug_geography = DebugGeography.DISABLED
        self._record_lock = asyncio.Lock()
        self._update_lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()

    # --- Update ---

    async def _fetch(self, url: httpx.URL) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(url)
        except httpx.HTTPError as e:
            raise NetworkFailure(str(e) or type(e).__name__) from e

        if resp.status_code != httpx.codes.OK:
            raise NetworkFailure(resp.reason_phrase or f"HTTP {resp.status_code}", resp.status_code)
        return resp.text

    async def update_consent_info(self, publisher_ids: Sequence[str]) -> ConsentStatus:
        """Fetch, validate and merge consent info; return the resulting status.

        Raises a ConsentError subclass on failure. Nothing is persisted
        unless the response validated.
        """
        async with self._update_lock:
            async with self._record_lock:
                identity = await self.store.load()

            url = build_request_url(
                self.server_url,
                publisher_ids,
                platform=identity.sdk_platform,
                version=identity.sdk_version,
                protocol_version=self.protocol_version,
                gate=self.gate,
                debug_geography=self.debug_geography,
            )
            raw = await self._fetch(url)
            validated = validate(raw)

            async with self._record_lock:
                previous = await self.store.load()
                updated = merge(validated, publisher_ids, previous)
                await self.store.save(updated)

        invalidated = validated.is_request_in_eea_or_unknown and requires_invalidation(
            previous, updated.known_providers, updated.has_non_personalized_publisher_id
        )

        logger.info(
            "consent_update_succeeded",
            status=updated.status.value,
            providers=len(updated.known_providers),
            in_eea_or_unknown=updated.is_in_regulated_region_or_unknown,
            consent_invalidated=invalidated,
        )
        return updated.status

    def request_consent_update(
        self,
        publisher_ids: Sequence[str],
        listener: ConsentInfoUpdateListener,
    ) -> asyncio.Task:
        """Schedule an update and report the outcome to ``listener``.

        Must be called from a running event loop. The returned task never
        raises; the outcome is delivered only through the listener.
        """
        if self.gate.is_test_context():
            logger.info("consent_request_from_test_device")
        else:
            logger.info(
                "consent_request_from_device",
                hint=f'Use add_test_device("{self.gate.hashed_device_id}") to enable debug geography on this device.',
            )

        task = asyncio.create_task(self._run_update(list(publisher_ids), listener))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run_update(
        self,
        publisher_ids: list[str],
        listener: ConsentInfoUpdateListener,
    ) -> None:
        try:
            status = await self.update_consent_info(publisher_ids)
        except ConsentError as e:
            logger.warning("consent_update_failed", error=str(e), error_type=type(e).__name__)
            listener.on_failed_to_update_consent_info(str(e))
            return
        except Exception as e:
            logger.exception("consent_update_crashed")
            listener.on_failed_to_update_consent_info(str(e) or type(e).__name__)
            return
        listener.on_consent_info_updated(status)

    # --- Status ---

    async def set_status(
        self,
        status: ConsentStatus,
        source: ConsentSource = ConsentSource.PROGRAMMATIC,
    ) -> None:
        """Record a consent decision. Consent covers all known providers or none."""
        async with self._record_lock:
            await self._save_status(await self.store.load(), status, source)
        logger.info("consent_status_set", status=status.value, source=source.value)

    async def _save_status(
        self,
        record: ConsentRecord,
        status: ConsentStatus,
        source: ConsentSource,
    ) -> None:
        consented = frozenset() if status == ConsentStatus.UNKNOWN else record.known_providers
        await self.store.save(
            record.model_copy(
                update={
                    "status": status,
                    "consented_providers": consented,
                    "consent_source": source,
                }
            )
        )

    async def get_status(self) -> ConsentStatus:
        async with self._record_lock:
            return (await self.store.load()).status

    async def get_ad_providers(self) -> list[AdProvider]:
        async with self._record_lock:
            record = await self.store.load()
        return sorted(record.known_providers, key=AdProvider.sort_key)

    async def is_request_in_eea_or_unknown(self) -> bool:
        async with self._record_lock:
            return (await self.store.load()).is_in_regulated_region_or_unknown

    # --- Under-age tag ---

    async def tag_under_age(self, under_age_of_consent: bool) -> None:
        async with self._record_lock:
            record = await self.store.load()
            await self.store.save(
                record.model_copy(update={"under_age_of_consent_tag": under_age_of_consent})
            )

    async def is_tagged_under_age(self) -> bool:
        async with self._record_lock:
            return (await self.store.load()).under_age_of_consent_tag

    # --- Consent form ---

    async def ensure_form_allowed(self) -> None:
        if await self.is_tagged_under_age():
            raise UnderAgeOfConsentError()

    async def form_info(self, options: FormOptions) -> dict:
        await self.ensure_form_allowed()
        async with self._record_lock:
            record = await self.store.load()
        return build_form_info(options, record)

    async def apply_form_result(self, status: str | None) -> FormResult:
        """Persist the decision a consent dialog reported on dismissal."""
        result = parse_form_status(status)
        async with self._record_lock:
            record = await self.store.load()
            if record.under_age_of_consent_tag:
                raise UnderAgeOfConsentError()
            await self._save_status(record, result.status, ConsentSource.FORM)
        logger.info("consent_status_set", status=result.status.value, source=ConsentSource.FORM.value)
        return result

    # --- Test devices ---

    def add_test_device(self, hashed_device_id: str) -> None:
        self.gate.register_test_identity(hashed_device_id)

    def is_test_device(self) -> bool:
        return self.gate.is_test_context()

    async def reset(self) -> None:
        """Restore the default record and forget registered test devices."""
        async with self._record_lock:
            await self.store.clear()
            self.gate.reset()
        logger.info("consent_reset")

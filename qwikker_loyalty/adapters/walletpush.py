"""WalletPush WalletPassBackend adapter."""

from __future__ import annotations

import logging
from contextlib import contextmanager

import httpx

from qwikker_loyalty.conf import loyalty_settings
from qwikker_loyalty.protocols.wallet import IssuedPass, PassHolder

logger = logging.getLogger(__name__)


class WalletPushBackend:
    """
    Adapter that implements WalletPassBackend over WalletPush's external API.

    - issue_pass(): POST /templates/{template_id}/pass
    - update_fields(): PUT /passes/{pass_type_id}/{serial}/values/{field}

    Credentials are per program (set by an admin on activation).

    Configuration in settings.py:
        QWIKKER_LOYALTY = {
            "WALLET_PASS_BACKEND": "qwikker_loyalty.adapters.walletpush.WalletPushBackend",
            "WALLETPUSH_BASE_URL": "https://app.walletpush.io/api/v1",
        }
    """

    def __init__(self, client: httpx.Client | None = None, base_url: str | None = None):
        self.base_url = (base_url or loyalty_settings.WALLETPUSH_BASE_URL).rstrip("/")
        self.client = client

    @contextmanager
    def _session(self):
        """The injected client, or a pooled client closed after the call."""
        if self.client is not None:
            yield self.client
            return
        with httpx.Client(timeout=loyalty_settings.HTTP_TIMEOUT) as client:
            yield client

    def issue_pass(self, program, holder: PassHolder, fields: dict[str, str]) -> IssuedPass | None:
        url = f"{self.base_url}/templates/{program.walletpush_template_id}/pass"
        # Field names must match the template placeholders exactly.
        body = {
            **fields,
            "First_Name": holder.first_name,
            "Last_Name": holder.last_name,
            "Email": holder.email,
        }
        try:
            with self._session() as client:
                response = client.post(
                    url, json=body, headers=self._headers(program.walletpush_api_key)
                )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError):
            logger.exception(
                "WalletPush issue_pass failed (template=%s)", program.walletpush_template_id
            )
            return None

        serial = data.get("serialNumber") or data.get("serial") or data.get("id")
        if not serial:
            logger.error("WalletPush issue_pass: response has no serial (%s)", list(data))
            return None

        apple = data.get("apple") or {}
        google = data.get("google") or {}
        apple_url = data.get("appleUrl") or data.get("apple_url") or apple.get("downloadUrl") or ""
        # The install page wraps the .pkpass; link straight to the download.
        if "/api/pass-install/" in apple_url:
            apple_url = apple_url.replace("/api/pass-install/", "/api/apple-pass/") + "/download"
        google_url = data.get("googleUrl") or data.get("google_url") or google.get("saveUrl")

        return IssuedPass(serial=str(serial), apple_url=apple_url or None, google_url=google_url or None)

    def update_fields(self, program, serial: str, fields: dict[str, str]) -> bool:
        ok = True
        names = list(fields)
        with self._session() as client:
            for index, name in enumerate(names):
                # One device push per batch: only the last PUT asks for it.
                push = index == len(names) - 1
                ok = self._update_field(client, program, serial, name, fields[name], push) and ok
        return ok

    def _update_field(self, client, program, serial: str, name: str, value: str, push: bool) -> bool:
        url = f"{self.base_url}/passes/{program.walletpush_pass_type_id}/{serial}/values/{name}"
        try:
            response = client.put(
                url,
                json={"value": value, "push": push},
                headers=self._headers(program.walletpush_api_key),
            )
            response.raise_for_status()
        except httpx.HTTPError:
            logger.warning("WalletPush update failed for %s on %s", name, serial, exc_info=True)
            return False
        return True

    @staticmethod
    def _headers(api_key: str) -> dict[str, str]:
        return {"Authorization": api_key, "Content-Type": "application/json"}

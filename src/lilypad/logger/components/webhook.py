"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Webhook sink posting messages as Discord-style JSON payloads.
"""

from __future__ import annotations

import asyncio
import json
import urllib.error
import urllib.request
from collections.abc import Callable

from ...errors import LilypadError
from .base import LoggerComponent


class WebhookDeliveryError(LilypadError):
    """Raised when a webhook endpoint rejects or cannot receive a message."""


class WebhookLoggerComponent(LoggerComponent):
    """
    POST ``{"content": message}`` to a webhook URL.

    Keep webhook URLs out of version control; they grant write access to the
    target channel.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_s: float = 10.0,
        post: Callable[[str, bytes], bytes] | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(name=name)
        self._url = url
        self._timeout_s = timeout_s
        self._post = post or self.http_post

    async def send(self, message: str) -> None:
        payload = json.dumps({"content": message}).encode("utf-8")
        await asyncio.to_thread(self._post, self._url, payload)

    def http_post(self, url: str, payload: bytes) -> bytes:
        req = urllib.request.Request(
            url,
            data=payload,
            method="POST",
            headers={"Content-Type": "application/json"},
        )
        try:
            with urllib.request.urlopen(req, timeout=self._timeout_s) as resp:  # noqa: S310
                return resp.read()
        except urllib.error.HTTPError as e:
            body = ""
            try:
                body = e.read().decode("utf-8", errors="replace")
            except Exception:  # noqa: BLE001
                body = ""
            raise WebhookDeliveryError(f"HTTP {e.code} posting to webhook: {body or e.reason}") from e
        except urllib.error.URLError as e:
            raise WebhookDeliveryError(f"Network error posting to webhook: {e.reason}") from e

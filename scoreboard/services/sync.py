import asyncio
import logging
from typing import Any

import aiohttp
from pydantic import ValidationError

from scoreboard.core.config import get_settings
from scoreboard.schemas.ledger import Transaction

logger = logging.getLogger(__name__)

PLACEHOLDER_URL = "YOUR_GSCRIPT_URL_HERE"


class SyncError(Exception):
    pass


class SyncNotConfigured(SyncError):
    def __init__(self) -> None:
        super().__init__("Sync endpoint is not configured. Set SYNC_ENDPOINT_URL to the Apps Script web app URL.")


class SyncNetworkError(SyncError):
    def __init__(self, message: str, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)


class SyncRemoteError(SyncError):
    pass


class RemoteSyncClient:
    """Client for the spreadsheet-backed transaction log.

    ``submit`` appends one transaction and returns the id the remote store
    assigned. ``fetch_all`` returns the full remote list. Each call is a
    single attempt and neither touches the local ledger.
    """

    def __init__(self, endpoint_url: str | None = None, timeout_seconds: float | None = None) -> None:
        settings = get_settings()
        url = settings.sync_endpoint_url if endpoint_url is None else endpoint_url
        self.endpoint_url = (url or "").strip()
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds or settings.sync_timeout_seconds)

    @property
    def configured(self) -> bool:
        return bool(self.endpoint_url) and self.endpoint_url != PLACEHOLDER_URL

    async def submit(self, payload: dict[str, Any]) -> str:
        data = await self._request_json("POST", payload)
        new_id = data.get("id")
        if isinstance(new_id, int) and not isinstance(new_id, bool):
            new_id = str(new_id)
        if not isinstance(new_id, str) or not new_id:
            raise SyncRemoteError("Remote response has no transaction id")
        logger.info("Remote store accepted transaction %s for student %s.", new_id, payload.get("studentId"))
        return new_id

    async def fetch_all(self) -> list[Transaction]:
        data = await self._request_json("GET")
        rows = data.get("transactions")
        if not isinstance(rows, list):
            raise SyncRemoteError("Remote response has no transactions list")
        try:
            transactions = [Transaction.model_validate(row) for row in rows]
        except ValidationError as exc:
            raise SyncRemoteError(f"Remote transaction list is malformed: {exc}") from exc
        logger.info("Fetched %d transaction(s) from remote store.", len(transactions))
        return transactions

    async def _request_json(self, method: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        if not self.configured:
            raise SyncNotConfigured()

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.request(method, self.endpoint_url, json=payload) as resp:
                    if resp.status < 200 or resp.status >= 300:
                        raise SyncNetworkError(f"Network error: {resp.status}", status=resp.status)
                    try:
                        data = await resp.json(content_type=None)
                    except ValueError as exc:
                        raise SyncRemoteError("Remote response is not valid JSON") from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise SyncNetworkError(f"Network error: {exc or type(exc).__name__}") from exc

        if not isinstance(data, dict) or not isinstance(data.get("ok"), bool):
            raise SyncRemoteError("Unexpected remote response format")
        if not data["ok"]:
            error = data.get("error")
            raise SyncRemoteError(error if isinstance(error, str) and error else "Unknown error")
        return data

"""Ledger relay HTTP client implementing idempotent onboarding commits"""

from typing import Optional

import httpx

from merchant_gateway.config import settings
from merchant_gateway.domain.exceptions import AlreadyCommittedError, LedgerRejectedError, LedgerUnavailableError
from merchant_gateway.domain.models import AssessmentKey, CommitPayload, CommitRecord, CommitStatus, TxHandle


class LedgerClient:
    """
    Client for the ledger relay that submits onboarding records on-chain.

    Single-shot: no retries here. The orchestrator owns retry discipline and
    reuses the same idempotency key on every attempt.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.ledger_api_base).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def commit(self, payload: CommitPayload, idempotency_key: AssessmentKey) -> TxHandle:
        """
        Submit an onboarding record.

        Raises:
            AlreadyCommittedError: Key was already applied (409), with the applied tx hash and payload digest
            LedgerUnavailableError: Timeout, network failure or 5xx
            LedgerRejectedError: Any other non-success status or unreadable reply
        """
        async with self._client() as client:
            try:
                response = await client.post(
                    f"{self.base_url}/commits",
                    json=payload.to_dict(),
                    headers={"Idempotency-Key": idempotency_key},
                )
            except httpx.TimeoutException as e:
                raise LedgerUnavailableError(f"Ledger timeout after {self.timeout}s") from e
            except httpx.RequestError as e:
                raise LedgerUnavailableError(f"Ledger unreachable: {e}") from e

        if response.status_code == 409:
            body = _json_or_empty(response)
            raise AlreadyCommittedError(
                idempotency_key,
                tx_hash=body.get("tx_hash"),
                payload_digest=body.get("payload_digest"),
            )
        if response.status_code >= 500:
            raise LedgerUnavailableError(f"Ledger error: {response.status_code}")
        if response.status_code not in (200, 201):
            raise LedgerRejectedError(f"Ledger rejected commit: {response.status_code} {response.text}")

        try:
            return TxHandle(tx_hash=response.json()["tx_hash"], assessment_key=idempotency_key)
        except (KeyError, ValueError, TypeError) as e:
            raise LedgerRejectedError(f"Invalid commit response from ledger: {e}") from e

    async def status(self, idempotency_key: AssessmentKey) -> CommitStatus:
        """Look up the ledger-side state of a commit by its idempotency key"""
        response = await self._get_commit(idempotency_key)
        if response is None:
            return CommitStatus.NOT_FOUND

        try:
            return CommitStatus(response.json()["status"])
        except (KeyError, ValueError, TypeError) as e:
            raise LedgerRejectedError(f"Invalid status response from ledger: {e}") from e

    async def lookup(self, idempotency_key: AssessmentKey) -> Optional[CommitRecord]:
        """Fetch the applied record for a key, or None when nothing was applied"""
        response = await self._get_commit(idempotency_key)
        if response is None:
            return None

        try:
            data = response.json()
            return CommitRecord(
                assessment_key=idempotency_key,
                tx_hash=data["tx_hash"],
                payload_digest=data.get("payload_digest"),
            )
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise LedgerRejectedError(f"Invalid commit record from ledger: {e}") from e

    async def _get_commit(self, idempotency_key: AssessmentKey) -> Optional[httpx.Response]:
        async with self._client() as client:
            try:
                response = await client.get(f"{self.base_url}/commits/{idempotency_key}")
            except httpx.TimeoutException as e:
                raise LedgerUnavailableError(f"Ledger timeout after {self.timeout}s") from e
            except httpx.RequestError as e:
                raise LedgerUnavailableError(f"Ledger unreachable: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code >= 500:
            raise LedgerUnavailableError(f"Ledger error: {response.status_code}")
        if response.status_code != 200:
            raise LedgerRejectedError(f"Ledger status lookup failed: {response.status_code}")
        return response


def _json_or_empty(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}

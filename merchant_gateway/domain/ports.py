"""Interfaces of the external collaborators the onboarding pipeline depends on"""

from typing import Optional, Protocol

from merchant_gateway.domain.models import (
    AssessmentKey,
    CommitPayload,
    CommitRecord,
    CommitStatus,
    TxHandle,
    VerificationAttestation,
    VerificationRequest,
)


class LedgerGateway(Protocol):
    """
    System of record for onboarding commits.

    Implementations must apply a payload at most once per idempotency key:
    a repeated key raises AlreadyCommittedError, carrying the existing tx hash
    and the digest of the payload that was applied when known. Transient
    failures raise LedgerUnavailableError, other refusals LedgerRejectedError.
    """

    async def commit(self, payload: CommitPayload, idempotency_key: AssessmentKey) -> TxHandle:
        ...

    async def status(self, idempotency_key: AssessmentKey) -> CommitStatus:
        ...

    async def lookup(self, idempotency_key: AssessmentKey) -> Optional[CommitRecord]:
        ...


class IdentityVerifier(Protocol):
    """Zero-knowledge identity verification service"""

    async def verify(self, request: VerificationRequest) -> VerificationAttestation:
        ...

"""Onboarding orchestrator - policy gate, scoring and idempotent ledger commit"""

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from merchant_gateway.domain.exceptions import (
    AlreadyCommittedError,
    CommitCancelledError,
    CommitError,
    LedgerRejectedError,
    LedgerUnavailableError,
    PolicyError,
)
from merchant_gateway.domain.idempotency import derive_assessment_key
from merchant_gateway.domain.models import (
    AssessmentKey,
    CommitPayload,
    CommitStatus,
    MerchantProfile,
    OnboardingResult,
    TxHandle,
    VerificationAttestation,
)
from merchant_gateway.domain.payload import build_commit_payload, payload_digest
from merchant_gateway.domain.policy import AttestationPolicy, validate_attestation
from merchant_gateway.domain.ports import LedgerGateway
from merchant_gateway.domain.scoring import score_profile
from merchant_gateway.infrastructure.observability.metrics import (
    ledger_commit_failure_counter,
    ledger_commit_latency_histogram,
    ledger_commit_retry_counter,
)

logger = logging.getLogger(__name__)


class SubmissionState(str, Enum):
    RECEIVED = "received"
    POLICY_CHECKED = "policy_checked"
    SCORED = "scored"
    KEY_DERIVED = "key_derived"
    COMMITTING = "committing"
    COMMITTED = "committed"
    FAILED = "failed"


_STATE_ORDER = list(SubmissionState)
TERMINAL_STATES = {SubmissionState.COMMITTED, SubmissionState.FAILED}


class SubmissionTracker:
    """Forward-only state machine for a single submission"""

    def __init__(self, submitter: str):
        self.submitter = submitter
        self.state = SubmissionState.RECEIVED
        self.assessment_key: Optional[str] = None
        self._log()

    def advance(self, state: SubmissionState) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"Submission already finished in state {self.state.value}")
        if state != SubmissionState.FAILED and _STATE_ORDER.index(state) <= _STATE_ORDER.index(self.state):
            raise RuntimeError(f"Illegal transition {self.state.value} -> {state.value}")
        self.state = state
        self._log()

    def _log(self) -> None:
        logger.info(
            "Submission state changed",
            extra={
                "submitter": self.submitter,
                "assessment_key": self.assessment_key,
                "state": self.state.value,
            },
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OnboardingOrchestrator:
    """
    Runs one merchant onboarding submission end to end.

    Holds no per-request state: concurrent submit() calls share only the
    immutable policy and the gateway.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        policy: AttestationPolicy,
        max_retries: int = 2,
        commit_timeout: float = 10.0,
        backoff_base: float = 0.5,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.gateway = gateway
        self.policy = policy
        self.max_retries = max_retries
        self.commit_timeout = commit_timeout
        self.backoff_base = backoff_base
        self.clock = clock

    async def submit(
        self,
        profile: MerchantProfile,
        attestation: VerificationAttestation,
        submitter: str,
        nonce: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> OnboardingResult:
        """
        Gate, score, key and commit a merchant profile.

        Flow:
        1. Check the attestation against compliance policy
        2. Score the profile
        3. Derive the assessment key (nonce defaults to the entry timestamp in ms)
        4. Commit to the ledger, retrying transient failures with the same key
        5. Return the onboarding result

        Raises:
            PolicyError: Attestation rejected; nothing computed or sent
            AlreadyCommittedError: Ledger already holds this assessment key
            CommitError: Ledger write failed after retries (carries key + assessment)
            CommitCancelledError: cancel_event fired before the ledger replied
        """
        submitted_at = self.clock()
        if nonce is None:
            nonce = int(submitted_at.timestamp() * 1000)

        tracker = SubmissionTracker(submitter)

        ok, reason = validate_attestation(attestation, self.policy)
        if not ok:
            tracker.advance(SubmissionState.FAILED)
            logger.warning("Attestation rejected by policy", extra={"submitter": submitter, "reason": reason})
            raise PolicyError(reason)
        tracker.advance(SubmissionState.POLICY_CHECKED)

        assessment = score_profile(profile)
        tracker.advance(SubmissionState.SCORED)

        assessment_key = derive_assessment_key(profile, submitter, nonce)
        tracker.assessment_key = assessment_key
        tracker.advance(SubmissionState.KEY_DERIVED)

        payload = build_commit_payload(profile, assessment, assessment_key, submitter)
        tracker.advance(SubmissionState.COMMITTING)

        try:
            handle = await self._commit_with_retry(payload, assessment_key, cancel_event)
        except AlreadyCommittedError as e:
            tracker.advance(SubmissionState.FAILED)
            raise AlreadyCommittedError(
                assessment_key, tx_hash=e.tx_hash, assessment=assessment, payload_digest=e.payload_digest
            ) from e
        except CommitCancelledError as e:
            tracker.advance(SubmissionState.FAILED)
            logger.warning("Commit cancelled by caller", extra={"assessment_key": assessment_key})
            raise CommitCancelledError(assessment_key, assessment=assessment) from e
        except (LedgerUnavailableError, LedgerRejectedError) as e:
            tracker.advance(SubmissionState.FAILED)
            logger.error(f"Ledger commit failed: {e}", extra={"assessment_key": assessment_key})
            raise CommitError(e, assessment_key, assessment) from e

        tracker.advance(SubmissionState.COMMITTED)
        return OnboardingResult(
            assessment_key=assessment_key,
            risk_assessment=assessment,
            commit_handle=handle,
            timestamp=submitted_at,
        )

    async def status(self, assessment_key: AssessmentKey) -> CommitStatus:
        """Resolve the ledger-side state of a commit, e.g. after cancellation"""
        try:
            return await asyncio.wait_for(self.gateway.status(assessment_key), self.commit_timeout)
        except asyncio.TimeoutError as e:
            raise LedgerUnavailableError(f"Ledger status lookup timed out after {self.commit_timeout}s") from e

    async def _commit_with_retry(
        self,
        payload: CommitPayload,
        assessment_key: AssessmentKey,
        cancel_event: Optional[asyncio.Event],
    ) -> TxHandle:
        """
        Commit with bounded retry.

        Retry strategy:
        - Up to max_retries extra attempts, only on transient failures (timeouts, LedgerUnavailableError)
        - Exponential backoff: base, 2*base, 4*base, ...
        - Every attempt presents the same idempotency key
        - "Already committed" on a retry is success only when the ledger holds our payload digest
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                with ledger_commit_latency_histogram.time():
                    return await self._commit_once(payload, assessment_key, cancel_event)

            except AlreadyCommittedError as e:
                if attempt > 1:
                    handle = await self._resolve_own_commit(e, payload, assessment_key)
                    if handle is not None:
                        logger.info(
                            "Earlier commit attempt already applied",
                            extra={"assessment_key": assessment_key, "attempt": attempt, "tx_hash": handle.tx_hash},
                        )
                        return handle
                raise

            except (LedgerUnavailableError, asyncio.TimeoutError) as e:
                ledger_commit_failure_counter.inc()

                if attempt > self.max_retries:
                    if isinstance(e, asyncio.TimeoutError):
                        raise LedgerUnavailableError(
                            f"Ledger commit timed out after {self.commit_timeout}s"
                        ) from e
                    raise

                backoff = self.backoff_base * (2 ** (attempt - 1))
                ledger_commit_retry_counter.inc()
                logger.warning(
                    "Retrying ledger commit",
                    extra={"assessment_key": assessment_key, "attempt": attempt, "backoff_seconds": backoff},
                )
                await self._backoff(backoff, assessment_key, cancel_event)

    async def _resolve_own_commit(
        self,
        conflict: AlreadyCommittedError,
        payload: CommitPayload,
        assessment_key: AssessmentKey,
    ) -> Optional[TxHandle]:
        """
        Decide whether a duplicate-key answer on a retry is this submission's own lost reply.

        Only a ledger record whose payload digest equals ours counts. A conflict
        that does not carry the tx hash and digest is resolved by looking the key up.
        Returns None when the record belongs to a different request.
        """
        tx_hash, applied_digest = conflict.tx_hash, conflict.payload_digest
        if tx_hash is None or applied_digest is None:
            try:
                record = await asyncio.wait_for(self.gateway.lookup(assessment_key), self.commit_timeout)
            except asyncio.TimeoutError as e:
                raise LedgerUnavailableError(f"Ledger lookup timed out after {self.commit_timeout}s") from e
            if record is None:
                return None
            tx_hash, applied_digest = record.tx_hash, record.payload_digest

        if applied_digest != payload_digest(payload):
            logger.warning(
                "Assessment key already holds a different payload",
                extra={"assessment_key": assessment_key, "tx_hash": tx_hash},
            )
            return None
        return TxHandle(tx_hash=tx_hash, assessment_key=assessment_key)

    async def _commit_once(
        self,
        payload: CommitPayload,
        assessment_key: AssessmentKey,
        cancel_event: Optional[asyncio.Event],
    ) -> TxHandle:
        if cancel_event is not None and cancel_event.is_set():
            raise CommitCancelledError(assessment_key)

        attempt = asyncio.wait_for(self.gateway.commit(payload, assessment_key), self.commit_timeout)
        if cancel_event is None:
            return await attempt

        commit = asyncio.ensure_future(attempt)
        cancelled = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({commit, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (commit, cancelled):
                if not task.done():
                    task.cancel()

        # A reply that raced the cancellation still counts
        if commit in done:
            return commit.result()
        raise CommitCancelledError(assessment_key)

    async def _backoff(
        self,
        seconds: float,
        assessment_key: AssessmentKey,
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        if cancel_event is None:
            await asyncio.sleep(seconds)
            return
        if cancel_event.is_set():
            raise CommitCancelledError(assessment_key)
        try:
            await asyncio.wait_for(cancel_event.wait(), seconds)
        except asyncio.TimeoutError:
            return
        raise CommitCancelledError(assessment_key)

"""POST /v1/onboarding - merchant risk assessment and ledger commit endpoint"""

import asyncio
import time
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from merchant_gateway.api.v1.schemas import (
    CommitStatusResponse,
    OnboardingRequest,
    OnboardingResponse,
    RiskAssessmentSchema,
)
from merchant_gateway.api.dependencies import get_orchestrator, get_request_id, get_verifier_client
from merchant_gateway.infrastructure.database.session import get_db
from merchant_gateway.infrastructure.database.repositories import OnboardingRepository
from merchant_gateway.domain.exceptions import (
    AlreadyCommittedError,
    CommitCancelledError,
    CommitError,
    InputValidationError,
    LedgerRejectedError,
    LedgerUnavailableError,
    PolicyError,
    ProofInvalidError,
    VerifierUnavailableError,
)
from merchant_gateway.domain.models import AssessmentKey
from merchant_gateway.domain.ports import IdentityVerifier
from merchant_gateway.domain.validation import validate_profile, validate_verification_request
from merchant_gateway.services.orchestrator import OnboardingOrchestrator
from merchant_gateway.infrastructure.observability.metrics import (
    policy_rejection_counter,
    record_onboarding,
    verifier_failure_counter,
)
from merchant_gateway.infrastructure.observability.logging import log_onboarding

router = APIRouter()

DISCONNECT_POLL_SECONDS = 0.5


async def watch_disconnect(
    request: Request,
    cancel_event: asyncio.Event,
    interval: float = DISCONNECT_POLL_SECONDS,
) -> None:
    """Set cancel_event once the client goes away"""
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logging.warning("Client disconnected during onboarding", extra={"request_id": get_request_id(request)})
            cancel_event.set()
            return
        await asyncio.sleep(interval)


@router.post("/onboarding", response_model=OnboardingResponse)
async def create_onboarding(
    request_body: OnboardingRequest,
    request: Request,
    db: Session = Depends(get_db),
    verifier: IdentityVerifier = Depends(get_verifier_client),
    orchestrator: OnboardingOrchestrator = Depends(get_orchestrator),
):
    """
    Assess a merchant and commit the assessment to the ledger.

    Flow:
    1. Validate profile invariants and proof material
    2. Verify identity with the external verifier
    3. Run the orchestrator: policy gate, scoring, key derivation, commit
    4. Persist the attempt to the audit log
    5. Return the assessment key, tx hash and scores
    """
    start_time = time.time()
    request_id = get_request_id(request)
    submitter = request_body.submitter
    repo = OnboardingRepository(db)

    def audit(outcome: str, assessment_key: str, assessment=None, tx_hash=None, error=None) -> None:
        # Audit failures never change the response; the ledger outcome is already final
        try:
            repo.create_record(
                assessment_key=assessment_key,
                submitter=submitter,
                business_name=request_body.profile.business_name,
                outcome=outcome,
                assessment=assessment,
                tx_hash=tx_hash,
                error=error,
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logging.error(
                f"Failed to write audit record: {e}",
                extra={"request_id": request_id, "assessment_key": assessment_key, "outcome": outcome},
            )
        record_onboarding(outcome, assessment.credit_risk.credit_score if assessment else None)
        log_onboarding(request_id, submitter, outcome, assessment_key, (time.time() - start_time) * 1000)

    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(watch_disconnect(request, cancel_event))

    try:
        # 1. Input validation
        profile = request_body.profile.to_domain()
        verification_request = request_body.verification.to_domain(submitter)
        validate_verification_request(verification_request)
        validate_profile(profile)

        # 2. Identity verification
        attestation = await verifier.verify(verification_request)

        # 3. Orchestrated assessment and commit
        result = await orchestrator.submit(
            profile, attestation, submitter, nonce=request_body.nonce, cancel_event=cancel_event
        )

    except InputValidationError as e:
        logging.warning(f"Invalid submission: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail={"error": "validation_failed", "errors": e.errors})

    except ProofInvalidError as e:
        verifier_failure_counter.labels(kind="proof_invalid").inc()
        logging.warning(f"Proof rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail={"error": "proof_invalid", "message": str(e)})

    except VerifierUnavailableError as e:
        verifier_failure_counter.labels(kind="unavailable").inc()
        logging.error(f"Verifier unavailable: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail={"error": "verifier_unavailable"})

    except PolicyError as e:
        policy_rejection_counter.labels(reason=e.reason).inc()
        record_onboarding("policy_rejected")
        logging.warning(f"Policy rejection: {e.reason}", extra={"request_id": request_id})
        raise HTTPException(status_code=403, detail={"error": "policy_rejected", "reason": e.reason})

    except AlreadyCommittedError as e:
        audit("already_committed", e.assessment_key, e.assessment, tx_hash=e.tx_hash, error=str(e))
        raise HTTPException(
            status_code=409,
            detail={"error": "already_committed", "assessment_key": e.assessment_key, "tx_hash": e.tx_hash},
        )

    except CommitError as e:
        audit("commit_failed", e.assessment_key, e.assessment, error=str(e.cause))
        raise HTTPException(
            status_code=502,
            detail={
                "error": "commit_failed",
                "assessment_key": e.assessment_key,
                "risk_assessment": e.assessment.to_dict(),
                "message": str(e.cause),
            },
        )

    except CommitCancelledError as e:
        audit("cancelled", e.assessment_key, e.assessment, error=str(e))
        raise HTTPException(
            status_code=503,
            detail={"error": "commit_cancelled", "assessment_key": e.assessment_key},
        )

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    finally:
        watcher.cancel()

    # 4. Audit log
    audit("committed", result.assessment_key, result.risk_assessment, tx_hash=result.commit_handle.tx_hash)

    return OnboardingResponse(
        assessment_key=result.assessment_key,
        tx_hash=result.commit_handle.tx_hash,
        risk_assessment=RiskAssessmentSchema.from_domain(result.risk_assessment),
        timestamp=result.timestamp,
    )


@router.get("/onboarding/{assessment_key}/status", response_model=CommitStatusResponse)
async def get_commit_status(
    assessment_key: str,
    orchestrator: OnboardingOrchestrator = Depends(get_orchestrator),
):
    """
    Ledger-side state of a commit.

    Callers use this to resolve a cancelled or failed submission before
    resubmitting with the same key.
    """
    try:
        status = await orchestrator.status(AssessmentKey(assessment_key))
    except LedgerUnavailableError as e:
        logging.error(f"Ledger unavailable: {e}")
        raise HTTPException(status_code=503, detail="Ledger service unavailable")
    except LedgerRejectedError as e:
        logging.error(f"Ledger status lookup failed: {e}")
        raise HTTPException(status_code=502, detail="Ledger status lookup failed")

    return CommitStatusResponse(assessment_key=assessment_key, status=status.value)

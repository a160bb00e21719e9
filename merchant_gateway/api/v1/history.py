"""GET /v1/onboarding/history - Fetch a submitter's onboarding attempts"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from merchant_gateway.api.v1.schemas import HistoryResponse, HistoryItem
from merchant_gateway.infrastructure.database.session import get_db
from merchant_gateway.infrastructure.database.repositories import OnboardingRepository

router = APIRouter()


@router.get("/onboarding/history", response_model=HistoryResponse)
def get_onboarding_history(
    submitter: str = Query(..., description="Merchant wallet address"),
    db: Session = Depends(get_db),
):
    """
    Retrieve recent onboarding attempts for a submitter.

    Returns:
        Attempts (committed, failed, duplicate, cancelled) with their credit scores
    """
    repo = OnboardingRepository(db)
    records = repo.get_records_by_submitter(submitter, limit=20)

    items = [
        HistoryItem(
            record_id=str(r.id),
            assessment_key=r.assessment_key,
            business_name=r.business_name,
            outcome=r.outcome,
            tx_hash=r.tx_hash,
            credit_score=r.credit_score,
            created_at=r.created_at.isoformat(),
        )
        for r in records
    ]

    return HistoryResponse(submitter=submitter, records=items)

"""Data access layer for onboarding audit records"""

from typing import List, Optional
from sqlalchemy.orm import Session
from merchant_gateway.infrastructure.database.models import MerchantOnboarding
from merchant_gateway.domain.models import RiskAssessment


class OnboardingRepository:
    """Repository for onboarding attempts"""

    def __init__(self, db: Session):
        self.db = db

    def create_record(
        self,
        assessment_key: str,
        submitter: str,
        business_name: str,
        outcome: str,
        assessment: Optional[RiskAssessment] = None,
        tx_hash: Optional[str] = None,
        error: Optional[str] = None,
    ) -> MerchantOnboarding:
        """Persist onboarding attempt to database"""
        record = MerchantOnboarding(
            assessment_key=assessment_key,
            submitter=submitter.lower(),
            business_name=business_name,
            outcome=outcome,
            tx_hash=tx_hash,
            credit_score=assessment.credit_risk.credit_score if assessment else None,
            default_probability=assessment.credit_risk.default_probability if assessment else None,
            risk_assessment=assessment.to_dict() if assessment else None,
            error=error,
        )
        self.db.add(record)
        self.db.flush()  # Get ID without committing
        return record

    def get_records_by_submitter(self, submitter: str, limit: int = 10) -> List[MerchantOnboarding]:
        """Fetch recent onboarding attempts for a submitter"""
        return (
            self.db.query(MerchantOnboarding)
            .filter(MerchantOnboarding.submitter == submitter.lower())
            .order_by(MerchantOnboarding.created_at.desc())
            .limit(limit)
            .all()
        )

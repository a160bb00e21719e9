"""SQLAlchemy ORM models for the onboarding audit log"""

import uuid
from sqlalchemy import Column, DateTime, Integer, JSON, Text, Uuid
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class MerchantOnboarding(Base):
    """
    One onboarding attempt that reached scoring.

    Audit trail only: the ledger is the system of record, so assessment_key
    is indexed but not unique (duplicate and retried submissions are logged too).
    """

    __tablename__ = "merchant_onboarding"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    assessment_key = Column(Text, nullable=False, index=True)
    submitter = Column(Text, nullable=False, index=True)
    business_name = Column(Text, nullable=False)
    outcome = Column(Text, nullable=False)  # committed | commit_failed | already_committed | cancelled
    tx_hash = Column(Text, nullable=True)
    credit_score = Column(Integer, nullable=True)
    default_probability = Column(Integer, nullable=True)
    risk_assessment = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

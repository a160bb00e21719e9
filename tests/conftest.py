"""Pytest fixtures for testing"""

import asyncio
import hashlib
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from merchant_gateway.api.dependencies import get_orchestrator, get_verifier_client
from merchant_gateway.api.main import create_app
from merchant_gateway.domain.exceptions import AlreadyCommittedError, LedgerUnavailableError
from merchant_gateway.domain.idempotency import content_hash
from merchant_gateway.domain.models import (
    AttestationKind,
    BalanceSheet,
    CashFlow,
    Collateral,
    CommitRecord,
    CommitStatus,
    ComplianceProfile,
    FundIntention,
    FundingAmount,
    FundingDuration,
    MarketContext,
    MerchantProfile,
    MonthlyExpenses,
    MonthlyRevenue,
    PaymentHistory,
    RepaymentCapacity,
    RiskFactors,
    TxHandle,
    VerificationAttestation,
)
from merchant_gateway.domain.policy import AttestationPolicy
from merchant_gateway.infrastructure.database.models import Base
from merchant_gateway.infrastructure.database.session import get_db
from merchant_gateway.services.orchestrator import OnboardingOrchestrator


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

SUBMITTER = "0x" + "ab" * 20
FIXED_NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class InMemoryLedger:
    """
    Ledger double that applies each idempotency key at most once.

    - errors: raised in order, one per commit call, before anything is applied
    - lost_replies: number of commits that are applied but answer with a transient error
    - delay: seconds each commit call takes before answering
    - bare_conflicts: duplicate keys answer without the tx hash and payload digest
    """

    def __init__(self):
        self.commits: dict[str, tuple[str, dict]] = {}
        self.commit_calls: list[str] = []
        self.errors: list[Exception] = []
        self.lost_replies = 0
        self.delay = 0.0
        self.bare_conflicts = False
        self.lookup_calls: list[str] = []

    async def commit(self, payload, idempotency_key):
        self.commit_calls.append(idempotency_key)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.errors:
            raise self.errors.pop(0)
        if idempotency_key in self.commits:
            if self.bare_conflicts:
                raise AlreadyCommittedError(idempotency_key)
            tx_hash, applied = self.commits[idempotency_key]
            raise AlreadyCommittedError(idempotency_key, tx_hash=tx_hash, payload_digest=content_hash(applied))

        tx_hash = "0x" + hashlib.sha256(idempotency_key.encode()).hexdigest()
        self.commits[idempotency_key] = (tx_hash, payload.to_dict())

        if self.lost_replies:
            self.lost_replies -= 1
            raise LedgerUnavailableError("connection reset after commit was applied")
        return TxHandle(tx_hash=tx_hash, assessment_key=idempotency_key)

    async def status(self, idempotency_key):
        return CommitStatus.COMMITTED if idempotency_key in self.commits else CommitStatus.NOT_FOUND

    async def lookup(self, idempotency_key):
        self.lookup_calls.append(idempotency_key)
        if idempotency_key not in self.commits:
            return None
        tx_hash, applied = self.commits[idempotency_key]
        return CommitRecord(idempotency_key, tx_hash, content_hash(applied))


class StubVerifier:
    """Identity verifier double returning a preset attestation or raising a preset error"""

    def __init__(self, attestation: VerificationAttestation):
        self.attestation = attestation
        self.error: Exception | None = None
        self.requests = []

    async def verify(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.attestation


def build_profile(**overrides) -> MerchantProfile:
    """Established, registered merchant with moderate risk; override any top-level field"""
    profile = MerchantProfile(
        business_name="Acme Coffee Roasters",
        business_type="corporation",
        industry="food_and_beverage",
        business_age_months=36,
        legal_structure="formal",
        registration_status="registered",
        monthly_revenue=MonthlyRevenue(current=50000, average=48000, growth_rate=8, seasonality="medium"),
        monthly_expenses=MonthlyExpenses(fixed=20000, variable=15000, total=35000),
        cash_flow=CashFlow(operating=10000, free=6000, working_capital=25000),
        balance_sheet=BalanceSheet(
            total_assets=200000,
            current_assets=60000,
            total_liabilities=80000,
            current_liabilities=30000,
            equity=120000,
        ),
        fund_intention=FundIntention(
            purpose="working_capital",
            amount=FundingAmount(requested=50000, minimum=25000, maximum=75000),
            duration=FundingDuration(preferred=12, minimum=6, maximum=24),
            repayment_capacity=RepaymentCapacity(monthly_capacity=5000, percentage_of_revenue=10),
            collateral=Collateral(available=True, type="equipment", value=40000, liquidity="medium"),
        ),
        risk_factors=RiskFactors(
            payment_history=PaymentHistory(on_time=90, late=8, default=2),
            industry_risks=("seasonal",),
        ),
        market_context=MarketContext(
            primary_market="KE",
            operating_regions=("KE", "UG"),
            market_size="medium",
            competition_level="medium",
            market_growth="growing",
        ),
        compliance_profile=ComplianceProfile(kyc_level="enhanced", aml_risk="low", jurisdiction="KE"),
    )
    return replace(profile, **overrides)


@pytest.fixture
def profile_factory() -> Callable[..., MerchantProfile]:
    return build_profile


@pytest.fixture
def sample_profile() -> MerchantProfile:
    return build_profile()


@pytest.fixture
def valid_attestation() -> VerificationAttestation:
    return VerificationAttestation(
        is_valid=True,
        kind=AttestationKind.PASSPORT,
        nationality="KE",
        age=34,
        proof=b"\x01\x02",
        public_signals=("1", "2"),
        user_context=b"\xaa",
    )


@pytest.fixture
def policy() -> AttestationPolicy:
    return AttestationPolicy()


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def orchestrator(ledger: InMemoryLedger, policy: AttestationPolicy) -> OnboardingOrchestrator:
    return OnboardingOrchestrator(
        gateway=ledger,
        policy=policy,
        max_retries=2,
        commit_timeout=1.0,
        backoff_base=0.0,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def verifier(valid_attestation: VerificationAttestation) -> StubVerifier:
    return StubVerifier(valid_attestation)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session, orchestrator: OnboardingOrchestrator, verifier: StubVerifier) -> TestClient:
    """Create FastAPI test client with test database and collaborator doubles"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_verifier_client] = lambda: verifier
    return TestClient(app)


@pytest.fixture
def onboarding_payload() -> dict:
    """JSON body for POST /v1/onboarding mirroring build_profile()"""
    return {
        "submitter": SUBMITTER,
        "nonce": 1,
        "profile": {
            "business_name": "Acme Coffee Roasters",
            "business_type": "corporation",
            "industry": "food_and_beverage",
            "business_age_months": 36,
            "legal_structure": "formal",
            "registration_status": "registered",
            "monthly_revenue": {"current": 50000, "average": 48000, "growth_rate": 8, "seasonality": "medium"},
            "monthly_expenses": {"fixed": 20000, "variable": 15000, "total": 35000},
            "cash_flow": {"operating": 10000, "free": 6000, "working_capital": 25000},
            "balance_sheet": {
                "total_assets": 200000,
                "current_assets": 60000,
                "total_liabilities": 80000,
                "current_liabilities": 30000,
                "equity": 120000,
            },
            "fund_intention": {
                "purpose": "working_capital",
                "amount": {"requested": 50000, "minimum": 25000, "maximum": 75000},
                "duration": {"preferred": 12, "minimum": 6, "maximum": 24},
                "repayment_capacity": {"monthly_capacity": 5000, "percentage_of_revenue": 10},
                "collateral": {"available": True, "type": "equipment", "value": 40000, "liquidity": "medium"},
            },
            "risk_factors": {
                "payment_history": {"on_time": 90, "late": 8, "default": 2},
                "industry_risks": ["seasonal"],
            },
            "market_context": {
                "primary_market": "KE",
                "operating_regions": ["KE", "UG"],
                "market_size": "medium",
                "competition_level": "medium",
                "market_growth": "growing",
            },
            "compliance_profile": {"kyc_level": "enhanced", "aml_risk": "low", "jurisdiction": "KE"},
        },
        "verification": {
            "proof": "0x0102",
            "public_signals": ["1", "2"],
            "attestation_id": 1,
            "user_context_data": "0xaa",
        },
    }

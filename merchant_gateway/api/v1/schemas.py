"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from merchant_gateway.domain import models

Level = Literal["low", "medium", "high"]


def _hex_bytes(value: str) -> bytes:
    digits = value[2:] if value.startswith("0x") else value
    return bytes.fromhex(digits)


class MonthlyRevenueSchema(BaseModel):
    current: float = Field(0.0, ge=0)
    average: float = Field(0.0, ge=0)
    growth_rate: float = 0.0
    seasonality: Level = "medium"


class MonthlyExpensesSchema(BaseModel):
    fixed: float = Field(0.0, ge=0)
    variable: float = Field(0.0, ge=0)
    total: float = Field(0.0, ge=0)


class CashFlowSchema(BaseModel):
    operating: float = 0.0
    free: float = 0.0
    working_capital: float = Field(0.0, ge=0)


class BalanceSheetSchema(BaseModel):
    total_assets: float = Field(0.0, ge=0)
    current_assets: float = Field(0.0, ge=0)
    total_liabilities: float = Field(0.0, ge=0)
    current_liabilities: float = Field(0.0, ge=0)
    equity: float = 0.0


class FundingAmountSchema(BaseModel):
    requested: float = Field(..., ge=0)
    minimum: float = Field(..., ge=0)
    maximum: float = Field(..., ge=0)


class FundingDurationSchema(BaseModel):
    preferred: int = Field(..., ge=1, le=60)
    minimum: int = Field(..., ge=1, le=60)
    maximum: int = Field(..., ge=1, le=60)


class RepaymentCapacitySchema(BaseModel):
    monthly_capacity: float = Field(0.0, ge=0)
    percentage_of_revenue: float = Field(0.0, ge=0, le=100)


class CollateralSchema(BaseModel):
    available: bool = False
    type: Literal["equipment", "real_estate", "inventory", "crypto", "other"] = "other"
    value: float = Field(0.0, ge=0)
    liquidity: Level = "low"


class FundIntentionSchema(BaseModel):
    purpose: Literal["working_capital", "equipment", "expansion", "inventory", "other"]
    amount: FundingAmountSchema
    duration: FundingDurationSchema
    repayment_capacity: RepaymentCapacitySchema = Field(default_factory=RepaymentCapacitySchema)
    collateral: CollateralSchema = Field(default_factory=CollateralSchema)


class PaymentHistorySchema(BaseModel):
    on_time: float = Field(0.0, ge=0, le=100)
    late: float = Field(0.0, ge=0, le=100)
    default: float = Field(0.0, ge=0, le=100)


class RiskFactorsSchema(BaseModel):
    market_risk: Level = "medium"
    operational_risk: Level = "medium"
    financial_risk: Level = "medium"
    economic_sensitivity: Level = "medium"
    regulatory_risk: Level = "medium"
    currency_risk: Level = "medium"
    payment_history: PaymentHistorySchema = Field(default_factory=PaymentHistorySchema)
    industry_risks: List[str] = Field(default_factory=list)


class MarketContextSchema(BaseModel):
    primary_market: str = Field(..., pattern=r"^[A-Z]{2}$", description="ISO-3166 alpha-2 code")
    operating_regions: List[str] = Field(default_factory=list)
    market_size: Literal["micro", "small", "medium", "large"] = "small"
    competition_level: Level = "medium"
    market_growth: Literal["declining", "stable", "growing", "rapidly_growing"] = "stable"


class ComplianceProfileSchema(BaseModel):
    kyc_level: Literal["basic", "enhanced", "comprehensive"] = "basic"
    aml_risk: Level = "medium"
    jurisdiction: str = Field(..., pattern=r"^[A-Z]{2}$", description="ISO-3166 alpha-2 code")
    regulatory_requirements: List[str] = Field(default_factory=list)


class MerchantProfileSchema(BaseModel):
    """Merchant profile as submitted by the onboarding form"""

    business_name: str = Field(..., min_length=1)
    business_type: Literal["sole_proprietorship", "partnership", "corporation", "llc", "other"]
    industry: str = Field(..., min_length=1)
    business_age_months: int = Field(..., ge=0)
    legal_structure: Literal["formal", "informal"]
    registration_status: Literal["registered", "unregistered"]
    monthly_revenue: MonthlyRevenueSchema = Field(default_factory=MonthlyRevenueSchema)
    monthly_expenses: MonthlyExpensesSchema = Field(default_factory=MonthlyExpensesSchema)
    cash_flow: CashFlowSchema = Field(default_factory=CashFlowSchema)
    balance_sheet: BalanceSheetSchema = Field(default_factory=BalanceSheetSchema)
    fund_intention: FundIntentionSchema
    risk_factors: RiskFactorsSchema = Field(default_factory=RiskFactorsSchema)
    market_context: MarketContextSchema
    compliance_profile: ComplianceProfileSchema

    def to_domain(self) -> models.MerchantProfile:
        intention = self.fund_intention
        risk = self.risk_factors
        return models.MerchantProfile(
            business_name=self.business_name,
            business_type=self.business_type,
            industry=self.industry,
            business_age_months=self.business_age_months,
            legal_structure=self.legal_structure,
            registration_status=self.registration_status,
            monthly_revenue=models.MonthlyRevenue(**self.monthly_revenue.model_dump()),
            monthly_expenses=models.MonthlyExpenses(**self.monthly_expenses.model_dump()),
            cash_flow=models.CashFlow(**self.cash_flow.model_dump()),
            balance_sheet=models.BalanceSheet(**self.balance_sheet.model_dump()),
            fund_intention=models.FundIntention(
                purpose=intention.purpose,
                amount=models.FundingAmount(**intention.amount.model_dump()),
                duration=models.FundingDuration(**intention.duration.model_dump()),
                repayment_capacity=models.RepaymentCapacity(**intention.repayment_capacity.model_dump()),
                collateral=models.Collateral(**intention.collateral.model_dump()),
            ),
            risk_factors=models.RiskFactors(
                market_risk=risk.market_risk,
                operational_risk=risk.operational_risk,
                financial_risk=risk.financial_risk,
                economic_sensitivity=risk.economic_sensitivity,
                regulatory_risk=risk.regulatory_risk,
                currency_risk=risk.currency_risk,
                payment_history=models.PaymentHistory(**risk.payment_history.model_dump()),
                industry_risks=tuple(risk.industry_risks),
            ),
            market_context=models.MarketContext(
                primary_market=self.market_context.primary_market,
                operating_regions=tuple(self.market_context.operating_regions),
                market_size=self.market_context.market_size,
                competition_level=self.market_context.competition_level,
                market_growth=self.market_context.market_growth,
            ),
            compliance_profile=models.ComplianceProfile(
                kyc_level=self.compliance_profile.kyc_level,
                aml_risk=self.compliance_profile.aml_risk,
                jurisdiction=self.compliance_profile.jurisdiction,
                regulatory_requirements=tuple(self.compliance_profile.regulatory_requirements),
            ),
        )


class VerificationSchema(BaseModel):
    """Proof material produced by the identity verification app"""

    proof: str = Field(..., min_length=1, description="Hex-encoded proof bytes")
    public_signals: List[str] = Field(..., min_length=1)
    attestation_id: int = Field(..., description="1 passport, 2 EU ID card, 3 national ID")
    user_context_data: str = Field(..., pattern=r"^0x[a-fA-F0-9]+$")

    @field_validator("proof", "user_context_data")
    @classmethod
    def must_be_hex(cls, value: str) -> str:
        try:
            _hex_bytes(value)
        except ValueError as e:
            raise ValueError("must be hex-encoded bytes") from e
        return value

    def to_domain(self, submitter: str) -> models.VerificationRequest:
        return models.VerificationRequest(
            proof=_hex_bytes(self.proof),
            public_signals=tuple(self.public_signals),
            kind=self.attestation_id,
            user_context=_hex_bytes(self.user_context_data),
            submitter=submitter,
        )


class OnboardingRequest(BaseModel):
    """Request body for POST /v1/onboarding"""

    submitter: str = Field(..., description="Merchant wallet address")
    profile: MerchantProfileSchema
    verification: VerificationSchema
    nonce: Optional[int] = Field(None, ge=0, description="Resubmission nonce; defaults to submission time")


class CreditRiskSchema(BaseModel):
    credit_score: int
    default_probability: int
    loss_given_default: int
    recovery_rate: int


class BusinessFundamentalsSchema(BaseModel):
    business_age_score: int
    revenue_stability_score: int
    market_position_score: int
    industry_risk_score: int
    regulatory_compliance_score: int


class FinancialHealthSchema(BaseModel):
    liquidity_score: int
    leverage_score: int
    cash_flow_score: int
    profitability_score: int


class MarketRiskSchema(BaseModel):
    market_volatility: int
    economic_cycle_position: int
    regulatory_stability: int
    seasonality: int


class RiskAssessmentSchema(BaseModel):
    credit_risk: CreditRiskSchema
    business_fundamentals: BusinessFundamentalsSchema
    financial_health: FinancialHealthSchema
    market_risk: MarketRiskSchema

    @classmethod
    def from_domain(cls, assessment: models.RiskAssessment) -> "RiskAssessmentSchema":
        return cls.model_validate(assessment.to_dict())


class OnboardingResponse(BaseModel):
    """Response for POST /v1/onboarding"""

    assessment_key: str
    status: str = "committed"
    tx_hash: str
    risk_assessment: RiskAssessmentSchema
    timestamp: datetime


class CommitStatusResponse(BaseModel):
    """Response for GET /v1/onboarding/{assessment_key}/status"""

    assessment_key: str
    status: str


class HistoryItem(BaseModel):
    """Single onboarding attempt in history"""

    record_id: str
    assessment_key: str
    business_name: str
    outcome: str
    tx_hash: Optional[str] = None
    credit_score: Optional[int] = None
    created_at: str


class HistoryResponse(BaseModel):
    """Response for GET /v1/onboarding/history"""

    submitter: str
    records: List[HistoryItem]

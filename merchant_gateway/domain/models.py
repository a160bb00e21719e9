"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, Literal, NewType, Optional, Tuple

Level = Literal["low", "medium", "high"]
BusinessType = Literal["sole_proprietorship", "partnership", "corporation", "llc", "other"]
FundingPurpose = Literal["working_capital", "equipment", "expansion", "inventory", "other"]
CollateralKind = Literal["equipment", "real_estate", "inventory", "crypto", "other"]
MarketSize = Literal["micro", "small", "medium", "large"]
MarketGrowth = Literal["declining", "stable", "growing", "rapidly_growing"]
KycLevel = Literal["basic", "enhanced", "comprehensive"]

# Content hash of submitter + canonical profile fields + nonce, "0x"-prefixed hex
AssessmentKey = NewType("AssessmentKey", str)


class AttestationKind(IntEnum):
    """Identity document behind an attestation (verifier attestation id)"""

    PASSPORT = 1
    EU_ID_CARD = 2
    NATIONAL_ID = 3


class CommitStatus(str, Enum):
    """Ledger-side state of a commit for a given assessment key"""

    COMMITTED = "committed"
    PENDING = "pending"
    NOT_FOUND = "not_found"


# --- Merchant profile -------------------------------------------------------


@dataclass(frozen=True)
class MonthlyRevenue:
    current: float = 0.0
    average: float = 0.0
    growth_rate: float = 0.0  # percent
    seasonality: Level = "medium"


@dataclass(frozen=True)
class MonthlyExpenses:
    fixed: float = 0.0
    variable: float = 0.0
    total: float = 0.0  # fixed + variable


@dataclass(frozen=True)
class CashFlow:
    operating: float = 0.0
    free: float = 0.0
    working_capital: float = 0.0


@dataclass(frozen=True)
class BalanceSheet:
    total_assets: float = 0.0
    current_assets: float = 0.0
    total_liabilities: float = 0.0
    current_liabilities: float = 0.0
    equity: float = 0.0  # total_assets - total_liabilities


@dataclass(frozen=True)
class FundingAmount:
    requested: float = 0.0
    minimum: float = 0.0
    maximum: float = 0.0


@dataclass(frozen=True)
class FundingDuration:
    """Months, bounded 1-60"""

    preferred: int = 12
    minimum: int = 1
    maximum: int = 60


@dataclass(frozen=True)
class RepaymentCapacity:
    monthly_capacity: float = 0.0
    percentage_of_revenue: float = 0.0


@dataclass(frozen=True)
class Collateral:
    available: bool = False
    type: CollateralKind = "other"
    value: float = 0.0
    liquidity: Level = "low"


@dataclass(frozen=True)
class FundIntention:
    purpose: FundingPurpose = "working_capital"
    amount: FundingAmount = field(default_factory=FundingAmount)
    duration: FundingDuration = field(default_factory=FundingDuration)
    repayment_capacity: RepaymentCapacity = field(default_factory=RepaymentCapacity)
    collateral: Collateral = field(default_factory=Collateral)


@dataclass(frozen=True)
class PaymentHistory:
    """Percentages of past payments, each 0-100"""

    on_time: float = 0.0
    late: float = 0.0
    default: float = 0.0


@dataclass(frozen=True)
class RiskFactors:
    market_risk: Level = "medium"
    operational_risk: Level = "medium"
    financial_risk: Level = "medium"
    economic_sensitivity: Level = "medium"
    regulatory_risk: Level = "medium"
    currency_risk: Level = "medium"
    payment_history: PaymentHistory = field(default_factory=PaymentHistory)
    industry_risks: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MarketContext:
    primary_market: str = ""  # ISO-3166 alpha-2
    operating_regions: Tuple[str, ...] = ()
    market_size: MarketSize = "small"
    competition_level: Level = "medium"
    market_growth: MarketGrowth = "stable"


@dataclass(frozen=True)
class ComplianceProfile:
    kyc_level: KycLevel = "basic"
    aml_risk: Level = "medium"
    jurisdiction: str = ""  # ISO-3166 alpha-2
    regulatory_requirements: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MerchantProfile:
    """Immutable snapshot of a merchant's self-reported profile, one per assessment attempt"""

    business_name: str
    business_type: BusinessType
    industry: str
    business_age_months: int
    legal_structure: Literal["formal", "informal"]
    registration_status: Literal["registered", "unregistered"]
    monthly_revenue: MonthlyRevenue = field(default_factory=MonthlyRevenue)
    monthly_expenses: MonthlyExpenses = field(default_factory=MonthlyExpenses)
    cash_flow: CashFlow = field(default_factory=CashFlow)
    balance_sheet: BalanceSheet = field(default_factory=BalanceSheet)
    fund_intention: FundIntention = field(default_factory=FundIntention)
    risk_factors: RiskFactors = field(default_factory=RiskFactors)
    market_context: MarketContext = field(default_factory=MarketContext)
    compliance_profile: ComplianceProfile = field(default_factory=ComplianceProfile)


# --- Identity verification --------------------------------------------------


@dataclass(frozen=True)
class VerificationRequest:
    """Proof material handed to the identity verifier"""

    proof: bytes
    public_signals: Tuple[str, ...]
    kind: int  # AttestationKind value, validated before use
    user_context: bytes
    submitter: str


@dataclass(frozen=True)
class VerificationAttestation:
    """Result of external identity verification; consumed once per assessment"""

    is_valid: bool
    kind: AttestationKind
    nationality: Optional[str] = None  # disclosed ISO-3166 alpha-2
    age: Optional[int] = None
    proof: bytes = b""
    public_signals: Tuple[str, ...] = ()
    user_context: bytes = b""


# --- Risk assessment --------------------------------------------------------


@dataclass(frozen=True)
class CreditRisk:
    credit_score: int
    default_probability: int
    loss_given_default: int
    recovery_rate: int  # 100 - loss_given_default


@dataclass(frozen=True)
class BusinessFundamentals:
    business_age_score: int
    revenue_stability_score: int
    market_position_score: int
    industry_risk_score: int
    regulatory_compliance_score: int


@dataclass(frozen=True)
class FinancialHealth:
    liquidity_score: int
    leverage_score: int
    cash_flow_score: int
    profitability_score: int


@dataclass(frozen=True)
class MarketRisk:
    market_volatility: int  # 0-100
    economic_cycle_position: int  # 1-5
    regulatory_stability: int  # 1-5
    seasonality: int  # 1-5


@dataclass(frozen=True)
class RiskAssessment:
    """Output of risk scoring, fully derived from a MerchantProfile"""

    credit_risk: CreditRisk
    business_fundamentals: BusinessFundamentals
    financial_health: FinancialHealth
    market_risk: MarketRisk

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# --- Ledger commit ----------------------------------------------------------


@dataclass(frozen=True)
class CommitPayload:
    """On-chain onboarding record sent to the ledger"""

    business_id: str
    country_code_hash: str
    credit_assessment_id: AssessmentKey
    collateral_address: str
    collateral_type: int
    protection_seller: str
    merchant_wallet: str
    credit_score: int
    default_probability: int
    loss_given_default: int
    recovery_rate: int
    business_age_score: int
    revenue_stability_score: int
    market_position_score: int
    industry_risk_score: int
    regulatory_compliance_score: int
    liquidity_score: int
    leverage_score: int
    cash_flow_score: int
    profitability_score: int
    market_volatility: int
    economic_cycle_position: int
    regulatory_stability: int
    seasonality: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TxHandle:
    """Ledger transaction reference for an applied commit"""

    tx_hash: str
    assessment_key: AssessmentKey


@dataclass(frozen=True)
class CommitRecord:
    """What the ledger holds for an assessment key"""

    assessment_key: AssessmentKey
    tx_hash: str
    payload_digest: Optional[str] = None  # content hash of the applied payload


@dataclass(frozen=True)
class OnboardingResult:
    """Terminal artifact of a successful onboarding submission"""

    assessment_key: AssessmentKey
    risk_assessment: RiskAssessment
    commit_handle: TxHandle
    timestamp: datetime

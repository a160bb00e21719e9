"""Risk scoring engine - core business logic for merchant risk assessment"""

from typing import Optional

from merchant_gateway.domain.models import (
    BusinessFundamentals,
    CreditRisk,
    FinancialHealth,
    MarketRisk,
    MerchantProfile,
    RiskAssessment,
    RiskFactors,
)

RISK_LEVEL_VOLATILITY = {"low": 20, "medium": 50, "high": 80}
MARKET_GROWTH_CYCLE = {"declining": 1, "stable": 2, "growing": 3, "rapidly_growing": 4}
REGULATORY_RISK_STABILITY = {"low": 4, "medium": 3, "high": 2}
SEASONALITY_RATING = {"low": 1, "medium": 2, "high": 3}

INDUSTRY_RISK_DEDUCTIONS = {
    "seasonal": 10,
    "weather": 15,
    "price_volatility": 20,
    "regulatory": 10,
}


def _num(value: Optional[float]) -> float:
    """Absent numeric inputs count as zero"""
    return value if value is not None else 0


def _clamp(value: float, low: int = 0, high: int = 100) -> int:
    return int(round(max(low, min(high, value))))


def calculate_risk_penalty(risk_factors: RiskFactors) -> int:
    """Credit score deduction for high-rated risk categories"""
    penalty = 0
    if risk_factors.financial_risk == "high":
        penalty += 15
    if risk_factors.operational_risk == "high":
        penalty += 10
    if risk_factors.market_risk == "high":
        penalty += 10
    if risk_factors.economic_sensitivity == "high":
        penalty += 5
    return penalty


def calculate_credit_score(profile: MerchantProfile) -> int:
    """
    Credit score from 0 (worst) to 100 (best), starting at 50.

    Adjustments:
    - Business age: +20 (24mo+), +10 (12mo+), +5 (6mo+)
    - On-time payments: +15 (95%+), +10 (85%+), +5 (70%+)
    - Revenue: +10 for positive growth, +5 for low seasonality
    - Risk penalty: high financial/operational/market/economic risk
    - Collateral (when available): +10 high liquidity, +5 medium
    """
    score = 50
    age = _num(profile.business_age_months)

    if age >= 24:
        score += 20
    elif age >= 12:
        score += 10
    elif age >= 6:
        score += 5

    on_time = _num(profile.risk_factors.payment_history.on_time)
    if on_time >= 95:
        score += 15
    elif on_time >= 85:
        score += 10
    elif on_time >= 70:
        score += 5

    if _num(profile.monthly_revenue.growth_rate) > 0:
        score += 10
    if profile.monthly_revenue.seasonality == "low":
        score += 5

    score -= calculate_risk_penalty(profile.risk_factors)

    collateral = profile.fund_intention.collateral
    if collateral.available:
        if collateral.liquidity == "high":
            score += 10
        elif collateral.liquidity == "medium":
            score += 5

    return _clamp(score)


def calculate_default_probability(profile: MerchantProfile) -> int:
    """
    Default probability in percent, starting at 10.

    The raw default-payment percentage is added as-is; younger businesses
    and highly seasonal revenue add fixed increments.
    """
    probability = 10
    risk_factors = profile.risk_factors

    if risk_factors.financial_risk == "high":
        probability += 15
    if risk_factors.operational_risk == "high":
        probability += 10
    if risk_factors.market_risk == "high":
        probability += 10

    probability += _num(risk_factors.payment_history.default)

    age = _num(profile.business_age_months)
    if age < 6:
        probability += 20
    elif age < 12:
        probability += 10

    if profile.monthly_revenue.seasonality == "high":
        probability += 5

    return _clamp(probability)


def calculate_loss_given_default(profile: MerchantProfile) -> int:
    """Loss given default in percent, starting at 40 and reduced by collateral and track record"""
    lgd = 40

    collateral = profile.fund_intention.collateral
    if collateral.available:
        if collateral.liquidity == "high":
            lgd -= 20
        elif collateral.liquidity == "medium":
            lgd -= 10
        else:
            lgd -= 5

    if _num(profile.business_age_months) >= 24:
        lgd -= 5
    if _num(profile.risk_factors.payment_history.on_time) >= 95:
        lgd -= 5

    return _clamp(lgd)


def calculate_business_age_score(age_months: Optional[int]) -> int:
    age = _num(age_months)
    if age >= 60:
        return 100
    if age >= 36:
        return 80
    if age >= 24:
        return 60
    if age >= 12:
        return 40
    if age >= 6:
        return 20
    return 0


def calculate_revenue_stability_score(profile: MerchantProfile) -> int:
    score = 50
    growth_rate = _num(profile.monthly_revenue.growth_rate)

    if growth_rate > 20:
        score += 20
    elif growth_rate > 0:
        score += 10
    elif growth_rate < -10:
        score -= 20

    seasonality = profile.monthly_revenue.seasonality
    if seasonality == "low":
        score += 20
    elif seasonality == "medium":
        score += 10
    else:
        score -= 10

    return _clamp(score)


def calculate_market_position_score(profile: MerchantProfile) -> int:
    score = 50
    market = profile.market_context

    if market.market_size == "large":
        score += 20
    elif market.market_size == "medium":
        score += 10

    if market.competition_level == "low":
        score += 15
    elif market.competition_level == "medium":
        score += 5

    if market.market_growth == "rapidly_growing":
        score += 15
    elif market.market_growth == "growing":
        score += 10

    return _clamp(score)


def calculate_industry_risk_score(profile: MerchantProfile) -> int:
    """Each known industry risk tag deducts independently from a base of 50"""
    tags = set(profile.risk_factors.industry_risks)
    score = 50 - sum(deduction for tag, deduction in INDUSTRY_RISK_DEDUCTIONS.items() if tag in tags)
    return _clamp(score)


def calculate_regulatory_compliance_score(profile: MerchantProfile) -> int:
    score = 50
    compliance = profile.compliance_profile

    if profile.registration_status == "registered":
        score += 20
    else:
        score -= 10

    if profile.legal_structure == "formal":
        score += 10

    if compliance.kyc_level == "comprehensive":
        score += 15
    elif compliance.kyc_level == "enhanced":
        score += 10

    if compliance.aml_risk == "low":
        score += 10
    elif compliance.aml_risk == "high":
        score -= 15

    return _clamp(score)


def calculate_liquidity_score(profile: MerchantProfile) -> int:
    """Current ratio tiers; no current liabilities counts as top tier"""
    current_assets = _num(profile.balance_sheet.current_assets)
    current_liabilities = _num(profile.balance_sheet.current_liabilities)

    if current_liabilities == 0:
        return 100

    current_ratio = current_assets / current_liabilities
    if current_ratio >= 2:
        return 100
    if current_ratio >= 1.5:
        return 80
    if current_ratio >= 1:
        return 60
    if current_ratio >= 0.5:
        return 40
    return 20


def calculate_leverage_score(profile: MerchantProfile) -> int:
    """Liabilities-to-assets tiers; no assets scores zero"""
    total_liabilities = _num(profile.balance_sheet.total_liabilities)
    total_assets = _num(profile.balance_sheet.total_assets)

    if total_assets == 0:
        return 0

    leverage_ratio = total_liabilities / total_assets
    if leverage_ratio <= 0.2:
        return 100
    if leverage_ratio <= 0.4:
        return 80
    if leverage_ratio <= 0.6:
        return 60
    if leverage_ratio <= 0.8:
        return 40
    return 20


def calculate_cash_flow_score(profile: MerchantProfile) -> int:
    operating = _num(profile.cash_flow.operating)
    revenue = _num(profile.monthly_revenue.current)

    if revenue == 0:
        return 0

    ratio = operating / revenue
    if ratio >= 0.3:
        return 100
    if ratio >= 0.2:
        return 80
    if ratio >= 0.1:
        return 60
    if ratio >= 0:
        return 40
    return 20


def calculate_profitability_score(profile: MerchantProfile) -> int:
    free_cash_flow = _num(profile.cash_flow.free)
    revenue = _num(profile.monthly_revenue.current)

    if revenue == 0:
        return 0

    margin = free_cash_flow / revenue
    if margin >= 0.2:
        return 100
    if margin >= 0.1:
        return 80
    if margin >= 0.05:
        return 60
    if margin >= 0:
        return 40
    return 20


def map_market_risk(profile: MerchantProfile) -> MarketRisk:
    """Categorical mappings; unknown categories fall back to the middle value"""
    return MarketRisk(
        market_volatility=RISK_LEVEL_VOLATILITY.get(profile.risk_factors.market_risk, 50),
        economic_cycle_position=MARKET_GROWTH_CYCLE.get(profile.market_context.market_growth, 2),
        regulatory_stability=REGULATORY_RISK_STABILITY.get(profile.risk_factors.regulatory_risk, 3),
        seasonality=SEASONALITY_RATING.get(profile.monthly_revenue.seasonality, 2),
    )


def score_profile(profile: MerchantProfile) -> RiskAssessment:
    """
    Main entry point: derive the complete risk assessment for a merchant profile.

    Pure and total: never raises, never mutates the profile, and returns
    identical output for identical input. Every score lies in [0, 100] and
    every rating in [1, 5].
    """
    loss_given_default = calculate_loss_given_default(profile)

    return RiskAssessment(
        credit_risk=CreditRisk(
            credit_score=calculate_credit_score(profile),
            default_probability=calculate_default_probability(profile),
            loss_given_default=loss_given_default,
            recovery_rate=100 - loss_given_default,
        ),
        business_fundamentals=BusinessFundamentals(
            business_age_score=calculate_business_age_score(profile.business_age_months),
            revenue_stability_score=calculate_revenue_stability_score(profile),
            market_position_score=calculate_market_position_score(profile),
            industry_risk_score=calculate_industry_risk_score(profile),
            regulatory_compliance_score=calculate_regulatory_compliance_score(profile),
        ),
        financial_health=FinancialHealth(
            liquidity_score=calculate_liquidity_score(profile),
            leverage_score=calculate_leverage_score(profile),
            cash_flow_score=calculate_cash_flow_score(profile),
            profitability_score=calculate_profitability_score(profile),
        ),
        market_risk=map_market_risk(profile),
    )

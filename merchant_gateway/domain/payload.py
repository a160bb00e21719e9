"""Mapping from a scored profile to the on-chain onboarding record"""

from merchant_gateway.domain.idempotency import business_identity_fields, content_hash
from merchant_gateway.domain.models import AssessmentKey, CommitPayload, MerchantProfile, RiskAssessment

COLLATERAL_TYPE_CODES = {
    "equipment": 0,
    "real_estate": 1,
    "inventory": 2,
    "crypto": 3,
}
OTHER_COLLATERAL_CODE = 4


def build_commit_payload(
    profile: MerchantProfile,
    assessment: RiskAssessment,
    assessment_key: AssessmentKey,
    submitter: str,
) -> CommitPayload:
    """
    Build the ledger commit payload.

    The submitter wallet doubles as collateral address and initial
    protection seller until those are chosen separately.
    """
    credit = assessment.credit_risk
    fundamentals = assessment.business_fundamentals
    health = assessment.financial_health
    market = assessment.market_risk

    return CommitPayload(
        business_id=content_hash(business_identity_fields(profile)),
        country_code_hash=content_hash({"countryCode": profile.market_context.primary_market.upper()}),
        credit_assessment_id=assessment_key,
        collateral_address=submitter,
        collateral_type=COLLATERAL_TYPE_CODES.get(profile.fund_intention.collateral.type, OTHER_COLLATERAL_CODE),
        protection_seller=submitter,
        merchant_wallet=submitter,
        credit_score=credit.credit_score,
        default_probability=credit.default_probability,
        loss_given_default=credit.loss_given_default,
        recovery_rate=credit.recovery_rate,
        business_age_score=fundamentals.business_age_score,
        revenue_stability_score=fundamentals.revenue_stability_score,
        market_position_score=fundamentals.market_position_score,
        industry_risk_score=fundamentals.industry_risk_score,
        regulatory_compliance_score=fundamentals.regulatory_compliance_score,
        liquidity_score=health.liquidity_score,
        leverage_score=health.leverage_score,
        cash_flow_score=health.cash_flow_score,
        profitability_score=health.profitability_score,
        market_volatility=market.market_volatility,
        economic_cycle_position=market.economic_cycle_position,
        regulatory_stability=market.regulatory_stability,
        seasonality=market.seasonality,
    )


def payload_digest(payload: CommitPayload) -> str:
    """Content hash of a commit payload, as reported back by the ledger for the payload it applied"""
    return content_hash(payload.to_dict())

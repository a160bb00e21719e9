"""Unit tests for risk scoring logic"""

import pytest
from dataclasses import fields, replace

from merchant_gateway.domain.models import (
    BalanceSheet,
    CashFlow,
    Collateral,
    MarketContext,
    MonthlyRevenue,
    PaymentHistory,
    RiskFactors,
)
from merchant_gateway.domain.scoring import (
    calculate_business_age_score,
    calculate_credit_score,
    calculate_default_probability,
    calculate_industry_risk_score,
    calculate_leverage_score,
    calculate_liquidity_score,
    calculate_loss_given_default,
    calculate_risk_penalty,
    map_market_risk,
    score_profile,
)

LOW_RISK = RiskFactors(
    market_risk="low",
    operational_risk="low",
    financial_risk="low",
    economic_sensitivity="low",
    regulatory_risk="low",
    currency_risk="low",
    payment_history=PaymentHistory(on_time=95, late=5, default=0),
)


def _all_scores(assessment):
    for group in (
        assessment.credit_risk,
        assessment.business_fundamentals,
        assessment.financial_health,
    ):
        for f in fields(group):
            yield f.name, getattr(group, f.name)


def test_score_profile_established_merchant(sample_profile):
    """Test complete assessment for a moderate-risk, established merchant"""
    assessment = score_profile(sample_profile)

    assert assessment.credit_risk.credit_score == 95
    assert assessment.credit_risk.default_probability == 12
    assert assessment.credit_risk.loss_given_default == 25
    assert assessment.credit_risk.recovery_rate == 75

    assert assessment.business_fundamentals.business_age_score == 80
    assert assessment.business_fundamentals.revenue_stability_score == 70
    assert assessment.business_fundamentals.market_position_score == 75
    assert assessment.business_fundamentals.industry_risk_score == 40
    assert assessment.business_fundamentals.regulatory_compliance_score == 100

    assert assessment.financial_health.liquidity_score == 100
    assert assessment.financial_health.leverage_score == 80
    assert assessment.financial_health.cash_flow_score == 80
    assert assessment.financial_health.profitability_score == 80

    assert assessment.market_risk.market_volatility == 50
    assert assessment.market_risk.economic_cycle_position == 3
    assert assessment.market_risk.regulatory_stability == 3
    assert assessment.market_risk.seasonality == 2


def test_credit_score_mature_low_risk_merchant(profile_factory):
    """Old business, strong payments, growing low-seasonality revenue scores highly"""
    profile = profile_factory(
        business_age_months=60,
        monthly_revenue=MonthlyRevenue(current=50000, average=48000, growth_rate=15, seasonality="low"),
        risk_factors=LOW_RISK,
    )
    profile = replace(
        profile,
        fund_intention=replace(profile.fund_intention, collateral=Collateral(available=False)),
    )

    # 50 + 20 (age) + 15 (on time) + 10 (growth) + 5 (low seasonality)
    assert calculate_credit_score(profile) == 100
    assert calculate_credit_score(profile) >= 85


def test_default_probability_young_high_risk_merchant(profile_factory):
    """Young business with high risk ratings and defaults"""
    profile = profile_factory(
        business_age_months=3,
        risk_factors=RiskFactors(
            market_risk="high",
            operational_risk="high",
            financial_risk="high",
            payment_history=PaymentHistory(on_time=70, late=20, default=10),
        ),
    )

    # 10 + 15 + 10 + 10 + 10 (defaults) + 20 (age < 6)
    assert calculate_default_probability(profile) == 75
    assert calculate_default_probability(profile) >= 45


def test_default_probability_capped_at_100(profile_factory):
    profile = profile_factory(
        business_age_months=1,
        monthly_revenue=MonthlyRevenue(current=1000, seasonality="high"),
        risk_factors=RiskFactors(
            market_risk="high",
            operational_risk="high",
            financial_risk="high",
            payment_history=PaymentHistory(on_time=0, late=0, default=100),
        ),
    )

    assert calculate_default_probability(profile) == 100


def test_credit_score_high_risk_penalty(profile_factory):
    profile = profile_factory(
        business_age_months=0,
        monthly_revenue=MonthlyRevenue(current=1000, growth_rate=-5, seasonality="high"),
        risk_factors=RiskFactors(
            market_risk="high",
            operational_risk="high",
            financial_risk="high",
            economic_sensitivity="high",
            payment_history=PaymentHistory(on_time=0),
        ),
    )
    profile = replace(
        profile,
        fund_intention=replace(profile.fund_intention, collateral=Collateral(available=False)),
    )

    # 50 - 40 penalty
    assert calculate_credit_score(profile) == 10
    assert calculate_risk_penalty(profile.risk_factors) == 40


def test_liquidity_score_strong_current_ratio(profile_factory):
    profile = profile_factory(
        balance_sheet=BalanceSheet(
            total_assets=50000,
            current_assets=20000,
            total_liabilities=5000,
            current_liabilities=5000,
            equity=45000,
        )
    )

    assert calculate_liquidity_score(profile) == 100


def test_liquidity_score_without_current_liabilities(profile_factory):
    profile = profile_factory(balance_sheet=BalanceSheet(total_assets=1000, current_assets=0, equity=1000))

    assert calculate_liquidity_score(profile) == 100


def test_leverage_score_no_liabilities(profile_factory):
    profile = profile_factory(
        balance_sheet=BalanceSheet(total_assets=50000, current_assets=10000, total_liabilities=0, equity=50000)
    )

    assert calculate_leverage_score(profile) == 100


def test_leverage_score_no_assets(profile_factory):
    profile = profile_factory(balance_sheet=BalanceSheet())

    assert calculate_leverage_score(profile) == 0


def test_zero_revenue_scores_zero_cash_flow_and_profitability(profile_factory):
    profile = profile_factory(
        monthly_revenue=MonthlyRevenue(current=0),
        cash_flow=CashFlow(operating=500, free=200),
    )

    assessment = score_profile(profile)

    assert assessment.financial_health.cash_flow_score == 0
    assert assessment.financial_health.profitability_score == 0


def test_loss_given_default_with_liquid_collateral(profile_factory):
    profile = profile_factory(business_age_months=30, risk_factors=LOW_RISK)
    profile = replace(
        profile,
        fund_intention=replace(
            profile.fund_intention,
            collateral=Collateral(available=True, type="real_estate", value=100000, liquidity="high"),
        ),
    )

    # 40 - 20 (high liquidity) - 5 (age) - 5 (on time)
    assert calculate_loss_given_default(profile) == 10
    assert score_profile(profile).credit_risk.recovery_rate == 90


@pytest.mark.parametrize(
    "age,expected",
    [(0, 0), (5, 0), (6, 20), (12, 40), (24, 60), (36, 80), (59, 80), (60, 100), (240, 100)],
)
def test_business_age_score_tiers(age, expected):
    assert calculate_business_age_score(age) == expected


def test_industry_risk_deductions_stack(profile_factory):
    profile = profile_factory(
        risk_factors=RiskFactors(industry_risks=("seasonal", "weather", "price_volatility", "regulatory"))
    )

    # 50 - 55, floored
    assert calculate_industry_risk_score(profile) == 0


def test_unknown_industry_risk_tags_are_ignored(profile_factory):
    profile = profile_factory(risk_factors=RiskFactors(industry_risks=("supply_chain",)))

    assert calculate_industry_risk_score(profile) == 50


def test_market_risk_mapping_extremes(profile_factory):
    profile = profile_factory(
        monthly_revenue=MonthlyRevenue(current=1000, seasonality="high"),
        risk_factors=RiskFactors(market_risk="high", regulatory_risk="low"),
        market_context=MarketContext(primary_market="KE", market_growth="rapidly_growing"),
    )

    market = map_market_risk(profile)

    assert market.market_volatility == 80
    assert market.economic_cycle_position == 4
    assert market.regulatory_stability == 4
    assert market.seasonality == 3


def test_scores_bounded_for_extreme_profiles(profile_factory):
    """Every score lies in [0, 100] and every rating in [1, 5]"""
    extremes = [
        profile_factory(business_age_months=0, monthly_revenue=MonthlyRevenue(), balance_sheet=BalanceSheet()),
        profile_factory(
            business_age_months=1000,
            monthly_revenue=MonthlyRevenue(current=1, growth_rate=1000, seasonality="low"),
            cash_flow=CashFlow(operating=1e9, free=1e9),
        ),
        profile_factory(
            monthly_revenue=MonthlyRevenue(current=100, growth_rate=-90, seasonality="high"),
            cash_flow=CashFlow(operating=-1e6, free=-1e6),
            balance_sheet=BalanceSheet(total_assets=1, total_liabilities=1e9, current_liabilities=1e9, equity=1 - 1e9),
        ),
    ]

    for profile in extremes:
        assessment = score_profile(profile)
        for name, value in _all_scores(assessment):
            assert 0 <= value <= 100, name
        for f in fields(assessment.market_risk):
            value = getattr(assessment.market_risk, f.name)
            if f.name != "market_volatility":
                assert 1 <= value <= 5, f.name


def test_score_profile_is_deterministic(sample_profile):
    assert score_profile(sample_profile) == score_profile(sample_profile)


def test_recovery_rate_complements_loss_given_default(profile_factory):
    for liquidity in ("low", "medium", "high"):
        profile = profile_factory()
        profile = replace(
            profile,
            fund_intention=replace(
                profile.fund_intention,
                collateral=Collateral(available=True, type="inventory", value=1000, liquidity=liquidity),
            ),
        )
        credit = score_profile(profile).credit_risk
        assert credit.recovery_rate + credit.loss_given_default == 100

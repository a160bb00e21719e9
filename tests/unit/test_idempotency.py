"""Unit tests for assessment keys and the ledger commit payload"""

from dataclasses import replace

from merchant_gateway.domain.idempotency import content_hash, derive_assessment_key
from merchant_gateway.domain.models import Collateral, MonthlyRevenue
from merchant_gateway.domain.payload import build_commit_payload
from merchant_gateway.domain.scoring import score_profile

SUBMITTER = "0x" + "ab" * 20


def test_content_hash_ignores_key_order():
    assert content_hash({"a": 1, "b": "x"}) == content_hash({"b": "x", "a": 1})


def test_content_hash_format():
    digest = content_hash({"countryCode": "KE"})

    assert digest.startswith("0x")
    assert len(digest) == 66


def test_assessment_key_is_deterministic(sample_profile):
    first = derive_assessment_key(sample_profile, SUBMITTER, 7)
    second = derive_assessment_key(sample_profile, SUBMITTER, 7)

    assert first == second


def test_assessment_key_normalises_submitter_case(sample_profile):
    mixed_case = "0x" + "AB" * 20

    assert derive_assessment_key(sample_profile, mixed_case, 7) == derive_assessment_key(sample_profile, SUBMITTER, 7)


def test_assessment_key_changes_with_nonce(sample_profile):
    assert derive_assessment_key(sample_profile, SUBMITTER, 1) != derive_assessment_key(sample_profile, SUBMITTER, 2)


def test_assessment_key_changes_with_submitter(sample_profile):
    other = "0x" + "cd" * 20

    assert derive_assessment_key(sample_profile, SUBMITTER, 1) != derive_assessment_key(sample_profile, other, 1)


def test_assessment_key_changes_with_business_identity(sample_profile):
    renamed = replace(sample_profile, business_name="Acme Tea Roasters")

    assert derive_assessment_key(sample_profile, SUBMITTER, 1) != derive_assessment_key(renamed, SUBMITTER, 1)


def test_assessment_key_ignores_financial_figures(sample_profile):
    """Financial corrections under the same nonce still collide; a new nonce is needed to resubmit"""
    corrected = replace(sample_profile, monthly_revenue=MonthlyRevenue(current=1, seasonality="high"))

    assert derive_assessment_key(sample_profile, SUBMITTER, 1) == derive_assessment_key(corrected, SUBMITTER, 1)


def test_commit_payload_carries_assessment(sample_profile):
    assessment = score_profile(sample_profile)
    key = derive_assessment_key(sample_profile, SUBMITTER, 1)

    payload = build_commit_payload(sample_profile, assessment, key, SUBMITTER)

    assert payload.credit_assessment_id == key
    assert payload.merchant_wallet == SUBMITTER
    assert payload.collateral_address == SUBMITTER
    assert payload.protection_seller == SUBMITTER
    assert payload.collateral_type == 0
    assert payload.credit_score == assessment.credit_risk.credit_score
    assert payload.recovery_rate == assessment.credit_risk.recovery_rate
    assert payload.seasonality == assessment.market_risk.seasonality
    assert payload.country_code_hash == content_hash({"countryCode": "KE"})
    assert len(payload.to_dict()) == 24


def test_commit_payload_maps_unknown_collateral_to_other(sample_profile):
    profile = replace(
        sample_profile,
        fund_intention=replace(sample_profile.fund_intention, collateral=Collateral(available=True, type="other")),
    )
    key = derive_assessment_key(profile, SUBMITTER, 1)

    payload = build_commit_payload(profile, score_profile(profile), key, SUBMITTER)

    assert payload.collateral_type == 4

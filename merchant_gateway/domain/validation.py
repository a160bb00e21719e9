"""Input checks for submissions reaching the onboarding pipeline"""

import math
import re
from typing import List

from merchant_gateway.domain.exceptions import InputValidationError
from merchant_gateway.domain.models import AttestationKind, MerchantProfile, VerificationRequest

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
COUNTRY_CODE_PATTERN = re.compile(r"^[A-Z]{2}$")

# Monetary equality tolerance (one cent)
AMOUNT_TOLERANCE = 0.01

MIN_DURATION_MONTHS = 1
MAX_DURATION_MONTHS = 60


def is_valid_address(address: str) -> bool:
    return bool(address) and ADDRESS_PATTERN.match(address) is not None


def validate_submitter(address: str) -> None:
    if not is_valid_address(address):
        raise InputValidationError(["Submitter must be a valid 0x-prefixed 40 hex digit address"])


def validate_verification_request(request: VerificationRequest) -> None:
    """Reject proof material the verifier could never accept"""
    errors: List[str] = []

    if not request.proof:
        errors.append("Proof is required")
    if not request.public_signals:
        errors.append("At least one public signal is required")
    if request.kind not in {k.value for k in AttestationKind}:
        errors.append("Attestation kind must be 1 (passport), 2 (EU ID card) or 3 (national ID)")
    if not request.user_context:
        errors.append("User context data is required")
    if not is_valid_address(request.submitter):
        errors.append("Submitter must be a valid 0x-prefixed 40 hex digit address")

    if errors:
        raise InputValidationError(errors)


def _percentage(errors: List[str], name: str, value: float) -> None:
    if not 0 <= value <= 100:
        errors.append(f"{name} must be between 0 and 100")


def validate_profile(profile: MerchantProfile) -> None:
    """
    Check the cross-field invariants of a merchant profile.

    All checks run; every failure is reported in a single InputValidationError.
    """
    errors: List[str] = []

    if not profile.business_name.strip():
        errors.append("Business name is required")
    if profile.business_age_months < 0:
        errors.append("Business age must be non-negative")

    expenses = profile.monthly_expenses
    if not math.isclose(expenses.total, expenses.fixed + expenses.variable, abs_tol=AMOUNT_TOLERANCE):
        errors.append("Total expenses must equal fixed plus variable expenses")

    if profile.cash_flow.working_capital < 0:
        errors.append("Working capital must be non-negative")

    sheet = profile.balance_sheet
    for name, value in (
        ("Total assets", sheet.total_assets),
        ("Current assets", sheet.current_assets),
        ("Total liabilities", sheet.total_liabilities),
        ("Current liabilities", sheet.current_liabilities),
    ):
        if value < 0:
            errors.append(f"{name} must be non-negative")
    if not math.isclose(sheet.equity, sheet.total_assets - sheet.total_liabilities, abs_tol=AMOUNT_TOLERANCE):
        errors.append("Equity must equal total assets minus total liabilities")

    intention = profile.fund_intention
    amount = intention.amount
    if not amount.minimum <= amount.requested <= amount.maximum:
        errors.append("Requested amount must lie between minimum and maximum")

    duration = intention.duration
    if not MIN_DURATION_MONTHS <= duration.minimum <= duration.preferred <= duration.maximum <= MAX_DURATION_MONTHS:
        errors.append(
            f"Duration must satisfy {MIN_DURATION_MONTHS} <= minimum <= preferred <= maximum <= {MAX_DURATION_MONTHS} months"
        )

    capacity = intention.repayment_capacity
    if capacity.monthly_capacity < 0:
        errors.append("Monthly repayment capacity must be non-negative")
    _percentage(errors, "Repayment percentage of revenue", capacity.percentage_of_revenue)

    if intention.collateral.value < 0:
        errors.append("Collateral value must be non-negative")

    history = profile.risk_factors.payment_history
    _percentage(errors, "On-time payment percentage", history.on_time)
    _percentage(errors, "Late payment percentage", history.late)
    _percentage(errors, "Default payment percentage", history.default)

    market = profile.market_context
    if not COUNTRY_CODE_PATTERN.match(market.primary_market):
        errors.append("Primary market must be an ISO-3166 alpha-2 code")
    bad_regions = [r for r in market.operating_regions if not COUNTRY_CODE_PATTERN.match(r)]
    if bad_regions:
        errors.append(f"Operating regions must be ISO-3166 alpha-2 codes: {', '.join(bad_regions)}")

    if not COUNTRY_CODE_PATTERN.match(profile.compliance_profile.jurisdiction):
        errors.append("Jurisdiction must be an ISO-3166 alpha-2 code")

    if errors:
        raise InputValidationError(errors)

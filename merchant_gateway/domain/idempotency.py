"""Content-addressed identifiers for assessments and on-chain records"""

import hashlib
import json
from typing import Any, Dict

from merchant_gateway.domain.models import AssessmentKey, MerchantProfile


def content_hash(fields: Dict[str, Any]) -> str:
    """SHA-256 over canonical JSON (sorted keys, no whitespace), as 0x-prefixed hex"""
    canonical = json.dumps(fields, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return "0x" + hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def business_identity_fields(profile: MerchantProfile) -> Dict[str, Any]:
    """Profile fields that identify the business itself"""
    return {
        "businessName": profile.business_name,
        "businessType": profile.business_type,
        "industry": profile.industry,
        "businessAge": int(profile.business_age_months or 0),
        "legalStructure": profile.legal_structure,
    }


def derive_assessment_key(profile: MerchantProfile, submitter: str, nonce: int) -> AssessmentKey:
    """
    Derive the idempotency token for a ledger commit.

    Identical (profile identity, submitter, nonce) always yields the identical
    key; the ledger uses it to refuse a second application of the same
    assessment. Submitter addresses are case-normalised.
    """
    fields = business_identity_fields(profile)
    fields["submitter"] = submitter.lower()
    fields["nonce"] = int(nonce)
    return AssessmentKey(content_hash(fields))

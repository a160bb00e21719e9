"""Compliance gate applied to identity attestations before any irreversible action"""

from dataclasses import dataclass
from typing import FrozenSet, Tuple

from merchant_gateway.domain.models import AttestationKind, VerificationAttestation

REASON_REJECTED_BY_VERIFIER = "attestation rejected by verifier"
REASON_BELOW_MINIMUM_AGE = "below minimum age"
REASON_EXCLUDED_JURISDICTION = "excluded jurisdiction"
REASON_KIND_NOT_ACCEPTED = "attestation kind not accepted"


@dataclass(frozen=True)
class AttestationPolicy:
    """Compliance policy, fixed for the process lifetime"""

    minimum_age: int = 18
    excluded_countries: FrozenSet[str] = frozenset({"IR", "KP", "RU", "SY"})
    enforce_nationality_exclusion: bool = True
    accepted_kinds: FrozenSet[AttestationKind] = frozenset(AttestationKind)

    @classmethod
    def from_settings(cls, settings) -> "AttestationPolicy":
        return cls(
            minimum_age=settings.policy_minimum_age,
            excluded_countries=frozenset(c.strip().upper() for c in settings.policy_excluded_countries),
            enforce_nationality_exclusion=settings.policy_enforce_nationality_exclusion,
            accepted_kinds=frozenset(AttestationKind(k) for k in settings.policy_accepted_attestation_kinds),
        )


def validate_attestation(attestation: VerificationAttestation, policy: AttestationPolicy) -> Tuple[bool, str]:
    """
    Check a verified attestation against compliance policy.

    Checks run in order and stop at the first failure:
    1. verifier marked the attestation valid
    2. disclosed age (when present) meets the minimum
    3. disclosed nationality (when present) is not excluded
    4. attestation kind is accepted

    This does not verify the proof itself; that is the identity verifier's job.

    Returns: (ok, reason) where reason is empty on success
    """
    if not attestation.is_valid:
        return False, REASON_REJECTED_BY_VERIFIER

    if attestation.age is not None and attestation.age < policy.minimum_age:
        return False, REASON_BELOW_MINIMUM_AGE

    if (
        policy.enforce_nationality_exclusion
        and attestation.nationality is not None
        and attestation.nationality.strip().upper() in policy.excluded_countries
    ):
        return False, REASON_EXCLUDED_JURISDICTION

    if attestation.kind not in policy.accepted_kinds:
        return False, REASON_KIND_NOT_ACCEPTED

    return True, ""

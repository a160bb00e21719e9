"""Domain-specific exceptions"""

from typing import Iterable, Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InputValidationError(DomainException):
    """Submitted profile or verification request is malformed (never retried)"""

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        super().__init__(f"Validation failed: {', '.join(self.errors)}")


class PolicyError(DomainException):
    """Attestation failed the compliance gate; nothing was computed or sent"""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class VerifierUnavailableError(DomainException):
    """Identity verifier could not be reached or answered garbage (retryable upstream)"""

    pass


class ProofInvalidError(DomainException):
    """Identity verifier refused the proof material (terminal)"""

    pass


class LedgerUnavailableError(DomainException):
    """Transient ledger failure: network error, timeout or 5xx"""

    pass


class LedgerRejectedError(DomainException):
    """Ledger refused the commit for a reason other than a duplicate key"""

    pass


class AlreadyCommittedError(DomainException):
    """Ledger already applied a commit for this assessment key"""

    def __init__(
        self,
        assessment_key: str,
        tx_hash: Optional[str] = None,
        assessment=None,
        payload_digest: Optional[str] = None,
    ):
        self.assessment_key = assessment_key
        self.tx_hash = tx_hash
        self.assessment = assessment
        self.payload_digest = payload_digest
        super().__init__(f"Assessment {assessment_key} already committed")


class CommitError(DomainException):
    """
    Ledger commit failed after bounded retries.

    Carries the computed assessment and key so the caller can resubmit
    with the same key without rescoring.
    """

    def __init__(self, cause: Exception, assessment_key: str, assessment):
        self.cause = cause
        self.assessment_key = assessment_key
        self.assessment = assessment
        super().__init__(f"Ledger commit failed for {assessment_key}: {cause}")


class CommitCancelledError(DomainException):
    """
    Caller cancelled while a commit was in flight.

    The commit outcome is unknown; resolve it via the ledger status lookup
    before resubmitting.
    """

    def __init__(self, assessment_key: str, assessment=None):
        self.assessment_key = assessment_key
        self.assessment = assessment
        super().__init__(f"Commit cancelled for {assessment_key}; ledger status unknown")

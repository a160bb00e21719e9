"""Dependency injection for FastAPI endpoints"""

from functools import lru_cache

from fastapi import Depends, Request
from merchant_gateway.config import settings
from merchant_gateway.domain.policy import AttestationPolicy
from merchant_gateway.domain.ports import IdentityVerifier, LedgerGateway
from merchant_gateway.infrastructure.clients.ledger import LedgerClient
from merchant_gateway.infrastructure.clients.verifier import IdentityVerifierClient
from merchant_gateway.services.orchestrator import OnboardingOrchestrator


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


@lru_cache
def get_policy() -> AttestationPolicy:
    """Compliance policy, built once per process"""
    return AttestationPolicy.from_settings(settings)


def get_ledger_client() -> LedgerGateway:
    """Provide ledger relay client instance"""
    return LedgerClient()


def get_verifier_client() -> IdentityVerifier:
    """Provide identity verifier client instance"""
    return IdentityVerifierClient()


def get_orchestrator(
    gateway: LedgerGateway = Depends(get_ledger_client),
    policy: AttestationPolicy = Depends(get_policy),
) -> OnboardingOrchestrator:
    """Provide onboarding orchestrator wired to the configured collaborators"""
    return OnboardingOrchestrator(
        gateway=gateway,
        policy=policy,
        max_retries=settings.commit_max_retries,
        commit_timeout=settings.ledger_commit_timeout_seconds,
        backoff_base=settings.commit_backoff_base,
    )

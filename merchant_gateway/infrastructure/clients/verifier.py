"""Identity verifier HTTP client for zero-knowledge attestation checks"""

import httpx

from merchant_gateway.config import settings
from merchant_gateway.domain.exceptions import ProofInvalidError, VerifierUnavailableError
from merchant_gateway.domain.models import AttestationKind, VerificationAttestation, VerificationRequest


class IdentityVerifierClient:
    """Client for the external identity verification service"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.verifier_api_base).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def verify(self, request: VerificationRequest) -> VerificationAttestation:
        """
        Verify a proof and return the resulting attestation.

        A proof the verifier evaluated but found invalid comes back as an
        attestation with is_valid=False; the compliance gate rejects it.

        Raises:
            ProofInvalidError: Verifier refused the proof material (400/422)
            VerifierUnavailableError: Timeout, network failure, 5xx or malformed reply
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/verify",
                    json={
                        "attestationId": int(request.kind),
                        "proof": "0x" + request.proof.hex(),
                        "publicSignals": list(request.public_signals),
                        "userContextData": "0x" + request.user_context.hex(),
                    },
                )
            except httpx.TimeoutException as e:
                raise VerifierUnavailableError(f"Verifier timeout after {self.timeout}s") from e
            except httpx.RequestError as e:
                raise VerifierUnavailableError(f"Verifier unreachable: {e}") from e

        if response.status_code in (400, 422):
            raise ProofInvalidError(f"Verifier refused proof: {response.text}")
        if response.status_code != 200:
            raise VerifierUnavailableError(f"Verifier error: {response.status_code}")

        try:
            data = response.json()
            disclosed = data.get("discloseOutput") or {}
            age = disclosed.get("age")
            return VerificationAttestation(
                is_valid=bool(data["isValidDetails"]["isValid"]),
                kind=AttestationKind(request.kind),
                nationality=disclosed.get("nationality") or None,
                age=int(age) if age is not None else None,
                proof=request.proof,
                public_signals=tuple(request.public_signals),
                user_context=request.user_context,
            )
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise VerifierUnavailableError(f"Invalid verification data from verifier: {e}") from e

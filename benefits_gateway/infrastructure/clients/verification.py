"""Identity verification HTTP client for dependent demographics"""

import httpx
from dataclasses import dataclass
from datetime import date
from typing import Optional
from benefits_gateway.domain.exceptions import CollaboratorUnavailable
from benefits_gateway.config import settings
from benefits_gateway.infrastructure.observability.metrics import (
    collaborator_failures_counter,
    collaborator_latency_histogram,
)

COLLABORATOR = "identity_verification"


@dataclass(frozen=True)
class VerificationOutcome:
    verified: bool
    reason: Optional[str] = None


class IdentityVerificationClient:
    """Client for the external identity verification service"""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = base_url or settings.identity_verification_url
        self.timeout = timeout or settings.http_timeout_seconds

    async def verify(
        self,
        first_name: str,
        last_name: str,
        government_id: str,
        birth_date: date,
    ) -> VerificationOutcome:
        """
        Check one person's identity.

        Retries are left to the caller; a rejection is returned, not raised.

        Raises:
            CollaboratorUnavailable: On timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                with collaborator_latency_histogram.labels(collaborator=COLLABORATOR).time():
                    response = await client.post(
                        f"{self.base_url}/verifications",
                        json={
                            "first_name": first_name,
                            "last_name": last_name,
                            "government_id": government_id,
                            "birth_date": birth_date.isoformat(),
                        },
                    )
                response.raise_for_status()
                data = response.json()

                verified = data["verified"]
                if not isinstance(verified, bool):
                    raise TypeError("verified must be a boolean")
                return VerificationOutcome(verified=verified, reason=data.get("reason"))

            except httpx.TimeoutException as e:
                collaborator_failures_counter.labels(collaborator=COLLABORATOR).inc()
                raise CollaboratorUnavailable(COLLABORATOR, f"timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                collaborator_failures_counter.labels(collaborator=COLLABORATOR).inc()
                raise CollaboratorUnavailable(COLLABORATOR, f"HTTP {e.response.status_code}") from e
            except httpx.RequestError as e:
                collaborator_failures_counter.labels(collaborator=COLLABORATOR).inc()
                raise CollaboratorUnavailable(COLLABORATOR, f"request failed: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                collaborator_failures_counter.labels(collaborator=COLLABORATOR).inc()
                raise CollaboratorUnavailable(COLLABORATOR, f"invalid response: {e}") from e

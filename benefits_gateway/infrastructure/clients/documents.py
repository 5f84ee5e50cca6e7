"""Document intake HTTP client for storing enrollment documents"""

import base64
import uuid
import httpx
from dataclasses import dataclass
from typing import Optional
from benefits_gateway.domain.exceptions import CollaboratorUnavailable
from benefits_gateway.config import settings
from benefits_gateway.infrastructure.observability.metrics import (
    collaborator_failures_counter,
    collaborator_latency_histogram,
)

COLLABORATOR = "document_intake"


@dataclass(frozen=True)
class DocumentReceipt:
    """Intake service verdict for one file"""

    stored: bool
    storage_key: Optional[str] = None
    reason: Optional[str] = None


class DocumentIntakeClient:
    """Client for the external document storage service"""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = base_url or settings.document_intake_url
        self.timeout = timeout or settings.http_timeout_seconds

    async def store_document(
        self,
        subscription_id: uuid.UUID,
        filename: str,
        mime_type: str,
        content: bytes,
    ) -> DocumentReceipt:
        """
        Hand one file to the intake service.

        A "failed" verdict is a normal result, not an error.

        Raises:
            CollaboratorUnavailable: On timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                with collaborator_latency_histogram.labels(collaborator=COLLABORATOR).time():
                    response = await client.post(
                        f"{self.base_url}/documents",
                        json={
                            "subscription_id": str(subscription_id),
                            "filename": filename,
                            "mime_type": mime_type,
                            "data": base64.b64encode(content).decode("ascii"),
                        },
                    )
                response.raise_for_status()
                data = response.json()

                status = data["status"]
                if status == "stored":
                    return DocumentReceipt(stored=True, storage_key=str(data["storage_key"]))
                if status == "failed":
                    return DocumentReceipt(stored=False, reason=data.get("reason"))
                raise ValueError(f"unknown status {status!r}")

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

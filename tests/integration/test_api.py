"""Integration tests for API endpoints"""

import base64
import uuid
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from benefits_gateway.domain.exceptions import CollaboratorUnavailable
from benefits_gateway.infrastructure.clients.documents import DocumentReceipt
from benefits_gateway.infrastructure.clients.verification import VerificationOutcome

PLAN_BODY = {
    "name": "Gold",
    "currency": "USD",
    "costs": {
        "employee": {"cost_cents": 12000, "employer_percentage": "100"},
        "spouse": {"cost_cents": 8000, "employer_percentage": "50"},
        "child": {"cost_cents": 4000, "employer_percentage": "50"},
    },
}
PDF_FILE = {
    "filename": "id.pdf",
    "mime_type": "application/pdf",
    "content_base64": base64.b64encode(b"%PDF-1.4 test").decode(),
}


def _create_subscription(client: TestClient, employee, plan, items=None, **extra) -> dict:
    response = client.post(
        "/v1/subscriptions",
        json={
            "employee_id": str(employee.id),
            "plan_id": str(plan.id),
            "items": items or [{"role": "employee"}],
            **extra,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "benefits_subscriptions_created_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
    assert client.get("/health").headers["X-Request-ID"]


def test_create_and_get_plan(client: TestClient):
    """Test POST /v1/plans then GET /v1/plans/{plan_id}"""
    response = client.post("/v1/plans", json=PLAN_BODY)
    assert response.status_code == 201
    plan_id = response.json()["plan_id"]

    response = client.get(f"/v1/plans/{plan_id}")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Gold"
    assert data["costs"]["spouse"]["cost_cents"] == 8000


def test_create_plan_rejects_bad_percentage(client: TestClient):
    body = {**PLAN_BODY, "costs": {**PLAN_BODY["costs"], "child": {"cost_cents": 4000, "employer_percentage": "120"}}}
    response = client.post("/v1/plans", json=body)
    assert response.status_code == 422


def test_get_plan_errors(client: TestClient):
    assert client.get("/v1/plans/not-a-uuid").status_code == 400
    assert client.get(f"/v1/plans/{uuid.uuid4()}").status_code == 404


def test_create_subscription_returns_cost(client: TestClient, employee, plan, spouse_demographic):
    data = _create_subscription(
        client,
        employee,
        plan,
        items=[
            {"role": "employee"},
            {"role": "spouse", "demographic_id": str(spouse_demographic.id)},
            {"role": "child"},
        ],
        type="family",
    )

    assert data["status"] == "demographic_verification_pending"
    assert data["monthly_cost"]["total_cents"] == 24000
    assert data["monthly_cost"]["employer_cents"] == 18000
    assert data["monthly_cost"]["employee_cents"] == 6000

    response = client.get(f"/v1/subscriptions/{data['subscription_id']}")
    assert response.status_code == 200
    assert len(response.json()["steps"]) == 3


def test_create_subscription_validation_errors(client: TestClient, employee, plan):
    response = client.post(
        "/v1/subscriptions",
        json={
            "employee_id": str(employee.id),
            "plan_id": str(plan.id),
            "items": [{"role": "employee"}],
            "type": "family",
        },
    )
    assert response.status_code == 422

    response = client.post(
        "/v1/subscriptions",
        json={"employee_id": str(uuid.uuid4()), "plan_id": str(plan.id), "items": [{"role": "employee"}]},
    )
    assert response.status_code == 404


def test_step_webhook_outcomes(client: TestClient, employee, plan):
    """Duplicate deliveries are 200 already_completed, out-of-order steps are 409"""
    sub_id = _create_subscription(client, employee, plan)["subscription_id"]

    response = client.post(f"/v1/subscriptions/{sub_id}/steps/plan_activation")
    assert response.status_code == 409
    assert response.json()["outcome"] == "invalid_transition"

    response = client.post(f"/v1/subscriptions/{sub_id}/steps/document_upload")
    assert response.status_code == 200
    assert response.json()["outcome"] == "completed"
    assert response.json()["subscription"]["status"] == "plan_activation_pending"

    response = client.post(f"/v1/subscriptions/{sub_id}/steps/document_upload")
    assert response.status_code == 200
    assert response.json()["outcome"] == "already_completed"

    response = client.post(f"/v1/subscriptions/{sub_id}/activation")
    assert response.status_code == 200
    assert response.json()["subscription"]["status"] == "active"


def test_step_webhook_unknown_step_type(client: TestClient, employee, plan):
    sub_id = _create_subscription(client, employee, plan)["subscription_id"]
    assert client.post(f"/v1/subscriptions/{sub_id}/steps/payroll_sync").status_code == 422


@patch("benefits_gateway.infrastructure.clients.documents.DocumentIntakeClient.store_document")
def test_upload_documents(mock_store: AsyncMock, client: TestClient, employee, plan):
    """Test POST /v1/subscriptions/{id}/documents with the intake service mocked"""
    mock_store.return_value = DocumentReceipt(stored=True, storage_key="docs/1")
    sub_id = _create_subscription(client, employee, plan)["subscription_id"]

    response = client.post(f"/v1/subscriptions/{sub_id}/documents", json={"files": [PDF_FILE]})

    assert response.status_code == 200
    assert response.json()["outcome"] == "completed"
    assert response.json()["subscription"]["status"] == "plan_activation_pending"
    mock_store.assert_awaited_once()


@patch("benefits_gateway.infrastructure.clients.documents.DocumentIntakeClient.store_document")
def test_upload_documents_intake_down(mock_store: AsyncMock, client: TestClient, employee, plan):
    mock_store.side_effect = CollaboratorUnavailable("document_intake", "timeout after 5.0s")
    sub_id = _create_subscription(client, employee, plan)["subscription_id"]

    response = client.post(f"/v1/subscriptions/{sub_id}/documents", json={"files": [PDF_FILE]})

    assert response.status_code == 503
    assert client.get(f"/v1/subscriptions/{sub_id}").json()["status"] == "document_upload_pending"


def test_upload_documents_rejects_bad_input(client: TestClient, employee, plan):
    sub_id = _create_subscription(client, employee, plan)["subscription_id"]

    bad_base64 = {**PDF_FILE, "content_base64": "not base64!"}
    assert client.post(f"/v1/subscriptions/{sub_id}/documents", json={"files": [bad_base64]}).status_code == 422

    bad_type = {**PDF_FILE, "mime_type": "text/html"}
    assert client.post(f"/v1/subscriptions/{sub_id}/documents", json={"files": [bad_type]}).status_code == 422


@patch("benefits_gateway.infrastructure.clients.verification.IdentityVerificationClient.verify")
def test_submit_demographics(mock_verify: AsyncMock, client: TestClient, employee, plan):
    mock_verify.return_value = VerificationOutcome(verified=True)
    sub_id = _create_subscription(client, employee, plan, items=[{"role": "employee"}, {"role": "child"}])[
        "subscription_id"
    ]

    response = client.post(
        f"/v1/subscriptions/{sub_id}/demographics",
        json={
            "dependents": [
                {
                    "role": "child",
                    "first_name": "Sam",
                    "last_name": "Doe",
                    "government_id": "GOV-CHILD",
                    "birth_date": "2015-09-01",
                }
            ]
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["outcome"] == "completed"
    assert data["subscription"]["status"] == "document_upload_pending"
    assert all(item["demographic_id"] for item in data["subscription"]["items"])


def test_termination(client: TestClient, employee, plan):
    sub_id = _create_subscription(client, employee, plan, start_date="2025-03-01")["subscription_id"]

    response = client.post(f"/v1/subscriptions/{sub_id}/termination", json={"end_date": "2025-02-01"})
    assert response.status_code == 422

    response = client.post(f"/v1/subscriptions/{sub_id}/termination", json={"end_date": "2025-06-30"})
    assert response.status_code == 200
    assert response.json()["applied"] is True
    assert response.json()["subscription"]["end_date"] == "2025-06-30"

    response = client.post(f"/v1/subscriptions/{sub_id}/termination")
    assert response.status_code == 409
    assert response.json()["applied"] is False


def test_billing_cycle_and_wallet(client: TestClient, company, employee, plan):
    sub_id = _create_subscription(client, employee, plan, start_date="2025-01-15", billing_anchor=15)[
        "subscription_id"
    ]
    client.post(f"/v1/subscriptions/{sub_id}/steps/document_upload")
    client.post(f"/v1/subscriptions/{sub_id}/activation")

    response = client.post("/v1/billing/cycles", json={"cycle_date": "2025-02-15"})
    assert response.status_code == 200
    data = response.json()
    assert [d["amount_cents"] for d in data["debits"]] == [12000]
    assert data["failures"] == []

    response = client.post("/v1/billing/cycles", json={"cycle_date": "2025-02-15"})
    assert response.json()["debits"] == []

    wallet = client.get(f"/v1/employees/{employee.id}/wallet").json()
    assert wallet["balance_cents"] == 88000
    assert wallet["payment_status"] == "sufficient"
    assert wallet["transactions"][0]["kind"] == "subscription_payment"

    response = client.post(f"/v1/employees/{employee.id}/wallet/credits", json={"amount_cents": 2000})
    assert response.status_code == 200
    assert response.json()["balance_cents"] == 90000

    response = client.get(f"/v1/companies/{company.id}/spending")
    assert response.status_code == 200
    assert response.json()["currency"] == "USD"
    assert response.json()["total_cents"] == 12000
    assert response.json()["employer_cents"] == 12000

    response = client.get(f"/v1/companies/{company.id}/employees", params={"payment_status": "overdue"})
    assert response.status_code == 200
    assert response.json()["employees"] == []


def test_wallet_errors(client: TestClient, employee):
    assert client.get(f"/v1/employees/{uuid.uuid4()}/wallet").status_code == 404
    assert client.get("/v1/employees/nope/wallet").status_code == 400
    response = client.post(f"/v1/employees/{employee.id}/wallet/credits", json={"amount_cents": 0})
    assert response.status_code == 422


def test_company_endpoints_unknown_company(client: TestClient):
    assert client.get(f"/v1/companies/{uuid.uuid4()}/spending").status_code == 404
    assert client.get(f"/v1/companies/{uuid.uuid4()}/employees").status_code == 404

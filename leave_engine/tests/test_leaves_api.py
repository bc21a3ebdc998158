"""
End-to-end tests for the leave application endpoints
"""
import inspect
from datetime import date, timedelta

import pytest
from fastapi import status
from fastapi.routing import APIRoute

from leave_engine.core.deps import get_current_user
from leave_engine.tests.conftest import auth_headers


def _next_monday() -> date:
    today = date.today()
    return today + timedelta(days=14 - today.weekday())


@pytest.fixture
def mourning_payload(leave_types):
    start = _next_monday()
    return {
        "leave_type_id": leave_types["MOURNING"].id,
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=2)).isoformat(),
        "reason": "Family funeral",
    }


def _balance_for(client, employee, code, fiscal_year):
    response = client.get(
        "/api/v1/leave-balances/me", params={"fiscal_year": fiscal_year}, headers=auth_headers(employee)
    )
    assert response.status_code == status.HTTP_200_OK
    return next(b for b in response.json() if b["leave_type_code"] == code)


def test_apply_and_approve_over_http(client, staff_employee, manager_employee, hr_employee, mourning_payload):
    response = client.post("/api/v1/leaves", json=mourning_payload, headers=auth_headers(staff_employee))

    assert response.status_code == status.HTTP_201_CREATED
    application = response.json()
    assert application["current_status"] == "PENDING_SUPERVISOR"
    assert float(application["requested_days"]) == 3.0
    fiscal_year = application["fiscal_year"]

    pending = _balance_for(client, staff_employee, "MOURNING", fiscal_year)
    assert float(pending["pending_days"]) == 3.0
    assert float(pending["remaining_days"]) == 0.0

    queue = client.get("/api/v1/leaves/pending", headers=auth_headers(manager_employee)).json()
    assert [a["id"] for a in queue] == [application["id"]]

    response = client.post(
        f"/api/v1/leaves/{application['id']}/approve",
        json={"comments": "Sorry for your loss"},
        headers=auth_headers(manager_employee),
    )
    assert response.json()["current_status"] == "PENDING_HR"

    response = client.post(
        f"/api/v1/leaves/{application['id']}/approve", json={}, headers=auth_headers(hr_employee)
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["current_status"] == "APPROVED"
    assert len(response.json()["approval_logs"]) == 2

    approved = _balance_for(client, staff_employee, "MOURNING", fiscal_year)
    assert float(approved["used_days"]) == 3.0
    assert float(approved["pending_days"]) == 0.0


def test_business_rule_errors_map_to_http(client, staff_employee, hr_employee, mourning_payload):
    first = client.post("/api/v1/leaves", json=mourning_payload, headers=auth_headers(staff_employee))
    assert first.status_code == status.HTTP_201_CREATED

    overlap = client.post("/api/v1/leaves", json=mourning_payload, headers=auth_headers(staff_employee))
    assert overlap.status_code == status.HTTP_409_CONFLICT
    assert overlap.json()["detail"]["kind"] == "CONFLICT"
    assert overlap.json()["detail"]["context"]["existing_application_id"] == first.json()["id"]

    forbidden = client.post(
        f"/api/v1/leaves/{first.json()['id']}/approve", json={}, headers=auth_headers(hr_employee)
    )
    assert forbidden.status_code == status.HTTP_403_FORBIDDEN
    assert forbidden.json()["detail"]["kind"] == "AUTHORIZATION"

    missing = client.get("/api/v1/leaves/99999", headers=auth_headers(staff_employee))
    assert missing.status_code == status.HTTP_404_NOT_FOUND
    assert missing.json()["detail"]["kind"] == "NOT_FOUND"


def test_reversed_dates_rejected(client, staff_employee, mourning_payload):
    payload = dict(mourning_payload, start_date=mourning_payload["end_date"], end_date=mourning_payload["start_date"])

    response = client.post("/api/v1/leaves", json=payload, headers=auth_headers(staff_employee))

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"]["kind"] == "VALIDATION"


def test_insufficient_balance_is_unprocessable(client, staff_employee, leave_types):
    start = _next_monday()
    payload = {
        "leave_type_id": leave_types["MOURNING"].id,
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=4)).isoformat(),
    }

    response = client.post("/api/v1/leaves", json=payload, headers=auth_headers(staff_employee))

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["detail"]["kind"] == "BUSINESS_RULE_VIOLATION"
    assert response.json()["detail"]["context"] == {"available": 3.0, "requested": 5.0}


def test_view_permissions(client, staff_employee, other_employee, manager_employee, hr_employee, mourning_payload):
    created = client.post("/api/v1/leaves", json=mourning_payload, headers=auth_headers(staff_employee)).json()
    url = f"/api/v1/leaves/{created['id']}"

    assert client.get(url, headers=auth_headers(staff_employee)).status_code == status.HTTP_200_OK
    assert client.get(url, headers=auth_headers(manager_employee)).status_code == status.HTTP_200_OK
    assert client.get(url, headers=auth_headers(hr_employee)).status_code == status.HTTP_200_OK
    assert client.get(url, headers=auth_headers(other_employee)).status_code == status.HTTP_403_FORBIDDEN


def test_cancel_over_http(client, staff_employee, mourning_payload):
    created = client.post("/api/v1/leaves", json=mourning_payload, headers=auth_headers(staff_employee)).json()

    response = client.post(
        f"/api/v1/leaves/{created['id']}/cancel", json={"reason": "Plans changed"}, headers=auth_headers(staff_employee)
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["current_status"] == "CANCELLED"
    balance = _balance_for(client, staff_employee, "MOURNING", created["fiscal_year"])
    assert float(balance["pending_days"]) == 0.0

    again = client.post(f"/api/v1/leaves/{created['id']}/cancel", json={}, headers=auth_headers(staff_employee))
    assert again.status_code == status.HTTP_409_CONFLICT


def test_my_leaves_filter(client, staff_employee, manager_employee, mourning_payload):
    created = client.post("/api/v1/leaves", json=mourning_payload, headers=auth_headers(staff_employee)).json()
    client.post(f"/api/v1/leaves/{created['id']}/reject", json={}, headers=auth_headers(manager_employee))

    rejected = client.get("/api/v1/leaves/my", params={"status": "REJECTED"}, headers=auth_headers(staff_employee))
    pending = client.get(
        "/api/v1/leaves/my", params={"status": "PENDING_SUPERVISOR"}, headers=auth_headers(staff_employee)
    )

    assert [a["id"] for a in rejected.json()] == [created["id"]]
    assert pending.json() == []


def test_stats_restricted_to_hr_and_executives(client, staff_employee, hr_employee, ceo_employee):
    assert client.get("/api/v1/leaves/stats", headers=auth_headers(staff_employee)).status_code == 403
    assert client.get("/api/v1/leaves/stats", headers=auth_headers(ceo_employee)).status_code == 200

    stats = client.get("/api/v1/leaves/stats", headers=auth_headers(hr_employee)).json()
    assert stats["total_applications"] == 0
    assert stats["on_leave_today"] == 0


def test_handlers_run_in_threadpool(app):
    """Blocking database, retry and SMTP work must not run on the event loop"""
    routes = [route for route in app.routes if isinstance(route, APIRoute)]

    assert routes
    assert [route.path for route in routes if inspect.iscoroutinefunction(route.endpoint)] == []
    assert not inspect.iscoroutinefunction(get_current_user)

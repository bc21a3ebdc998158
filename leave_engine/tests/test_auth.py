"""
Tests for authentication endpoints
"""
import pytest
from fastapi import status

from leave_engine.core.security import decode_token
from leave_engine.tests.conftest import TEST_SETTINGS, auth_headers, make_employee


@pytest.fixture
def inactive_employee(db, company):
    employee = make_employee(db, company, "Ivy Inactive", "ivy@acme.test")
    employee.active = False
    db.commit()
    return employee


def test_auth_login_success(client, staff_employee):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "Staff@Acme.test", "password": "password123"},
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["employee_id"] == staff_employee.id
    assert data["role"] == "EMPLOYEE"
    assert decode_token(TEST_SETTINGS, data["access_token"])["sub"] == str(staff_employee.id)


def test_auth_login_wrong_password(client, staff_employee):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "staff@acme.test", "password": "wrongpassword"},
    )

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"] == "Invalid email or password"


def test_auth_login_unknown_email(client):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "nobody@acme.test", "password": "password123"},
    )

    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_auth_login_inactive_employee(client, inactive_employee):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "ivy@acme.test", "password": "password123"},
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_auth_login_missing_fields(client):
    response = client.post("/api/v1/auth/login", json={"email": "staff@acme.test"})

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_protected_endpoint_rejects_bad_token(client, staff_employee):
    response = client.get("/api/v1/leaves/my", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_inactive_user_token_refused(client, inactive_employee):
    response = client.get("/api/v1/leaves/my", headers=auth_headers(inactive_employee))

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_role_guard(client, staff_employee, hr_employee, admin_employee):
    assert client.get("/api/v1/recalls", headers=auth_headers(staff_employee)).status_code == 403
    assert client.get("/api/v1/recalls", headers=auth_headers(hr_employee)).status_code == 200
    assert client.get("/api/v1/recalls", headers=auth_headers(admin_employee)).status_code == 200

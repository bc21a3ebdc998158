"""
Tests for the leave type registry endpoints
"""
from datetime import date, timedelta

from fastapi import status

from leave_engine.tests.conftest import auth_headers


NEW_TYPE = {
    "name": "Study Leave",
    "code": "study",
    "default_allowance_days": "10",
    "requires_attachment": True,
}


def test_seed_default_catalogue(client, hr_employee):
    response = client.post("/api/v1/leave-types/seed", headers=auth_headers(hr_employee))

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json() == {"count": 8}

    codes = {t["code"] for t in client.get("/api/v1/leave-types", headers=auth_headers(hr_employee)).json()}
    assert codes == {
        "ANNUAL", "MARRIAGE", "MATERNITY_PRE", "MATERNITY_POST", "PATERNITY", "MOURNING", "SICK", "UNPAID"
    }

    again = client.post("/api/v1/leave-types/seed", headers=auth_headers(hr_employee))
    assert again.status_code == status.HTTP_409_CONFLICT


def test_seed_requires_hr(client, staff_employee):
    response = client.post("/api/v1/leave-types/seed", headers=auth_headers(staff_employee))

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_create_normalises_code(client, hr_employee, leave_types):
    response = client.post("/api/v1/leave-types", json=NEW_TYPE, headers=auth_headers(hr_employee))

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["code"] == "STUDY"
    assert data["applicable_gender"] == "All"
    assert data["is_active"] is True

    duplicate = client.post("/api/v1/leave-types", json=dict(NEW_TYPE, code=" Study "), headers=auth_headers(hr_employee))
    assert duplicate.status_code == status.HTTP_409_CONFLICT
    assert duplicate.json()["detail"]["context"] == {"code": "STUDY"}


def test_update_and_deactivate(client, hr_employee, leave_types):
    marriage = leave_types["MARRIAGE"]

    response = client.patch(
        f"/api/v1/leave-types/{marriage.id}",
        json={"default_allowance_days": "5", "is_active": False},
        headers=auth_headers(hr_employee),
    )

    assert response.status_code == status.HTTP_200_OK
    assert float(response.json()["default_allowance_days"]) == 5.0
    active_codes = {t["code"] for t in client.get("/api/v1/leave-types", headers=auth_headers(hr_employee)).json()}
    all_codes = {
        t["code"] for t in client.get(
            "/api/v1/leave-types", params={"include_inactive": True}, headers=auth_headers(hr_employee)
        ).json()
    }
    assert "MARRIAGE" not in active_codes
    assert "MARRIAGE" in all_codes


def test_rename_onto_existing_code_conflicts(client, hr_employee, leave_types):
    response = client.patch(
        f"/api/v1/leave-types/{leave_types['MARRIAGE'].id}",
        json={"code": "sick"},
        headers=auth_headers(hr_employee),
    )

    assert response.status_code == status.HTTP_409_CONFLICT


def test_applicable_types_follow_gender(client, staff_employee, other_employee, leave_types):
    male_codes = {
        t["code"] for t in client.get("/api/v1/leave-types/applicable", headers=auth_headers(staff_employee)).json()
    }
    female_codes = {
        t["code"] for t in client.get("/api/v1/leave-types/applicable", headers=auth_headers(other_employee)).json()
    }

    assert "PATERNITY" in male_codes
    assert "MATERNITY_PRE" not in male_codes
    assert "MATERNITY_POST" in female_codes
    assert "PATERNITY" not in female_codes


def test_delete_unused_type(client, hr_employee, leave_types):
    response = client.delete(f"/api/v1/leave-types/{leave_types['MARRIAGE'].id}", headers=auth_headers(hr_employee))

    assert response.status_code == status.HTTP_204_NO_CONTENT
    missing = client.get(f"/api/v1/leave-types/{leave_types['MARRIAGE'].id}", headers=auth_headers(hr_employee))
    assert missing.status_code == status.HTTP_404_NOT_FOUND


def test_delete_type_in_use_conflicts(client, hr_employee, staff_employee, leave_types):
    start = date.today() + timedelta(days=14 - date.today().weekday())
    created = client.post(
        "/api/v1/leaves",
        json={"leave_type_id": leave_types["MOURNING"].id, "start_date": start.isoformat(),
              "end_date": start.isoformat()},
        headers=auth_headers(staff_employee),
    )
    assert created.status_code == status.HTTP_201_CREATED

    response = client.delete(f"/api/v1/leave-types/{leave_types['MOURNING'].id}", headers=auth_headers(hr_employee))

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["detail"]["context"] == {"applications": 1}

from datetime import timedelta

from fastapi.testclient import TestClient

from app.services.schedule_gate import WEEKDAY_LABELS, school_today, weekday_label
from tests.conftest import auth_headers


def _create_student(client: TestClient, headers, name="Siti Aminah", class_label="3", nisn="0012345678") -> dict:
    response = client.post(
        "/students",
        headers=headers,
        json={"name": name, "class_label": class_label, "external_id": nisn},
    )
    assert response.status_code == 200, response.text
    return response.json()


def _create_user(client: TestClient, headers, **payload) -> dict:
    response = client.post("/users", headers=headers, json={"password": "secret123", **payload})
    assert response.status_code == 200, response.text
    return response.json()


def _post_transaction(client: TestClient, headers, student_id: str, type_value: str, amount, description="setoran"):
    return client.post(
        "/transactions",
        headers=headers,
        json={"student_id": student_id, "type": type_value, "amount": amount, "description": description},
    )


def test_students_auth_required(app_client: TestClient):
    assert app_client.get("/students").status_code == 401
    assert app_client.get("/students", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_login_and_me(app_client: TestClient):
    bad = app_client.post("/auth/login", json={"login": "admin", "password": "wrong"})
    assert bad.status_code == 401

    headers = auth_headers(app_client)
    me = app_client.get("/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["role"] == "admin"


def test_health_and_system_info(app_client: TestClient):
    health = app_client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "ok"

    info = app_client.get("/system/info")
    assert info.status_code == 200
    body = info.json()
    assert body["students"] == 0
    assert body["transactions"] == 0
    assert body["change_feed_subscribers"] == 1


def test_admin_transaction_flow(app_client: TestClient):
    headers = auth_headers(app_client)
    student = _create_student(app_client, headers)
    assert student["balance"] == 0

    deposit = _post_transaction(app_client, headers, student["id"], "deposit", 20000)
    assert deposit.status_code == 200, deposit.text
    assert deposit.json()["balance"] == 20000
    assert deposit.json()["type"] == "deposit"
    assert deposit.json()["performed_by_role"] == "admin"

    withdrawal = _post_transaction(app_client, headers, student["id"], "withdrawal", 5000, "penarikan")
    assert withdrawal.status_code == 200
    assert withdrawal.json()["balance"] == 15000

    too_much = _post_transaction(app_client, headers, student["id"], "withdrawal", 20000)
    assert too_much.status_code == 409
    assert too_much.json()["detail"]["error"] == "insufficient_balance"

    invalid = _post_transaction(app_client, headers, student["id"], "deposit", "abc")
    assert invalid.status_code == 422
    assert invalid.json()["detail"]["error"] == "invalid_amount"

    fetched = app_client.get(f"/students/{student['id']}", headers=headers)
    assert fetched.json()["balance"] == 15000

    history = app_client.get("/transactions", headers=headers, params={"student_id": student["id"]})
    assert [item["amount"] for item in history.json()] == [5000, 20000]

    consistency = app_client.get("/transactions/consistency", headers=headers)
    assert consistency.status_code == 200
    assert consistency.json() == []


def test_duplicate_and_invalid_nisn(app_client: TestClient):
    headers = auth_headers(app_client)
    _create_student(app_client, headers)

    duplicate = app_client.post(
        "/students",
        headers=headers,
        json={"name": "Other", "class_label": "4", "external_id": "0012345678"},
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"]["error"] == "duplicate_external_id"

    invalid = app_client.post(
        "/students",
        headers=headers,
        json={"name": "Other", "class_label": "4", "external_id": "12"},
    )
    assert invalid.status_code == 422
    assert invalid.json()["detail"]["error"] == "invalid_external_id"


def test_import_update_and_delete_students(app_client: TestClient):
    headers = auth_headers(app_client)
    imported = app_client.post(
        "/students/import",
        headers=headers,
        json={
            "students": [
                {"name": "Andi", "class_label": "1", "external_id": "1111111111"},
                {"name": "Budi", "class_label": "1", "external_id": "2222222222"},
            ]
        },
    )
    assert imported.status_code == 200, imported.text
    andi, budi = imported.json()

    updated = app_client.patch(f"/students/{andi['id']}", headers=headers, json={"class_label": "2"})
    assert updated.status_code == 200
    assert updated.json()["class_label"] == "2"

    deleted = app_client.delete(f"/students/{budi['id']}", headers=headers)
    assert deleted.status_code == 200
    assert app_client.get(f"/students/{budi['id']}", headers=headers).status_code == 404

    listed = app_client.get("/students", headers=headers, params={"search": "AND"})
    assert [item["name"] for item in listed.json()] == ["Andi"]


def test_teacher_deposit_follows_schedule(app_client: TestClient):
    admin = auth_headers(app_client)
    today = school_today()
    other_day = WEEKDAY_LABELS[(today.weekday() + 1) % 7]
    _create_user(app_client, admin, login="guru3", name="Bu Rina", role="teacher", class_label="3")
    _create_user(app_client, admin, login="guru4", name="Pak Joko", role="teacher", class_label="4")
    own = _create_student(app_client, admin, "Siti", "3", "0012345678")
    other = _create_student(app_client, admin, "Rudi", "4", "0087654321")

    for class_label, day in (("3", weekday_label(today)), ("4", other_day)):
        goal = app_client.post(
            "/savings-goals",
            headers=admin,
            json={
                "class_label": class_label,
                "goal_name": "Study tour",
                "goal_amount": 100000,
                "target_date": (today + timedelta(days=180)).isoformat(),
                "day_of_week": day,
            },
        )
        assert goal.status_code == 200, goal.text

    teacher3 = auth_headers(app_client, "guru3", "secret123")
    teacher4 = auth_headers(app_client, "guru4", "secret123")

    allowed = app_client.get("/savings-goals/deposit-allowed", headers=teacher3)
    assert allowed.json()["allowed"] is True
    deposit = _post_transaction(app_client, teacher3, own["id"], "deposit", 12000)
    assert deposit.status_code == 200, deposit.text
    assert deposit.json()["performed_by"] == "Bu Rina"

    blocked = _post_transaction(app_client, teacher4, other["id"], "deposit", 12000)
    assert blocked.status_code == 409
    detail = blocked.json()["detail"]
    assert detail["error"] == "deposit_not_scheduled"
    assert "class 4" in detail["message"]

    foreign = _post_transaction(app_client, teacher4, own["id"], "withdrawal", 1000)
    assert foreign.status_code == 403

    visible = app_client.get("/students", headers=teacher3)
    assert [item["id"] for item in visible.json()] == [own["id"]]

    goals = app_client.get("/savings-goals", headers=teacher3).json()
    assert [(g["class_label"], g["current_saved_amount"], g["status"]) for g in goals] == [("3", 12000, "behind")]


def test_parent_sees_only_own_child(app_client: TestClient):
    admin = auth_headers(app_client)
    child = _create_student(app_client, admin, "Siti", "3", "0012345678")
    stranger = _create_student(app_client, admin, "Rudi", "3", "0087654321")
    _post_transaction(app_client, admin, child["id"], "deposit", 9000)
    _post_transaction(app_client, admin, stranger["id"], "deposit", 4000)

    missing = app_client.post(
        "/users",
        headers=admin,
        json={"login": "ortu0", "name": "Nobody", "password": "secret123", "role": "parent", "nisn": "9999999999"},
    )
    assert missing.status_code == 404

    _create_user(app_client, admin, login="ortu", name="Ibu Siti", role="parent", nisn="0012345678")
    parent = auth_headers(app_client, "ortu", "secret123")

    me = app_client.get("/auth/me", headers=parent).json()
    assert me["student_info"]["id"] == child["id"]

    students = app_client.get("/students", headers=parent).json()
    assert [item["id"] for item in students] == [child["id"]]
    assert app_client.get(f"/students/{stranger['id']}", headers=parent).status_code == 404

    history = app_client.get("/transactions", headers=parent).json()
    assert [item["student_id"] for item in history] == [child["id"]]

    dashboard = app_client.get("/reports/dashboard", headers=parent).json()
    assert dashboard["total_students"] == 1
    assert dashboard["total_balance"] == 9000

    forbidden = _post_transaction(app_client, parent, child["id"], "deposit", 1000)
    assert forbidden.status_code == 403
    assert app_client.get("/reports/recap", headers=parent).status_code == 403


def test_recap_and_dashboard(app_client: TestClient):
    headers = auth_headers(app_client)
    dewi = _create_student(app_client, headers, "Dewi", "3", "0012345678")
    andi = _create_student(app_client, headers, "andi", "4", "0087654321")
    _post_transaction(app_client, headers, dewi["id"], "deposit", 50000)
    _post_transaction(app_client, headers, dewi["id"], "withdrawal", 10000)
    _post_transaction(app_client, headers, andi["id"], "deposit", 7000)

    recap = app_client.get("/reports/recap", headers=headers)
    assert recap.status_code == 200
    body = recap.json()
    assert [item["student"]["name"] for item in body["students"]] == ["andi", "Dewi"]
    assert body["totals"] == {
        "total_deposits": 57000,
        "total_withdrawals": 10000,
        "net_amount": 47000,
        "total_balance": 47000,
        "student_count": 2,
    }

    past = (school_today() - timedelta(days=30)).isoformat()
    windowed = app_client.get("/reports/recap", headers=headers, params={"date_from": past, "date_to": past}).json()
    dewi_row = next(item for item in windowed["students"] if item["student"]["id"] == dewi["id"])
    assert (dewi_row["total_deposits"], dewi_row["total_withdrawals"], dewi_row["current_balance"]) == (0, 0, 40000)

    class_only = app_client.get("/reports/recap", headers=headers, params={"class_label": "4"}).json()
    assert [item["student"]["id"] for item in class_only["students"]] == [andi["id"]]

    inverted = app_client.get(
        "/reports/recap",
        headers=headers,
        params={"date_from": school_today().isoformat(), "date_to": past},
    )
    assert inverted.status_code == 400

    dashboard = app_client.get("/reports/dashboard", headers=headers).json()
    assert dashboard["total_students"] == 2
    assert dashboard["total_balance"] == 47000
    assert len(dashboard["recent_transactions"]) == 3
    assert {row["class_label"]: row["total_balance"] for row in dashboard["classes"]}["3"] == 40000


def test_reset_clears_history(app_client: TestClient):
    headers = auth_headers(app_client)
    student = _create_student(app_client, headers)
    _post_transaction(app_client, headers, student["id"], "deposit", 3000)
    _post_transaction(app_client, headers, student["id"], "deposit", 2000)

    reset = app_client.post("/transactions/reset", headers=headers)
    assert reset.status_code == 200
    assert reset.json() == {"ok": True, "transactions_deleted": 2, "students_reset": 1}

    assert app_client.get("/transactions", headers=headers).json() == []
    assert app_client.get(f"/students/{student['id']}", headers=headers).json()["balance"] == 0
    assert app_client.get("/reports/dashboard", headers=headers).json()["total_balance"] == 0


def test_user_management(app_client: TestClient):
    headers = auth_headers(app_client)
    teacher = _create_user(app_client, headers, login="guru1", name="Bu Ani", role="teacher", class_label="1")

    taken = app_client.post(
        "/users",
        headers=headers,
        json={"login": "guru1", "name": "Dup", "password": "secret123", "role": "teacher", "class_label": "2"},
    )
    assert taken.status_code == 409

    missing_class = app_client.post(
        "/users",
        headers=headers,
        json={"login": "guru2", "name": "No class", "password": "secret123", "role": "teacher"},
    )
    assert missing_class.status_code == 422

    teacher_headers = auth_headers(app_client, "guru1", "secret123")
    assert app_client.get("/users", headers=teacher_headers).status_code == 403
    assert app_client.post("/transactions/reset", headers=teacher_headers).status_code == 403

    changed = app_client.post(f"/users/{teacher['id']}/password", headers=headers, json={"password": "newpass1"})
    assert changed.status_code == 200
    auth_headers(app_client, "guru1", "newpass1")

    me = app_client.get("/auth/me", headers=headers).json()
    assert app_client.delete(f"/users/{me['id']}", headers=headers).status_code == 403
    assert app_client.delete(f"/users/{teacher['id']}", headers=headers).status_code == 200
    assert [user["login"] for user in app_client.get("/users", headers=headers).json()] == ["admin"]


def test_deleted_student_leaves_reports(app_client: TestClient):
    headers = auth_headers(app_client)
    student = _create_student(app_client, headers)
    _post_transaction(app_client, headers, student["id"], "deposit", 20000)

    before = app_client.get("/reports/dashboard", headers=headers).json()
    assert before["total_deposits"] == 20000

    assert app_client.delete(f"/students/{student['id']}", headers=headers).status_code == 200

    assert app_client.get("/transactions", headers=headers).json() == []
    dashboard = app_client.get("/reports/dashboard", headers=headers).json()
    assert dashboard["total_students"] == 0
    assert dashboard["total_deposits"] == 0
    assert dashboard["recent_transactions"] == []


def test_deleted_parent_is_unlinked_in_reports(app_client: TestClient):
    headers = auth_headers(app_client)
    student = _create_student(app_client, headers)
    parent = _create_user(app_client, headers, login="ortu", name="Ibu Siti", role="parent", nisn="0012345678")

    recap = app_client.get("/reports/recap", headers=headers).json()
    assert recap["students"][0]["student"]["parent_id"] == parent["id"]

    assert app_client.delete(f"/users/{parent['id']}", headers=headers).status_code == 200

    recap = app_client.get("/reports/recap", headers=headers).json()
    assert recap["students"][0]["student"]["id"] == student["id"]
    assert recap["students"][0]["student"]["parent_id"] is None

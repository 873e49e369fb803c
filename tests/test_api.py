from datetime import timedelta

import pytest

from IpTracking_module.IpAudit_model import IpAddressLog
from Login_module.Utils.datetime_utils import now_local, today_local
from Login_module.Utils.Security import create_access_token

OFFICE_IP = {"X-Forwarded-For": "192.168.1.100, 10.1.1.1"}
HOME_IP = {"X-Forwarded-For": "203.0.113.9"}


def auth_headers_for(user):
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def employee(make_user):
    return make_user("Employee", assigned_ip_addresses="192.168.1.100")


@pytest.fixture()
def admin(make_user):
    return make_user("Admin", is_admin=True)


def _redeem(client, user, code_value, headers=None, **overrides):
    body = {
        "codeValue": code_value,
        "timestamp": now_local().isoformat(),
        "latitude": 41.0082,
        "longitude": 28.9784,
    }
    body.update(overrides)
    return client.post(
        "/api/entry-exit",
        json=body,
        headers={**auth_headers_for(user), **(headers or {})},
    )


def _daily_code(client, user):
    res = client.get("/api/daily-code", headers=auth_headers_for(user))
    assert res.status_code == 200
    return res.json()


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


def test_daily_code_requires_token(client):
    assert client.get("/api/daily-code").status_code in (401, 403)
    assert client.get("/api/daily-code", headers={"Authorization": "Bearer nonsense"}).status_code == 401


def test_daily_code_is_stable_for_the_day(client, employee):
    first = _daily_code(client, employee)
    second = _daily_code(client, employee)

    assert first == second
    assert first["validDate"] == today_local().isoformat()
    assert first["usageCount"] == 0
    assert first["maxUsage"] == 2


def test_inactive_user_is_forbidden(client, make_user):
    user = make_user("Former", is_active=False)
    assert client.get("/api/daily-code", headers=auth_headers_for(user)).status_code == 403


def test_entry_exit_flow(client, employee):
    code_value = _daily_code(client, employee)["codeValue"]

    entry = _redeem(client, employee, code_value, OFFICE_IP)
    assert entry.status_code == 200
    assert entry.json()["kind"] == "ENTRY"
    assert entry.json()["latitude"] == pytest.approx(41.0082)

    status_res = client.get("/api/entry-exit/status", headers=auth_headers_for(employee))
    assert status_res.json()["status"] == "INSIDE"

    exit_ = _redeem(client, employee, code_value, OFFICE_IP)
    assert exit_.json()["kind"] == "EXIT"

    third = _redeem(client, employee, code_value, OFFICE_IP)
    assert third.status_code == 400
    assert third.json()["detail"]["reason"] == "EXHAUSTED"
    assert _daily_code(client, employee)["usageCount"] == 2


def test_invalid_gps_is_a_rejected_redemption(client, employee):
    code_value = _daily_code(client, employee)["codeValue"]

    res = _redeem(client, employee, code_value, latitude=91.0)

    assert res.status_code == 400
    assert res.json()["detail"]["reason"] == "INVALID_GPS"
    assert _daily_code(client, employee)["usageCount"] == 0


def test_foreign_code_is_rejected(client, employee, make_user):
    other = make_user("Other")
    code_value = _daily_code(client, other)["codeValue"]

    res = _redeem(client, employee, code_value)

    assert res.status_code == 400
    assert res.json()["detail"]["reason"] == "WRONG_OWNER"


def test_malformed_body_uses_error_envelope(client, employee):
    res = client.post("/api/entry-exit", json={"latitude": 1}, headers=auth_headers_for(employee))

    assert res.status_code == 422
    assert res.json()["status"] == "error"
    assert any(d["field"] == "codeValue" for d in res.json()["details"])


def test_admin_endpoints_require_admin(client, employee):
    res = client.get("/admin/ip-tracking/config", headers=auth_headers_for(employee))
    assert res.status_code == 403


def test_admin_config(client, admin):
    res = client.get("/admin/ip-tracking/config", headers=auth_headers_for(admin))
    assert res.status_code == 200
    assert res.json()["anonymizationLevel"] in ("NONE", "PARTIAL", "FULL")
    assert "retentionDays" in res.json()


def test_assignment_lifecycle_is_audited(client, admin, make_user, db):
    user = make_user("New hire")
    headers = auth_headers_for(admin)
    url = f"/admin/ip-tracking/users/{user.id}/assigned-ips"

    res = client.put(url, json={"ipAddresses": "10.0.0.1; 10.0.0.2"}, headers=headers)
    assert res.status_code == 200
    assert res.json()["assignedIpAddresses"] == ["10.0.0.1", "10.0.0.2"]

    res = client.put(url, json={"ipAddresses": "10.0.0.1,10.0.0.3"}, headers=headers)
    assert res.json()["count"] == 2

    res = client.delete(f"{url}/10.0.0.3", headers=headers)
    assert res.json()["assignedIpAddresses"] == ["10.0.0.1"]

    res = client.put(url, json={"ipAddresses": ""}, headers=headers)
    assert res.json()["count"] == 0

    actions = [
        row.action for row in
        db.query(IpAddressLog).filter(IpAddressLog.user_id == user.id).order_by(IpAddressLog.id).all()
    ]
    modifications = [a for a in actions if a != "VIEW"]
    assert modifications == ["ASSIGN", "UPDATE", "REMOVE", "REMOVE"]
    assert "VIEW" in actions


def test_assignment_validation_errors(client, admin, employee):
    headers = auth_headers_for(admin)
    url = f"/admin/ip-tracking/users/{employee.id}/assigned-ips"

    assert client.put(url, json={"ipAddresses": "10.0.0.1,banana"}, headers=headers).status_code == 422
    assert client.put(url, json={"ipAddresses": "10.0.0.1,10.0.0.1"}, headers=headers).status_code == 422
    assert client.put(
        "/admin/ip-tracking/users/999999/assigned-ips", json={"ipAddresses": "10.0.0.1"}, headers=headers
    ).status_code == 404


def test_compliance_report(client, admin, employee):
    code_value = _daily_code(client, employee)["codeValue"]
    _redeem(client, employee, code_value, OFFICE_IP)
    _redeem(client, employee, code_value, HOME_IP)

    res = client.get("/admin/ip-tracking/compliance-report", headers=auth_headers_for(admin))

    assert res.status_code == 200
    report = res.json()
    assert report["totalRecords"] == 2
    assert report["counts"]["MATCH"] == 1
    assert report["counts"]["MISMATCH"] == 1
    assert report["compliancePercentage"] == 50.0
    assert report["mismatches"][0]["userId"] == employee.id
    assert report["mismatches"][0]["observedAddresses"] == ["203.0.113.9"]


def test_compliance_report_rejects_inverted_range(client, admin):
    today = today_local()
    res = client.get(
        "/admin/ip-tracking/compliance-report",
        params={"startDate": today.isoformat(), "endDate": (today - timedelta(days=1)).isoformat()},
        headers=auth_headers_for(admin),
    )
    assert res.status_code == 422


def test_audit_log_listing(client, admin, employee):
    code_value = _daily_code(client, employee)["codeValue"]
    _redeem(client, employee, code_value, HOME_IP)

    res = client.get(
        "/admin/ip-tracking/audit-logs",
        params={"userId": employee.id, "action": "ACCESS"},
        headers=auth_headers_for(admin),
    )

    assert res.status_code == 200
    entries = res.json()
    assert len(entries) == 1
    assert entries[0]["details"]["compliance"] == "MISMATCH"


def test_validate_probe(client, admin):
    headers = auth_headers_for(admin)

    ok = client.post("/admin/ip-tracking/validate", json={"ipAddress": " 10.0.0.1 "}, headers=headers).json()
    assert ok["valid"] is True
    assert ok["sanitized"] == "10.0.0.1"

    bad = client.post("/admin/ip-tracking/validate", json={"ipAddress": "1.1.1.1;--"}, headers=headers).json()
    assert bad["valid"] is False
    assert bad["secure"] is False
    assert bad["error"]


def test_retention_endpoints(client, admin):
    headers = auth_headers_for(admin)

    status_res = client.get("/admin/ip-tracking/retention/status", headers=headers)
    assert status_res.status_code == 200
    assert set(status_res.json()) == {"auditLoggingEnabled", "retentionDays", "policyActive"}

    enforce = client.post("/admin/ip-tracking/retention/enforce", headers=headers)
    assert enforce.status_code == 200
    assert enforce.json()["deletedRecords"] == 0


def test_suspicious_access_check(client, admin, employee):
    headers = auth_headers_for(admin)

    res = client.get(
        f"/admin/ip-tracking/users/{employee.id}/suspicious-access",
        params={"timeWindowHours": 2},
        headers=headers,
    )

    assert res.status_code == 200
    body = res.json()
    assert body["userId"] == employee.id
    assert body["timeWindowHours"] == 2
    assert body["suspiciousActivity"] is False
    assert body["accessCount"] == 0

    assert client.get("/admin/ip-tracking/users/999999/suspicious-access", headers=headers).status_code == 404

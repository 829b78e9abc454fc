"""
Auth route tests: registration, login and the authorization gate.
"""

from datetime import timedelta

from homecare.api.middleware.auth import create_access_token

from tests.conftest import API, PASSWORD, auth_headers, register


def _walk_keys(obj):
    if isinstance(obj, dict):
        for key, value in obj.items():
            yield key
            yield from _walk_keys(value)
    elif isinstance(obj, list):
        for item in obj:
            yield from _walk_keys(item)


class TestRegister:
    """Tests for POST /auth/register"""

    def test_register_returns_session_without_credential(self, client):
        resp = client.post(f"{API}/auth/register", json={
            "email": "Sara@Example.com",
            "password": PASSWORD,
            "userType": "patient",
            "name": "Sara",
            "phone": "+201111111111",
            "nationalId": "29001011234567",
        })

        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "success"
        assert body["data"]["token"]
        assert body["data"]["user_type"] == "patient"
        user = body["data"]["user"]
        assert user["email"] == "sara@example.com"
        assert user["is_active"] is False
        assert user["national_id"] == "29001011234567"
        keys = set(_walk_keys(body))
        assert "password" not in keys
        assert "hashed_password" not in keys

    def test_admin_is_created_active(self, client):
        admin = register(client, "admin")
        assert admin.user["is_active"] is True
        assert admin.user["activation_date"] is not None

    def test_duplicate_email_is_rejected_case_insensitively(self, client):
        register(client, "patient", email="dup@example.com")

        resp = client.post(f"{API}/auth/register", json={
            "email": "DUP@example.com",
            "password": PASSWORD,
            "userType": "nurse",
            "name": "Other",
            "phone": "+201000000001",
        })

        assert resp.status_code == 400
        assert resp.json() == {"status": "error", "message": "User with this email already exists"}

    def test_missing_phone_is_a_validation_error(self, client):
        resp = client.post(f"{API}/auth/register", json={
            "email": "nophone@example.com",
            "password": PASSWORD,
            "userType": "patient",
            "name": "No Phone",
        })

        assert resp.status_code == 400
        assert resp.json()["status"] == "error"

    def test_unknown_user_type_is_rejected(self, client):
        resp = client.post(f"{API}/auth/register", json={
            "email": "x@example.com",
            "password": PASSWORD,
            "userType": "doctor",
            "name": "X",
            "phone": "+201000000002",
        })

        assert resp.status_code == 400


class TestLogin:
    """Tests for POST /auth/login"""

    def test_login_succeeds_for_inactive_account(self, client):
        account = register(client, "nurse")

        resp = client.post(f"{API}/auth/login", json={"email": account.email, "password": PASSWORD})

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["user_type"] == "nurse"
        assert data["user"]["is_active"] is False

    def test_login_returns_role_specific_profile(self, client, admin):
        """Should load patient and nurse fields with the account on every read"""
        patient = register(client, "patient")
        nurse = register(client, "nurse")

        patient_login = client.post(f"{API}/auth/login", json={"email": patient.email, "password": PASSWORD})
        nurse_login = client.post(f"{API}/auth/login", json={"email": nurse.email, "password": PASSWORD})
        nurse_profile = client.get(f"{API}/user/profile", headers=nurse.headers)
        listing = client.get(f"{API}/admin/users", headers=admin.headers)

        assert patient_login.status_code == 200
        assert patient_login.json()["data"]["user"]["medical_conditions"] == []
        assert nurse_login.status_code == 200
        assert nurse_login.json()["data"]["user"]["balance"] == 0.0
        assert nurse_profile.status_code == 200
        assert nurse_profile.json()["data"]["is_available"] is False
        assert listing.status_code == 200
        by_id = {u["id"]: u for u in listing.json()["data"]}
        assert by_id[patient.id]["allergies"] == []
        assert by_id[nurse.id]["specializations"] == []

    def test_wrong_password_and_unknown_email_look_the_same(self, client):
        account = register(client, "patient")

        wrong_password = client.post(f"{API}/auth/login", json={"email": account.email, "password": "nope-nope"})
        unknown_email = client.post(f"{API}/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()

    def test_login_email_is_case_insensitive(self, client):
        account = register(client, "patient", email="mixed@example.com")

        resp = client.post(f"{API}/auth/login", json={"email": "MIXED@example.com", "password": PASSWORD})

        assert resp.status_code == 200
        assert resp.json()["data"]["user"]["id"] == account.id


class TestAuthorizationGate:
    """Session decoding, role guard and activation guard"""

    def test_missing_token(self, client):
        resp = client.get(f"{API}/user/profile")
        assert resp.status_code == 401
        assert resp.json()["status"] == "error"

    def test_tampered_token(self, client):
        account = register(client, "patient")
        resp = client.get(f"{API}/user/profile", headers=auth_headers(account.token + "x"))
        assert resp.status_code == 401
        assert "Invalid token" in resp.json()["message"]

    def test_expired_token(self, client):
        account = register(client, "patient")
        token, _ = create_access_token(
            {"sub": account.id, "role": "patient"}, expires_delta=timedelta(seconds=-30),
        )

        resp = client.get(f"{API}/user/profile", headers=auth_headers(token))

        assert resp.status_code == 401
        assert "expired" in resp.json()["message"]

    def test_token_of_deleted_account(self, client, admin):
        account = register(client, "patient")
        resp = client.delete(f"{API}/admin/users/{account.id}", headers=admin.headers)
        assert resp.status_code == 204

        resp = client.get(f"{API}/user/profile", headers=account.headers)

        assert resp.status_code == 401
        assert "no longer exists" in resp.json()["message"]

    def test_role_guard(self, client, patient):
        resp = client.get(f"{API}/nurse/requests", headers=patient.headers)
        assert resp.status_code == 403

    def test_inactive_patient_can_read_but_not_create(self, client, make_user):
        pending = make_user("patient", active=False)

        current = client.get(f"{API}/patient/current-request", headers=pending.headers)
        history = client.get(f"{API}/patient/request-history", headers=pending.headers)
        create = client.post(f"{API}/patient/request-service", json={
            "patientAge": "40",
            "serviceType": "emergency",
            "details": "Fall at home",
            "address": "Alexandria",
        }, headers=pending.headers)

        assert current.status_code == 404
        assert history.status_code == 200
        assert create.status_code == 403
        assert "pending activation" in create.json()["message"]

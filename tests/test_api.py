import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient
from sqlmodel import Session, select

from projector.main import CORRELATION_HEADER, create_app
from projector.models.Role import OrganizationalRole
from support import make_settings

ADMIN = {"employee_id": "ADMIN001", "password": "admin123!"}


class ApiTestCase(unittest.TestCase):

    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        settings = make_settings(DATABASE_URL=f"sqlite:///{Path(tmp.name) / 'api.db'}")
        self.client = TestClient(create_app(settings))
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

    def login(self, credentials=ADMIN) -> dict:
        response = self.client.post("/api/auth/login", json=credentials)
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()["data"]

    @staticmethod
    def bearer(tokens: dict) -> dict:
        return {"Authorization": f"Bearer {tokens['access_token']}"}

    def role_id(self, description: str) -> int:
        with Session(self.client.app.state.engine) as session:
            role = session.exec(
                select(OrganizationalRole).where(OrganizationalRole.role_description == description)
            ).one()
            return role.role_id

    def create_worker(self, admin_tokens: dict, employee_id: str, role: str, password="worker-pass-1") -> dict:
        response = self.client.post(
            "/api/workers",
            json={
                "employee_id": employee_id,
                "full_name": f"Worker {employee_id}",
                "email": f"{employee_id.lower()}@projector-corp.com",
                "password": password,
                "role_id": self.role_id(role),
            },
            headers=self.bearer(admin_tokens),
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["data"]


class TestLogin(ApiTestCase):

    def test_admin_login(self):
        response = self.client.post("/api/auth/login", json=ADMIN)
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertTrue(body["success"])
        self.assertIn("timestamp", body)
        self.assertEqual(body["data"]["user"]["role"], "Administrator")
        self.assertEqual(body["data"]["user"]["employee_id"], "ADMIN001")
        self.assertNotIn("password_hash", body["data"]["user"])
        self.assertTrue(body["data"]["access_token"])
        self.assertTrue(body["data"]["refresh_token"])

    def test_wrong_password_and_unknown_id_look_alike(self):
        wrong = self.client.post("/api/auth/login", json={"employee_id": "ADMIN001", "password": "nope"})
        unknown = self.client.post("/api/auth/login", json={"employee_id": "GHOST01", "password": "nope"})

        for response in (wrong, unknown):
            self.assertEqual(response.status_code, 401)
            self.assertFalse(response.json()["success"])
            self.assertEqual(response.json()["error"], {"message": "Invalid credentials", "code": "INVALID_CREDENTIALS"})

    def test_validation_error(self):
        response = self.client.post("/api/auth/login", json={"employee_id": "ADMIN001"})
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "VALIDATION_ERROR")

    def test_me(self):
        tokens = self.login()
        response = self.client.get("/api/auth/me", headers=self.bearer(tokens))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["employee_id"], "ADMIN001")
        self.assertEqual(response.json()["data"]["role"], "Administrator")

    def test_unreadable_role_yields_internal_error(self):
        with Session(self.client.app.state.engine) as session:
            role = session.exec(
                select(OrganizationalRole).where(OrganizationalRole.role_description == "Administrator")
            ).one()
            role.role_permissions = "{}"
            session.add(role)
            session.commit()

        response = self.client.post("/api/auth/login", json=ADMIN)
        self.assertEqual(response.status_code, 500)
        self.assertFalse(response.json()["success"])
        self.assertIn("timestamp", response.json())
        self.assertEqual(
            response.json()["error"],
            {"message": "Authentication check failed", "code": "INTERNAL_ERROR"},
        )


class TestLoginThrottling(ApiTestCase):

    def test_sixth_attempt_in_window_is_refused(self):
        for _ in range(5):
            response = self.client.post("/api/auth/login", json={"employee_id": "ADMIN001", "password": "nope"})
            self.assertEqual(response.status_code, 401)

        response = self.client.post("/api/auth/login", json=ADMIN)
        self.assertEqual(response.status_code, 429)
        self.assertFalse(response.json()["success"])
        self.assertEqual(
            response.json()["error"],
            {"message": "Too many authentication attempts, please try again later", "code": "RATE_LIMIT_EXCEEDED"},
        )
        self.assertTrue(1 <= int(response.headers["retry-after"]) <= 15 * 60)

    def test_refresh_is_not_throttled(self):
        tokens = self.login()
        for _ in range(6):
            self.client.post("/api/auth/login", json={"employee_id": "ADMIN001", "password": "nope"})

        refreshed = self.client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        self.assertEqual(refreshed.status_code, 200)


class TestSessionLifecycle(ApiTestCase):

    def test_login_use_refresh_replay(self):
        tokens = self.login()

        created = self.client.post(
            "/api/programs",
            json={"name": "Apollo", "description": "Moonshot"},
            headers=self.bearer(tokens),
        )
        self.assertEqual(created.status_code, 201, created.text)
        self.assertEqual(created.json()["data"]["name"], "Apollo")

        refreshed = self.client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        self.assertEqual(refreshed.status_code, 200)
        self.assertNotEqual(refreshed.json()["data"]["refresh_token"], tokens["refresh_token"])

        replay = self.client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        self.assertEqual(replay.status_code, 401)
        self.assertEqual(replay.json()["error"]["code"], "INVALID_REFRESH_TOKEN")
        self.assertEqual(replay.json()["error"]["message"], "Invalid refresh token")

        # The rotated pair still works
        listing = self.client.get("/api/programs", headers=self.bearer(refreshed.json()["data"]))
        self.assertEqual(listing.status_code, 200)
        self.assertEqual([p["name"] for p in listing.json()["data"]], ["Apollo"])

    def test_logout_twice(self):
        tokens = self.login()
        body = {"refresh_token": tokens["refresh_token"]}

        first = self.client.post("/api/auth/logout", json=body)
        second = self.client.post("/api/auth/logout", json=body)
        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 200)
        self.assertEqual(second.json()["data"], {"message": "Logged out successfully"})

        after = self.client.post("/api/auth/refresh", json=body)
        self.assertEqual(after.status_code, 401)

    def test_logout_with_garbage(self):
        response = self.client.post("/api/auth/logout", json={"refresh_token": "garbage"})
        self.assertEqual(response.status_code, 200)


class TestAuthorization(ApiTestCase):

    def test_missing_bearer(self):
        response = self.client.get("/api/programs")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"]["code"], "UNAUTHORIZED")
        self.assertEqual(response.json()["error"]["message"], "Access token required")
        self.assertEqual(response.headers["www-authenticate"], "Bearer")

    def test_invalid_bearer(self):
        response = self.client.get("/api/programs", headers={"Authorization": "Bearer nope"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"]["message"], "Invalid or expired access token")

    def test_worker_role_is_forbidden_to_create(self):
        admin = self.login()
        self.create_worker(admin, "WRK001", "Worker")
        worker = self.login({"employee_id": "WRK001", "password": "worker-pass-1"})
        self.assertEqual(worker["user"]["role"], "Worker")

        response = self.client.post("/api/programs", json={"name": "Denied"}, headers=self.bearer(worker))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(
            response.json()["error"],
            {
                "message": "Insufficient permissions",
                "code": "FORBIDDEN",
                "details": {"required": ["create_program"], "user": ["read_all"]},
            },
        )

        self.assertEqual(self.client.get("/api/programs", headers=self.bearer(worker)).status_code, 200)

    def test_team_lead_cannot_delete_programs(self):
        admin = self.login()
        self.create_worker(admin, "LEAD01", "Team Lead")
        lead = self.login({"employee_id": "LEAD01", "password": "worker-pass-1"})

        created = self.client.post("/api/programs", json={"name": "Gemini"}, headers=self.bearer(lead))
        self.assertEqual(created.status_code, 201)
        program_id = created.json()["data"]["program_id"]

        denied = self.client.delete(f"/api/programs/{program_id}", headers=self.bearer(lead))
        self.assertEqual(denied.status_code, 403)
        allowed = self.client.delete(f"/api/programs/{program_id}", headers=self.bearer(admin))
        self.assertEqual(allowed.status_code, 200)

    def test_deleted_worker_loses_access(self):
        admin = self.login()
        created = self.create_worker(admin, "WRK002", "Worker")
        worker = self.login({"employee_id": "WRK002", "password": "worker-pass-1"})

        deleted = self.client.delete(f"/api/workers/{created['worker_id']}", headers=self.bearer(admin))
        self.assertEqual(deleted.status_code, 200)

        # Still a validly signed token, but the worker no longer exists
        response = self.client.get("/api/programs", headers=self.bearer(worker))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"]["message"], "Worker not found")

        refresh = self.client.post("/api/auth/refresh", json={"refresh_token": worker["refresh_token"]})
        self.assertEqual(refresh.status_code, 401)

    def test_admin_cannot_delete_self(self):
        admin = self.login()
        response = self.client.delete(f"/api/workers/{admin['user']['worker_id']}", headers=self.bearer(admin))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "BAD_REQUEST")

    def test_duplicate_worker(self):
        admin = self.login()
        self.create_worker(admin, "WRK003", "Worker")
        response = self.client.post(
            "/api/workers",
            json={
                "employee_id": "WRK003",
                "full_name": "Again",
                "email": "other@projector-corp.com",
                "password": "worker-pass-1",
                "role_id": self.role_id("Worker"),
            },
            headers=self.bearer(admin),
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"]["code"], "CONFLICT")


class TestUpdates(ApiTestCase):

    def test_team_lead_updates_program(self):
        admin = self.login()
        self.create_worker(admin, "LEAD02", "Team Lead")
        lead = self.login({"employee_id": "LEAD02", "password": "worker-pass-1"})
        created = self.client.post("/api/programs", json={"name": "Mercury"}, headers=self.bearer(lead))
        program_id = created.json()["data"]["program_id"]

        response = self.client.put(
            f"/api/programs/{program_id}",
            json={"description": "First crewed flights"},
            headers=self.bearer(lead),
        )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["data"]["name"], "Mercury")
        self.assertEqual(response.json()["data"]["description"], "First crewed flights")

    def test_worker_cannot_update_program(self):
        admin = self.login()
        created = self.client.post("/api/programs", json={"name": "Vostok"}, headers=self.bearer(admin))
        self.create_worker(admin, "WRK004", "Worker")
        worker = self.login({"employee_id": "WRK004", "password": "worker-pass-1"})

        response = self.client.put(
            f"/api/programs/{created.json()['data']['program_id']}",
            json={"name": "Renamed"},
            headers=self.bearer(worker),
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"]["details"]["required"], ["update_program"])

    def test_program_rename_conflict(self):
        admin = self.login()
        self.client.post("/api/programs", json={"name": "Skylab"}, headers=self.bearer(admin))
        other = self.client.post("/api/programs", json={"name": "Salyut"}, headers=self.bearer(admin))

        response = self.client.put(
            f"/api/programs/{other.json()['data']['program_id']}",
            json={"name": "Skylab"},
            headers=self.bearer(admin),
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"]["code"], "CONFLICT")

    def test_update_missing_program(self):
        admin = self.login()
        response = self.client.put("/api/programs/999", json={"name": "Nowhere"}, headers=self.bearer(admin))
        self.assertEqual(response.status_code, 404)

    def test_promotion_applies_to_existing_token(self):
        admin = self.login()
        created = self.create_worker(admin, "WRK005", "Worker")
        worker = self.login({"employee_id": "WRK005", "password": "worker-pass-1"})
        denied = self.client.post("/api/programs", json={"name": "Soyuz"}, headers=self.bearer(worker))
        self.assertEqual(denied.status_code, 403)

        promoted = self.client.put(
            f"/api/workers/{created['worker_id']}",
            json={"role_id": self.role_id("Team Lead")},
            headers=self.bearer(admin),
        )
        self.assertEqual(promoted.status_code, 200, promoted.text)
        self.assertEqual(promoted.json()["data"]["role_id"], self.role_id("Team Lead"))

        allowed = self.client.post("/api/programs", json={"name": "Soyuz"}, headers=self.bearer(worker))
        self.assertEqual(allowed.status_code, 201)

    def test_only_update_worker_permission_edits_workers(self):
        admin = self.login()
        created = self.create_worker(admin, "LEAD03", "Team Lead")
        lead = self.login({"employee_id": "LEAD03", "password": "worker-pass-1"})

        response = self.client.put(
            f"/api/workers/{created['worker_id']}",
            json={"role_id": self.role_id("Administrator")},
            headers=self.bearer(lead),
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"]["details"]["required"], ["update_worker"])

    def test_password_change_takes_effect_on_login(self):
        admin = self.login()
        created = self.create_worker(admin, "WRK006", "Worker")

        response = self.client.put(
            f"/api/workers/{created['worker_id']}",
            json={"password": "brand-new-pass"},
            headers=self.bearer(admin),
        )
        self.assertEqual(response.status_code, 200)
        self.assertNotIn("password_hash", response.json()["data"])

        self.login({"employee_id": "WRK006", "password": "brand-new-pass"})


class TestAuditAndCorrelation(ApiTestCase):

    def test_correlation_id_echoed(self):
        response = self.client.get("/", headers={CORRELATION_HEADER: "req-123"})
        self.assertEqual(response.headers[CORRELATION_HEADER], "req-123")

    def test_correlation_id_generated(self):
        response = self.client.post("/api/auth/login", json={"employee_id": "ADMIN001", "password": "nope"})
        self.assertTrue(response.headers[CORRELATION_HEADER])

    def test_audit_chain_records_auth_events(self):
        self.client.post("/api/auth/login", json={"employee_id": "ADMIN001", "password": "nope"})
        tokens = self.login()
        self.client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

        verify = self.client.get("/api/audit/verify", headers=self.bearer(tokens))
        self.assertEqual(verify.status_code, 200)
        self.assertEqual(verify.json()["data"], {"valid": True, "entries": 3, "first_broken_id": None})

        log = self.client.get("/api/audit/log", headers=self.bearer(tokens))
        events = [(e["event"], e["outcome"]) for e in log.json()["data"]]
        self.assertEqual(events, [("refresh", "success"), ("login", "success"), ("login", "failure")])


if __name__ == "__main__":
    unittest.main()

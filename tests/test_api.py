"""End-to-end HTTP tests through the FastAPI app (TestClient runs the lifespan and scheduler)."""

import unittest
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
from sqlalchemy import select

from callbook.core.database import SessionLocal, engine
from callbook.main import app
from callbook.models import Base, ReminderJob
from callbook.models.reminder_job import JOB_CANCELLED, JOB_PENDING
from support import DEFAULT_PASSWORD, add_user


def _record_body(**overrides: object) -> dict:
    body = {
        "firstName": "Ana",
        "lastName": "Rojas",
        "principalPhone": "(555) 123-4567",
        "alternativePhone": "555-987-6543",
        "saleType": "fiber",
        "saleDate": "2026-10-01",
    }
    body.update(overrides)
    return body


def _in(delta: timedelta) -> str:
    return (datetime.now(timezone.utc) + delta).isoformat()


class ApiTestCase(unittest.TestCase):
    """Fresh tables with agents ana and ben and admin boss; a client with the app lifespan running."""

    def setUp(self) -> None:
        Base.metadata.create_all(engine)
        with SessionLocal() as session:
            for username, role in (("ana", "agent"), ("ben", "agent"), ("boss", "admin")):
                add_user(session, username, role=role)
        self.client = TestClient(app)
        self.client.__enter__()

    def tearDown(self) -> None:
        self.client.__exit__(None, None, None)
        Base.metadata.drop_all(engine)

    def login(self, username: str) -> dict[str, str]:
        resp = self.client.post(
            "/api/auth/login", json={"username": username, "password": DEFAULT_PASSWORD}
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        return {"Authorization": f"Bearer {resp.json()['token']}"}

    def job_states(self, record_id: int) -> list[str]:
        with SessionLocal() as session:
            return list(
                session.scalars(
                    select(ReminderJob.state)
                    .where(ReminderJob.record_id == record_id)
                    .order_by(ReminderJob.id)
                )
            )


class TestAuthEndpoints(ApiTestCase):

    def test_login_returns_token_and_user(self) -> None:
        resp = self.client.post(
            "/api/auth/login", json={"username": "ana", "password": DEFAULT_PASSWORD}
        )
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["tokenType"], "bearer")
        self.assertEqual(data["user"]["username"], "ana")
        self.assertEqual(data["user"]["role"], "agent")
        self.assertNotIn("passwordHash", data["user"])

    def test_bad_credentials(self) -> None:
        resp = self.client.post("/api/auth/login", json={"username": "ana", "password": "nope"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.headers.get("www-authenticate"), "Bearer")

    def test_missing_token(self) -> None:
        self.assertEqual(self.client.get("/api/records").status_code, 401)
        self.assertEqual(self.client.get("/api/user/me").status_code, 401)

    def test_garbage_token(self) -> None:
        resp = self.client.get("/api/records", headers={"Authorization": "Bearer nonsense"})
        self.assertEqual(resp.status_code, 401)

    def test_profile_includes_hash(self) -> None:
        resp = self.client.get("/api/user/me", headers=self.login("ana"))
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["passwordHash"].startswith("$2"))

    def test_user_management_is_admin_only(self) -> None:
        self.assertEqual(self.client.get("/api/users", headers=self.login("ana")).status_code, 403)
        admin = self.login("boss")
        resp = self.client.get("/api/users", headers=admin)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.json()["users"]), 3)
        self.assertEqual(
            {(u["username"], u["recordCount"], u["completedCount"]) for u in resp.json()["users"]},
            {("ana", 0, 0), ("ben", 0, 0), ("boss", 0, 0)},
        )

        created = self.client.post(
            "/api/users", json={"username": "carla", "password": "longenough"}, headers=admin
        )
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()["role"], "agent")
        dup = self.client.post(
            "/api/users", json={"username": "carla", "password": "longenough"}, headers=admin
        )
        self.assertEqual(dup.status_code, 400)
        gone = self.client.delete(f"/api/users/{created.json()['id']}", headers=admin)
        self.assertEqual(gone.status_code, 204)

    def test_blank_username_is_400(self) -> None:
        resp = self.client.post(
            "/api/users",
            json={"username": "   ", "password": "longenough"},
            headers=self.login("boss"),
        )
        self.assertEqual(resp.status_code, 400)

    def test_user_listing_counts_records(self) -> None:
        ana = self.login("ana")
        self.client.post("/api/records", json=_record_body(saleCompleted=True), headers=ana)
        self.client.post("/api/records", json=_record_body(), headers=ana)
        users = self.client.get("/api/users", headers=self.login("boss")).json()["users"]
        [entry] = [u for u in users if u["username"] == "ana"]
        self.assertEqual((entry["recordCount"], entry["completedCount"]), (2, 1))


class TestRecordEndpoints(ApiTestCase):
    """The main agent/admin flow over call records."""

    def test_callback_record_flow(self) -> None:
        ana = self.login("ana")
        created = self.client.post(
            "/api/records",
            json=_record_body(callbackRequired="true", callbackAt=_in(timedelta(hours=1))),
            headers=ana,
        )
        self.assertEqual(created.status_code, 201, created.text)
        record = created.json()
        self.assertTrue(record["callbackRequired"])
        self.assertEqual(record["principalPhone"], "(xxx) xxx-4567")
        self.assertTrue(record["phonesMasked"])
        self.assertEqual(self.job_states(record["id"]), [JOB_PENDING])

        listed = self.client.get("/api/records", headers=ana).json()
        self.assertEqual(listed["count"], 1)
        self.assertEqual(listed["records"][0]["id"], record["id"])

        ben = self.login("ben")
        self.assertEqual(self.client.get("/api/records", headers=ben).json()["count"], 0)
        self.assertEqual(
            self.client.get(f"/api/records/{record['id']}", headers=ben).status_code, 404
        )

        admin = self.client.get(f"/api/records/{record['id']}", headers=self.login("boss"))
        self.assertEqual(admin.status_code, 200)
        self.assertEqual(admin.json()["principalPhone"], "(555) 123-4567")
        self.assertFalse(admin.json()["phonesMasked"])

        deleted = self.client.delete(f"/api/records/{record['id']}", headers=ana)
        self.assertEqual(deleted.status_code, 204)
        self.assertEqual(self.job_states(record["id"]), [JOB_CANCELLED])
        self.assertEqual(
            self.client.get(f"/api/records/{record['id']}", headers=ana).status_code, 404
        )

    def test_past_callback_rejected(self) -> None:
        resp = self.client.post(
            "/api/records",
            json=_record_body(callbackRequired=True, callbackAt=_in(timedelta(minutes=-1))),
            headers=self.login("ana"),
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("future", resp.json()["detail"])

    def test_invalid_body_is_400(self) -> None:
        resp = self.client.post(
            "/api/records", json={"firstName": "Ana"}, headers=self.login("ana")
        )
        self.assertEqual(resp.status_code, 400)

    def test_agent_phone_edit_ignored(self) -> None:
        ana = self.login("ana")
        record = self.client.post("/api/records", json=_record_body(), headers=ana).json()
        resp = self.client.put(
            f"/api/records/{record['id']}",
            json={"principalPhone": "999-999-9999", "notes": "busy"},
            headers=ana,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["notes"], "busy")
        raw = self.client.get(f"/api/records/{record['id']}", headers=self.login("boss")).json()
        self.assertEqual(raw["principalPhone"], "(555) 123-4567")

    def test_foreign_update_is_404(self) -> None:
        record = self.client.post(
            "/api/records", json=_record_body(), headers=self.login("ana")
        ).json()
        resp = self.client.put(
            f"/api/records/{record['id']}", json={"notes": "x"}, headers=self.login("ben")
        )
        self.assertEqual(resp.status_code, 404)

    def test_list_filters(self) -> None:
        ana = self.login("ana")
        self.client.post("/api/records", json=_record_body(saleCompleted=1), headers=ana)
        self.client.post("/api/records", json=_record_body(firstName="Zoe"), headers=ana)
        done = self.client.get("/api/records", params={"saleCompleted": "true"}, headers=ana)
        self.assertEqual(done.json()["count"], 1)
        zoe = self.client.get("/api/records", params={"search": "zo"}, headers=ana)
        self.assertEqual(zoe.json()["records"][0]["firstName"], "Zoe")
        bad = self.client.get("/api/records", params={"saleCompleted": "perhaps"}, headers=ana)
        self.assertEqual(bad.status_code, 400)


class TestHealth(ApiTestCase):

    def test_health(self) -> None:
        resp = self.client.get("/api/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            resp.json(),
            {"status": "ok", "environment": "dev", "database": "connected", "scheduler": "running"},
        )


if __name__ == "__main__":
    unittest.main()

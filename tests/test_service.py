"""End-to-end tests for the PeerLedger HTTP API."""

from __future__ import annotations

import tempfile
import unittest
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict

from fastapi.testclient import TestClient

from peerledger.application import create_application
from peerledger.database import Database
from peerledger.service import create_app


class PeerLedgerServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        db_path = Path(self._tempdir.name) / "peerledger.sqlite3"
        self.database = Database(db_path)
        self.database.initialize()
        self.app = create_app(database=self.database)

    def tearDown(self) -> None:
        self._tempdir.cleanup()

    def _register(self, client: TestClient, username: str, **extra: Any) -> Dict[str, Any]:
        payload = {
            "username": username,
            "email": f"{username}@example.com",
            "password": "password123",
            "firstName": username.capitalize(),
        }
        payload.update(extra)
        response = client.post("/api/auth/register", json=payload)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def _skill(self, client: TestClient, user_id: int, name: str, skill_type: str) -> Dict[str, Any]:
        response = client.post(
            "/api/skills",
            json={"userId": user_id, "name": name, "type": skill_type, "level": "intermediate"},
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def test_healthcheck(self) -> None:
        with TestClient(self.app) as client:
            response = client.get("/healthz")
        self.assertEqual(response.json(), {"status": "ok"})

    def test_register_and_login(self) -> None:
        with TestClient(self.app) as client:
            user = self._register(client, "sarah", lastName="Agent", role="agent")
            self.assertEqual(user["firstName"], "Sarah")
            self.assertEqual(user["lastName"], "Agent")
            self.assertNotIn("password", user)

            duplicate = client.post(
                "/api/auth/register",
                json={
                    "username": "sarah",
                    "email": "another@example.com",
                    "password": "x",
                    "firstName": "S",
                },
            )
            self.assertEqual(duplicate.status_code, 409, duplicate.text)

            login = client.post("/api/auth/login", json={"username": "sarah", "password": "password123"})
            self.assertEqual(login.status_code, 200, login.text)
            self.assertEqual(login.json()["id"], user["id"])

            rejected = client.post("/api/auth/login", json={"username": "sarah", "password": "nope"})
            self.assertEqual(rejected.status_code, 401, rejected.text)

            missing = client.post("/api/auth/register", json={"username": "x"})
            self.assertEqual(missing.status_code, 422, missing.text)

    def test_profile_update_and_password_change(self) -> None:
        with TestClient(self.app) as client:
            user = self._register(client, "alice")

            updated = client.put(f"/api/users/{user['id']}", json={"bio": "Plays guitar", "location": "Porto"})
            self.assertEqual(updated.status_code, 200, updated.text)
            self.assertEqual(updated.json()["bio"], "Plays guitar")

            wrong = client.put(
                f"/api/users/{user['id']}/password",
                json={"currentPassword": "bad", "newPassword": "n3w"},
            )
            self.assertEqual(wrong.status_code, 400, wrong.text)

            changed = client.put(
                f"/api/users/{user['id']}/password",
                json={"currentPassword": "password123", "newPassword": "n3w"},
            )
            self.assertEqual(changed.status_code, 200, changed.text)

            missing = client.get("/api/users/999")
            self.assertEqual(missing.status_code, 404, missing.text)

    def test_suggestions_matches_and_messages(self) -> None:
        with TestClient(self.app) as client:
            teacher = self._register(client, "alice")
            learner = self._register(client, "bob")
            outsider = self._register(client, "eve")
            guitar = self._skill(client, teacher["id"], "Guitar", "teach")
            self._skill(client, learner["id"], "guitar", "learn")

            suggestions = client.get(f"/api/matches/suggestions/{learner['id']}")
            self.assertEqual(suggestions.status_code, 200, suggestions.text)
            payload = suggestions.json()
            self.assertEqual(len(payload), 1)
            self.assertEqual(payload[0]["teacher"]["id"], teacher["id"])
            self.assertEqual(payload[0]["skill"]["name"], "Guitar")
            self.assertEqual(payload[0]["learningSkill"]["name"], "guitar")
            self.assertEqual(payload[0]["learner"], {"id": learner["id"]})

            unknown = client.get("/api/matches/suggestions/999")
            self.assertEqual(unknown.status_code, 404, unknown.text)

            created = client.post(
                "/api/matches",
                json={
                    "teacherId": payload[0]["teacher"]["id"],
                    "learnerId": payload[0]["learner"]["id"],
                    "skillId": payload[0]["skill"]["id"],
                },
            )
            self.assertEqual(created.status_code, 201, created.text)
            match = created.json()
            self.assertEqual(match["status"], "pending")

            again = client.post(
                "/api/matches",
                json={"teacherId": teacher["id"], "learnerId": learner["id"], "skillId": guitar["id"]},
            )
            self.assertEqual(again.status_code, 409, again.text)

            listed = client.get("/api/matches", params={"userId": learner["id"], "status": "pending"})
            self.assertEqual([item["id"] for item in listed.json()], [match["id"]])

            declined = client.put(f"/api/matches/{match['id']}", json={"status": "declined"})
            self.assertEqual(declined.status_code, 200, declined.text)
            reopened = client.put(f"/api/matches/{match['id']}", json={"status": "accepted"})
            self.assertEqual(reopened.status_code, 409, reopened.text)

            after = client.get(f"/api/matches/suggestions/{learner['id']}")
            self.assertEqual(after.json(), [])

            first = client.post(
                "/api/messages",
                json={"matchId": match["id"], "senderId": learner["id"], "content": "Hi!"},
            )
            self.assertEqual(first.status_code, 201, first.text)
            client.post(
                "/api/messages",
                json={"matchId": match["id"], "senderId": teacher["id"], "content": "Hello"},
            )
            forbidden = client.post(
                "/api/messages",
                json={"matchId": match["id"], "senderId": outsider["id"], "content": "Psst"},
            )
            self.assertEqual(forbidden.status_code, 403, forbidden.text)

            thread = client.get(f"/api/messages/{match['id']}")
            self.assertEqual([item["content"] for item in thread.json()], ["Hi!", "Hello"])

            dashboard = client.get(f"/api/users/{teacher['id']}/dashboard")
            self.assertEqual(dashboard.status_code, 200, dashboard.text)
            self.assertEqual(dashboard.json()["teachingSkills"], 1)

    def test_learning_sessions(self) -> None:
        with TestClient(self.app) as client:
            teacher = self._register(client, "alice")
            learner = self._register(client, "bob")
            guitar = self._skill(client, teacher["id"], "Guitar", "teach")
            match = client.post(
                "/api/matches",
                json={"teacherId": teacher["id"], "learnerId": learner["id"], "skillId": guitar["id"]},
            ).json()

            created = client.post(
                "/api/sessions",
                json={"matchId": match["id"], "scheduledAt": "2024-06-01T18:00:00Z", "duration": 45},
            )
            self.assertEqual(created.status_code, 201, created.text)
            session = created.json()
            self.assertEqual(session["status"], "scheduled")

            cancelled = client.put(f"/api/sessions/{session['id']}", json={"status": "cancelled"})
            self.assertEqual(cancelled.status_code, 200, cancelled.text)
            revived = client.put(f"/api/sessions/{session['id']}", json={"status": "completed"})
            self.assertEqual(revived.status_code, 409, revived.text)

            listed = client.get("/api/sessions", params={"matchId": match["id"]})
            self.assertEqual(len(listed.json()), 1)

    def test_expense_approval_flow(self) -> None:
        with TestClient(self.app) as client:
            agent = self._register(client, "agent", role="agent")
            manager = self._register(client, "manager", role="manager")

            created = client.post(
                "/api/expenses",
                json={"userId": agent["id"], "title": "Client lunch", "amount": "42.50", "category": "meals"},
            )
            self.assertEqual(created.status_code, 201, created.text)
            expense = created.json()
            self.assertEqual(expense["status"], "pending")
            self.assertEqual(Decimal(str(expense["amount"])), Decimal("42.50"))

            invalid = client.post(
                "/api/expenses",
                json={"userId": agent["id"], "title": "Refund", "amount": "-1", "category": "meals"},
            )
            self.assertEqual(invalid.status_code, 422, invalid.text)

            early = client.post(
                "/api/approvals",
                json={"expenseId": expense["id"], "approverId": manager["id"], "status": "approved"},
            )
            self.assertEqual(early.status_code, 409, early.text)

            submitted = client.post(f"/api/expenses/{expense['id']}/submit")
            self.assertEqual(submitted.status_code, 200, submitted.text)
            self.assertEqual(submitted.json()["status"], "submitted")
            self.assertIsNotNone(submitted.json()["submittedAt"])

            approval = client.post(
                "/api/approvals",
                json={
                    "expenseId": expense["id"],
                    "approverId": manager["id"],
                    "status": "approved",
                    "comments": "Looks fine",
                },
            )
            self.assertEqual(approval.status_code, 201, approval.text)

            stored = client.get(f"/api/expenses/{expense['id']}").json()
            self.assertEqual(stored["status"], "approved")
            self.assertEqual(stored["approvedBy"], manager["id"])
            self.assertIsNotNone(stored["approvedAt"])

            second = client.post(
                "/api/approvals",
                json={"expenseId": expense["id"], "approverId": manager["id"], "status": "rejected"},
            )
            self.assertEqual(second.status_code, 409, second.text)

            locked = client.put(f"/api/expenses/{expense['id']}", json={"title": "Changed"})
            self.assertEqual(locked.status_code, 409, locked.text)
            undeletable = client.delete(f"/api/expenses/{expense['id']}")
            self.assertEqual(undeletable.status_code, 409, undeletable.text)

            revise = client.put(
                f"/api/approvals/{approval.json()['id']}",
                json={"status": "rejected"},
            )
            self.assertEqual(revise.status_code, 409, revise.text)

            approvals = client.get("/api/approvals", params={"approverId": manager["id"]})
            self.assertEqual(len(approvals.json()), 1)

            summary = client.get("/api/expenses/summary", params={"userId": agent["id"], "days": 30})
            self.assertEqual(summary.status_code, 200, summary.text)
            totals = summary.json()
            self.assertEqual(totals["count"], 1)
            self.assertEqual(totals["approvalRate"], 100)
            self.assertEqual(Decimal(str(totals["byCategory"]["Meals & Entertainment"])), Decimal("42.50"))

    def test_pending_expense_can_be_edited_and_deleted(self) -> None:
        with TestClient(self.app) as client:
            agent = self._register(client, "agent")
            expense = client.post(
                "/api/expenses",
                json={"userId": agent["id"], "title": "Taxi", "amount": "18", "category": "travel"},
            ).json()

            edited = client.put(f"/api/expenses/{expense['id']}", json={"amount": "21.75"})
            self.assertEqual(edited.status_code, 200, edited.text)
            self.assertEqual(Decimal(str(edited.json()["amount"])), Decimal("21.75"))

            deleted = client.delete(f"/api/expenses/{expense['id']}")
            self.assertEqual(deleted.status_code, 204, deleted.text)
            gone = client.get(f"/api/expenses/{expense['id']}")
            self.assertEqual(gone.status_code, 404, gone.text)

    def test_teams_and_team_expenses(self) -> None:
        with TestClient(self.app) as client:
            manager = self._register(client, "manager")
            agent = self._register(client, "agent")
            outsider = self._register(client, "outsider")

            team = client.post("/api/teams", json={"name": "Sales Team", "managerId": manager["id"]})
            self.assertEqual(team.status_code, 201, team.text)
            team_id = team.json()["id"]

            added = client.post(f"/api/teams/{team_id}/members", json={"userId": agent["id"]})
            self.assertEqual(added.status_code, 201, added.text)
            duplicate = client.post(f"/api/teams/{team_id}/members", json={"userId": agent["id"]})
            self.assertEqual(duplicate.status_code, 409, duplicate.text)

            members = client.get(f"/api/teams/{team_id}/members")
            self.assertEqual(members.status_code, 200, members.text)
            self.assertEqual([member["username"] for member in members.json()], ["agent"])

            for owner in (agent, outsider):
                client.post(
                    "/api/expenses",
                    json={"userId": owner["id"], "title": "Fuel", "amount": "30", "category": "travel"},
                )
            team_expenses = client.get("/api/expenses", params={"teamId": team_id})
            self.assertEqual(team_expenses.status_code, 200, team_expenses.text)
            self.assertEqual([item["userId"] for item in team_expenses.json()], [agent["id"]])
            summary = client.get("/api/expenses/summary", params={"teamId": team_id})
            self.assertEqual(summary.status_code, 200, summary.text)
            self.assertEqual(summary.json()["count"], 1)
            missing_team = client.get("/api/expenses", params={"teamId": 999})
            self.assertEqual(missing_team.status_code, 404, missing_team.text)

            managed = client.get("/api/teams", params={"managerId": manager["id"]})
            self.assertEqual([item["name"] for item in managed.json()], ["Sales Team"])

            removed = client.delete(f"/api/teams/{team_id}/members/{agent['id']}")
            self.assertEqual(removed.status_code, 204, removed.text)
            again = client.delete(f"/api/teams/{team_id}/members/{agent['id']}")
            self.assertEqual(again.status_code, 404, again.text)

            unknown = client.get("/api/teams/999/members")
            self.assertEqual(unknown.status_code, 404, unknown.text)


class ApplicationFactoryTests(unittest.TestCase):
    def test_memory_application_with_seed(self) -> None:
        root = Path(__file__).resolve().parents[1]
        app = create_application(storage="memory", seed=True, seed_path=str(root / "config" / "seed.yaml"))

        self.assertEqual(app.state.database.backend, "memory")
        with TestClient(app) as client:
            users = client.get("/api/users").json()
        self.assertEqual({user["username"] for user in users}, {"manager", "agent"})

    def test_unknown_storage_backend(self) -> None:
        with self.assertRaises(ValueError):
            create_application(storage="redis")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()

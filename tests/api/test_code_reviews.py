"""
Tests for Code Review API Endpoints
"""

from uuid import uuid4

import pytest


@pytest.fixture
def forum_group(fake_feed):
    """Finished Forum group 12 of promotion 526."""
    fake_feed.add_group("526", "Forum", "12", ["Alice", "bob"])
    fake_feed.add_group("526", "Forum", "13", ["carol"], status="in_progress")
    return fake_feed


def audit_payload(**overrides) -> dict:
    payload = {
        "promo_id": "526",
        "track": "golang",
        "project_name": "Forum",
        "group_id": "12",
        "summary": "Solid project",
        "warnings": [],
        "auditor_name": "Jane Staff",
        "results": [
            {"student_login": "alice", "validated": True},
            {"student_login": "bob", "validated": False, "feedback": "Tests missing"},
        ],
    }
    payload.update(overrides)
    return payload


class TestCreateAudit:
    async def test_create_audit_success(self, client, forum_group):
        response = await client.post("/api/v1/code-reviews/", json=audit_payload())

        assert response.status_code == 201
        data = response.json()
        assert data["track"] == "Golang"
        assert data["group_id"] == "12"
        assert data["validated_count"] == 1
        assert data["total_members"] == 2
        assert data["priority"] == "normal"
        assert [r["student_login"] for r in data["results"]] == ["Alice", "bob"]
        assert forum_group.calls == ["526"]

    async def test_unknown_group_is_404(self, client, forum_group):
        response = await client.post("/api/v1/code-reviews/", json=audit_payload(group_id="99"))

        assert response.status_code == 404
        assert "Group not found" in response.json()["detail"]

    async def test_unfinished_group_is_400(self, client, forum_group):
        response = await client.post(
            "/api/v1/code-reviews/",
            json=audit_payload(
                group_id="13", results=[{"student_login": "carol", "validated": True}]
            ),
        )

        assert response.status_code == 400
        assert "cannot be audited" in response.json()["detail"]

    async def test_foreign_students_are_400(self, client, forum_group):
        response = await client.post(
            "/api/v1/code-reviews/",
            json=audit_payload(
                results=[
                    {"student_login": "alice", "validated": True},
                    {"student_login": "mallory", "validated": True},
                ]
            ),
        )

        assert response.status_code == 400
        assert response.json()["detail"]["invalid_logins"] == ["mallory"]

    async def test_duplicate_audit_is_409(self, client, forum_group):
        first = await client.post("/api/v1/code-reviews/", json=audit_payload())
        second = await client.post("/api/v1/code-reviews/", json=audit_payload())

        assert first.status_code == 201
        assert second.status_code == 409

        listing = await client.get("/api/v1/code-reviews/")
        assert len(listing.json()) == 1

    async def test_feed_failure_is_502(self, client, forum_group):
        forum_group.fail("526")

        response = await client.post("/api/v1/code-reviews/", json=audit_payload())

        assert response.status_code == 502

    async def test_invalid_track_rejected(self, client, forum_group):
        response = await client.post("/api/v1/code-reviews/", json=audit_payload(track="Cobol"))

        assert response.status_code == 422

    async def test_duplicate_logins_are_422(self, client, forum_group):
        response = await client.post(
            "/api/v1/code-reviews/",
            json=audit_payload(
                results=[
                    {"student_login": "alice", "validated": True},
                    {"student_login": "ALICE", "validated": False},
                ]
            ),
        )

        assert response.status_code == 422
        assert forum_group.calls == []


class TestReadUpdateDelete:
    @pytest.fixture
    async def created(self, client, forum_group) -> dict:
        response = await client.post("/api/v1/code-reviews/", json=audit_payload())
        assert response.status_code == 201
        return response.json()

    async def test_get_audit(self, client, created):
        response = await client.get(f"/api/v1/code-reviews/{created['id']}")

        assert response.status_code == 200
        assert response.json()["summary"] == "Solid project"

    async def test_get_missing_audit(self, client):
        response = await client.get(f"/api/v1/code-reviews/{uuid4()}")
        assert response.status_code == 404

    async def test_list_by_promo_and_track(self, client, created):
        response = await client.get(
            "/api/v1/code-reviews/", params={"promo_id": "526", "track": "golang"}
        )
        assert [a["id"] for a in response.json()] == [created["id"]]

        other = await client.get("/api/v1/code-reviews/", params={"promo_id": "526", "track": "Rust"})
        assert other.json() == []

    async def test_list_by_project(self, client, created, forum_group):
        forum_group.add_group("526", "Lem-in", "30", ["dave"])
        await client.post(
            "/api/v1/code-reviews/",
            json=audit_payload(
                project_name="Lem-in",
                group_id="30",
                results=[{"student_login": "dave", "validated": True}],
            ),
        )

        response = await client.get(
            "/api/v1/code-reviews/", params={"promo_id": "526", "project_name": "forum"}
        )

        assert [a["id"] for a in response.json()] == [created["id"]]

    async def test_update_replaces_results(self, client, created):
        response = await client.put(
            f"/api/v1/code-reviews/{created['id']}",
            json={
                "summary": "Re-reviewed",
                "warnings": ["late delivery"],
                "results": [{"student_login": "bob", "validated": True}],
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["summary"] == "Re-reviewed"
        assert data["has_warnings"] is True
        assert [r["student_login"] for r in data["results"]] == ["bob"]
        assert data["validated_count"] == 1

    async def test_update_missing_audit(self, client):
        response = await client.put(f"/api/v1/code-reviews/{uuid4()}", json={"summary": "x"})
        assert response.status_code == 404

    async def test_update_rejects_duplicate_logins(self, client, created):
        response = await client.put(
            f"/api/v1/code-reviews/{created['id']}",
            json={
                "results": [
                    {"student_login": "bob", "validated": True},
                    {"student_login": "Bob", "validated": False},
                ]
            },
        )

        assert response.status_code == 422
        stored = (await client.get(f"/api/v1/code-reviews/{created['id']}")).json()
        assert len(stored["results"]) == 2

    async def test_update_rejects_non_members(self, client, created):
        response = await client.put(
            f"/api/v1/code-reviews/{created['id']}",
            json={"results": [{"student_login": "carol", "validated": True}]},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["invalid_logins"] == ["carol"]

    async def test_update_takes_feed_login_casing(self, client, created):
        response = await client.put(
            f"/api/v1/code-reviews/{created['id']}",
            json={"results": [{"student_login": "ALICE", "validated": True}]},
        )

        assert response.status_code == 200
        assert [r["student_login"] for r in response.json()["results"]] == ["Alice"]

    async def test_update_without_results_skips_feed(self, client, created, forum_group):
        forum_group.fail("526")

        response = await client.put(
            f"/api/v1/code-reviews/{created['id']}", json={"summary": "Typo fixed"}
        )

        assert response.status_code == 200
        assert len(response.json()["results"]) == 2

    async def test_update_feed_failure_is_502(self, client, created, forum_group):
        forum_group.fail("526")

        response = await client.put(
            f"/api/v1/code-reviews/{created['id']}",
            json={"results": [{"student_login": "bob", "validated": True}]},
        )

        assert response.status_code == 502

    async def test_priority_override(self, client, created):
        response = await client.patch(
            f"/api/v1/code-reviews/{created['id']}/priority", json={"priority": "urgent"}
        )

        assert response.status_code == 200
        assert response.json()["priority"] == "urgent"

    async def test_priority_override_rejects_unknown_tier(self, client, created):
        response = await client.patch(
            f"/api/v1/code-reviews/{created['id']}/priority", json={"priority": "critical"}
        )
        assert response.status_code == 422

    async def test_delete_audit(self, client, created):
        response = await client.delete(f"/api/v1/code-reviews/{created['id']}")

        assert response.status_code == 200
        assert response.json() == {"success": True, "deleted": 1}
        assert (await client.get(f"/api/v1/code-reviews/{created['id']}")).status_code == 404

    async def test_bulk_clear(self, client, created):
        response = await client.delete("/api/v1/code-reviews/")

        assert response.json()["deleted"] == 1
        assert (await client.get("/api/v1/code-reviews/")).json() == []


class TestStatsAndRecent:
    async def test_stats(self, client, forum_group):
        await client.post("/api/v1/code-reviews/", json=audit_payload())

        response = await client.get("/api/v1/code-reviews/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["total_audits"] == 1
        assert data["total_student_results"] == 2
        assert data["by_auditor"] == {"Jane Staff": 1}

    async def test_promo_and_auditor_stats(self, client, forum_group):
        await client.post("/api/v1/code-reviews/", json=audit_payload())

        promo = (await client.get("/api/v1/code-reviews/stats/526")).json()
        assert promo[0]["track"] == "Golang"
        assert promo[0]["project_stats"][0]["group_ids"] == ["12"]

        auditors = (await client.get("/api/v1/code-reviews/stats/auditors")).json()
        assert auditors == [{"auditor_id": None, "auditor_name": "Jane Staff", "count": 1}]

    async def test_recent_audits(self, client, forum_group):
        await client.post("/api/v1/code-reviews/", json=audit_payload())

        response = await client.get("/api/v1/code-reviews/recent")

        recent = response.json()[0]
        assert recent["promo_name"] == "P1 2025"
        assert recent["member_count"] == 2
        assert recent["validated_count"] == 1
        assert recent["members"] == ["Alice", "bob"]

    async def test_student_audits(self, client, forum_group):
        await client.post("/api/v1/code-reviews/", json=audit_payload())

        response = await client.get("/api/v1/code-reviews/students/ALICE")

        assert len(response.json()) == 1


CSV_HEADER = "Nom,Commentaire,Date,Date de création,Effectuée par,Groupe,Projet,Promotion\n"


def csv_line(*logins, project="Forum", promotion="Promo 2025 P1") -> str:
    group = ", ".join(f"{login} (https://profile.zone01.fr/{login})" for login in logins)
    return f'Audit,Bon travail,8 avril 2024,,Jane Staff,"{group}",{project},{promotion}\n'


class TestImport:
    async def post_csv(self, client, content: str, **params):
        return await client.post(
            "/api/v1/code-reviews/import",
            content=content.encode("utf-8"),
            headers={"Content-Type": "text/csv"},
            params=params,
        )

    async def test_import_creates_audits(self, client, forum_group):
        response = await self.post_csv(
            client, CSV_HEADER + csv_line("alice", "bob") + csv_line("nobody", project="Cobol")
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["imported"] == 1
        assert data["skipped"] == 1
        assert data["matched"] == [{"row": 2, "group_id": "12", "logins": ["Alice", "bob"]}]
        assert data["unmatched"][0]["row"] == 3

        audits = (await client.get("/api/v1/code-reviews/")).json()
        assert audits[0]["created_at"].startswith("2024-04-08")
        assert audits[0]["validated_count"] == 2

    async def test_clear_before_import(self, client, forum_group):
        await client.post("/api/v1/code-reviews/", json=audit_payload())

        response = await self.post_csv(client, CSV_HEADER + csv_line("alice", "bob"), clear="true")

        data = response.json()
        assert data["cleared"] == 1
        assert data["imported"] == 1
        audits = (await client.get("/api/v1/code-reviews/")).json()
        assert audits[0]["auditor_name"] == "Jane Staff"
        assert audits[0]["validated_count"] == 2

    async def test_existing_audit_kept_without_clear(self, client, forum_group):
        await client.post("/api/v1/code-reviews/", json=audit_payload())

        response = await self.post_csv(client, CSV_HEADER + csv_line("alice", "bob"))

        assert response.json()["imported"] == 0
        assert response.json()["skipped"] == 1

    async def test_empty_csv_is_400(self, client):
        response = await self.post_csv(client, CSV_HEADER)

        assert response.status_code == 400

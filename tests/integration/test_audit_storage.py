"""
Integration tests for audit storage against the database.
"""

from datetime import UTC, datetime

import pytest
from sqlalchemy import func, select

from codereview.core.models import Audit, AuditResult
from codereview.core.schemas.audits import AuditCreate, AuditResultInput, AuditUpdate
from codereview.review.audits import (
    AuditConflictError,
    AuditValidationError,
    check_group_auditable,
    clear_all_audits,
    count_recent_audits,
    create_audit,
    delete_audit,
    get_audit_by_group,
    get_audit_by_id,
    get_audit_count_by_auditor,
    get_audit_stats_for_promo,
    get_audited_group_ids,
    get_audited_students_by_promo_and_track,
    get_audits_by_project,
    get_audits_by_student_login,
    get_audits_with_warnings,
    get_global_audit_stats,
    get_recent_audits,
    set_audit_priority,
    update_audit,
)
from codereview.zone01 import GroupMember, ProjectGroup


def make_audit_data(
    group_id="1",
    logins=("alice", "bob"),
    promo_id="526",
    track="Golang",
    project_name="Forum",
    auditor_name="Alice",
    **overrides,
) -> AuditCreate:
    return AuditCreate(
        promo_id=promo_id,
        track=track,
        project_name=project_name,
        group_id=group_id,
        auditor_name=auditor_name,
        results=[
            AuditResultInput(student_login=login, validated=i % 2 == 0)
            for i, login in enumerate(logins)
        ],
        **overrides,
    )


def make_group(group_id="1", logins=("alice", "bob"), status="finished") -> ProjectGroup:
    return ProjectGroup(
        group_id=group_id,
        project_name="Forum",
        status=status,
        members=[GroupMember(login=login) for login in logins],
    )


class TestCheckGroupAuditable:
    def test_returns_matching_group(self):
        group = check_group_auditable(
            [make_group("1"), make_group("2")], "2", make_audit_data("2").results
        )
        assert group.group_id == "2"

    def test_unknown_group(self):
        with pytest.raises(AuditValidationError) as exc:
            check_group_auditable([make_group("1")], "9", [])
        assert exc.value.not_found is True

    def test_group_not_finished(self):
        with pytest.raises(AuditValidationError, match="cannot be audited") as exc:
            check_group_auditable([make_group("1", status="in_progress")], "1", [])
        assert exc.value.not_found is False

    def test_foreign_logins_rejected(self):
        data = make_audit_data(logins=("alice", "mallory"))

        with pytest.raises(AuditValidationError) as exc:
            check_group_auditable([make_group("1")], "1", data.results)

        assert exc.value.invalid_logins == ["mallory"]

    def test_login_match_is_case_insensitive(self):
        data = make_audit_data(logins=("ALICE",))
        assert check_group_auditable([make_group("1")], "1", data.results).group_id == "1"


class TestCreateAudit:
    async def test_create_with_results(self, db_session):
        audit = await create_audit(db_session, make_audit_data(warnings=["late"]))

        assert audit.id is not None
        assert audit.priority == "normal"
        assert audit.total_members == 2
        assert audit.validated_count == 1
        assert audit.has_warnings is True
        assert [r.student_login for r in audit.results] == ["alice", "bob"]

    async def test_feed_login_casing_is_kept(self, db_session):
        group = make_group("1", logins=("Alice", "bob"))

        audit = await create_audit(db_session, make_audit_data(logins=("alice",)), group)

        assert audit.results[0].student_login == "Alice"

    async def test_duplicate_audit_conflicts(self, db_session):
        await create_audit(db_session, make_audit_data())

        with pytest.raises(AuditConflictError):
            await create_audit(db_session, make_audit_data(auditor_name="Bob"))

        count = (await db_session.execute(select(func.count()).select_from(Audit))).scalar_one()
        assert count == 1

    async def test_same_group_in_other_project_allowed(self, db_session):
        await create_audit(db_session, make_audit_data())
        other = await create_audit(db_session, make_audit_data(project_name="Lem-in"))

        assert other.project_name == "Lem-in"

    async def test_backdated_audit(self, db_session):
        when = datetime(2024, 4, 8, 14, 30, tzinfo=UTC)

        audit = await create_audit(db_session, make_audit_data(), created_at=when)

        assert audit.created_at == when
        assert audit.updated_at == when
        assert all(r.created_at == when for r in audit.results)


class TestUpdateAudit:
    async def test_results_fully_replaced(self, db_session):
        audit = await create_audit(db_session, make_audit_data(logins=("alice", "bob")))

        updated = await update_audit(
            db_session,
            audit.id,
            AuditUpdate(
                summary="Second pass",
                results=[AuditResultInput(student_login="bob", validated=True)],
            ),
        )

        assert updated.summary == "Second pass"
        assert [r.student_login for r in updated.results] == ["bob"]
        assert updated.validated_count == 1
        assert updated.total_members == 1

        stored = (
            await db_session.execute(
                select(AuditResult.student_login).where(AuditResult.audit_id == audit.id)
            )
        ).scalars().all()
        assert "alice" not in stored

    async def test_replacement_logins_keep_stored_casing(self, db_session):
        audit = await create_audit(db_session, make_audit_data(logins=("Alice", "bob")))

        updated = await update_audit(
            db_session,
            audit.id,
            AuditUpdate(results=[AuditResultInput(student_login="ALICE", validated=True)]),
        )

        assert [r.student_login for r in updated.results] == ["Alice"]

    async def test_replacement_logins_take_group_casing(self, db_session):
        audit = await create_audit(db_session, make_audit_data(logins=("alice",)))

        updated = await update_audit(
            db_session,
            audit.id,
            AuditUpdate(
                results=[
                    AuditResultInput(student_login="alice", validated=True),
                    AuditResultInput(student_login="carol", validated=False),
                ]
            ),
            make_group(logins=("alice", "Carol")),
        )

        assert sorted(r.student_login for r in updated.results) == ["Carol", "alice"]

    async def test_results_untouched_when_omitted(self, db_session):
        audit = await create_audit(db_session, make_audit_data())

        updated = await update_audit(db_session, audit.id, AuditUpdate(warnings=["redo"]))

        assert len(updated.results) == 2
        assert updated.warnings == ["redo"]

    async def test_update_missing_audit(self, db_session):
        audit = await create_audit(db_session, make_audit_data())
        await delete_audit(db_session, audit.id)

        assert await update_audit(db_session, audit.id, AuditUpdate()) is None


class TestDeleteAndClear:
    async def test_delete_cascades_results(self, db_session):
        audit = await create_audit(db_session, make_audit_data())

        assert await delete_audit(db_session, audit.id) is True
        assert await get_audit_by_id(db_session, audit.id) is None

        remaining = (
            await db_session.execute(select(func.count()).select_from(AuditResult))
        ).scalar_one()
        assert remaining == 0

    async def test_delete_unknown_audit(self, db_session):
        audit = await create_audit(db_session, make_audit_data())
        await delete_audit(db_session, audit.id)

        assert await delete_audit(db_session, audit.id) is False

    async def test_clear_all(self, db_session):
        await create_audit(db_session, make_audit_data("1"))
        await create_audit(db_session, make_audit_data("2", logins=("carol",)))

        assert await clear_all_audits(db_session) == 2
        assert await get_recent_audits(db_session) == []


class TestAuditQueries:
    async def test_lookup_helpers(self, db_session):
        await create_audit(db_session, make_audit_data("1", logins=("Alice", "bob")))
        await create_audit(db_session, make_audit_data("2", logins=("carol",), track="Golang"))
        await create_audit(
            db_session,
            make_audit_data("3", logins=("alice",), track="Rust", project_name="Smart-road"),
        )

        assert (await get_audit_by_group(db_session, "526", "Forum", "2")).group_id == "2"
        assert await get_audit_by_group(db_session, "526", "Forum", "9") is None
        assert sorted(await get_audited_group_ids(db_session, "526", "Forum")) == ["1", "2"]
        assert len(await get_audits_by_project(db_session, "526", "Smart-road")) == 1

        audited = await get_audited_students_by_promo_and_track(db_session, "526", "Golang")
        assert audited == {("forum", "1"): {"alice", "bob"}, ("forum", "2"): {"carol"}}

        by_student = await get_audits_by_student_login(db_session, "ALICE")
        assert sorted(a.group_id for a in by_student) == ["1", "3"]

    async def test_project_lookups_ignore_case(self, db_session):
        await create_audit(db_session, make_audit_data("1"))

        assert await get_audited_group_ids(db_session, "526", "forum") == ["1"]
        assert len(await get_audits_by_project(db_session, "526", "FORUM")) == 1
        assert (await get_audit_by_group(db_session, "526", "forum", "1")) is not None

    async def test_audits_with_warnings(self, db_session):
        await create_audit(db_session, make_audit_data("1", warnings=["late delivery"]))
        await create_audit(db_session, make_audit_data("2"))
        await create_audit(
            db_session,
            make_audit_data("3", project_name="Lem-in", warnings=["plagiarism suspected"]),
        )

        flagged = await get_audits_with_warnings(db_session)
        assert sorted(a.group_id for a in flagged) == ["1", "3"]

        forum_only = await get_audits_with_warnings(db_session, "526", "forum")
        assert [a.group_id for a in forum_only] == ["1"]

    async def test_recent_audits_bounded(self, db_session):
        for i in range(5):
            await create_audit(db_session, make_audit_data(str(i), logins=("alice",)))

        assert len(await get_recent_audits(db_session, limit=3)) == 3
        assert await count_recent_audits(db_session, 3) == 3
        assert await count_recent_audits(db_session, 100) == 5

    async def test_set_priority(self, db_session):
        audit = await create_audit(db_session, make_audit_data())

        updated = await set_audit_priority(db_session, audit.id, "urgent")

        assert updated.priority == "urgent"


class TestAuditStats:
    async def test_stats(self, db_session):
        await create_audit(db_session, make_audit_data("1", auditor_name="Bob"))
        await create_audit(db_session, make_audit_data("2", logins=("carol",), auditor_name="Alice"))
        await create_audit(
            db_session,
            make_audit_data("3", promo_id="904", track="Rust", project_name="Filler", auditor_name="Bob"),
        )

        promo_stats = await get_audit_stats_for_promo(db_session, "526")
        assert len(promo_stats) == 1
        assert promo_stats[0]["total_audits"] == 2
        assert promo_stats[0]["total_students_audited"] == 3
        assert promo_stats[0]["project_stats"][0]["group_ids"] == ["1", "2"]

        auditors = await get_audit_count_by_auditor(db_session)
        assert [(a["auditor_name"], a["count"]) for a in auditors] == [("Bob", 2), ("Alice", 1)]
        assert len(await get_audit_count_by_auditor(db_session, "904")) == 1

        totals = await get_global_audit_stats(db_session)
        assert totals["total_audits"] == 3
        assert totals["total_student_results"] == 5
        assert totals["by_promo"] == {"526": 2, "904": 1}
        assert totals["by_track"] == {"Golang": 2, "Rust": 1}

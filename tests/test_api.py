"""HTTP surface: status codes, permissions and institution resolution."""

import uuid

from app.auth.security import create_access_token


async def test_enroll_subject_then_conflict(client, login, superior) -> None:
    login(superior.admin_id, superior.tenant_id, role="ADMIN")
    body = {
        "student_id": str(superior.student_id),
        "subject_id": str(superior.subject_id),
        "academic_year_id": str(superior.year_id),
    }

    created = await client.post("/api/v1/subject-enrollments", json=body)
    assert created.status_code == 201
    assert created.json()["status"] == "Cursando"

    duplicate = await client.post("/api/v1/subject-enrollments", json=body)
    assert duplicate.status_code == 409
    assert "already enrolled" in duplicate.json()["detail"]


async def test_enrollment_error_kinds_map_to_status_codes(client, login, factory, superior) -> None:
    login(superior.admin_id, superior.tenant_id, role="ADMIN")
    base = {"subject_id": str(superior.subject_id), "academic_year_id": str(superior.year_id)}

    missing = await client.post("/api/v1/subject-enrollments", json={**base, "student_id": str(uuid.uuid4())})
    assert missing.status_code == 404

    newcomer = await factory.user(superior.tenant, role="ALUNO")
    no_annual = await client.post("/api/v1/subject-enrollments", json={**base, "student_id": str(newcomer.id)})
    assert no_annual.status_code == 400

    malformed = await client.post("/api/v1/subject-enrollments", json={**base, "student_id": "not-a-uuid"})
    assert malformed.status_code == 422


async def test_permissions_are_required(client, login, superior) -> None:
    body = {
        "student_id": str(superior.student_id),
        "subject_id": str(superior.subject_id),
        "academic_year_id": str(superior.year_id),
    }

    login(superior.admin_id, superior.tenant_id, role="SECRETARIA")
    denied = await client.post("/api/v1/subject-enrollments", json=body)
    assert denied.status_code == 403

    login(
        superior.admin_id,
        superior.tenant_id,
        role="SECRETARIA",
        permissions={"subject_enrollments": {"create": True}},
    )
    allowed = await client.post("/api/v1/subject-enrollments", json=body)
    assert allowed.status_code == 201


async def test_bulk_endpoint(client, login, superior) -> None:
    login(superior.admin_id, superior.tenant_id, role="ADMIN")

    empty = await client.post(
        "/api/v1/subject-enrollments/bulk",
        json={"student_id": str(superior.student_id), "academic_year_id": str(superior.year_id), "subject_ids": []},
    )
    assert empty.status_code == 422

    no_period = await client.post(
        "/api/v1/subject-enrollments/bulk",
        json={"student_id": str(superior.student_id), "academic_year_id": str(superior.year_id)},
    )
    assert no_period.status_code == 400

    automatic = await client.post(
        "/api/v1/subject-enrollments/bulk",
        json={"student_id": str(superior.student_id), "academic_year_id": str(superior.year_id), "period": "1"},
    )
    assert automatic.status_code == 201
    data = automatic.json()
    assert len(data["created"]) == 1
    assert data["duplicates"] == 0


async def test_update_list_and_delete(client, login, superior) -> None:
    login(superior.admin_id, superior.tenant_id, role="ADMIN")
    created = await client.post(
        "/api/v1/subject-enrollments",
        json={
            "student_id": str(superior.student_id),
            "subject_id": str(superior.subject_id),
            "academic_year_id": str(superior.year_id),
            "period": "1",
        },
    )
    enrollment_id = created.json()["id"]

    patched = await client.patch(f"/api/v1/subject-enrollments/{enrollment_id}", json={"status": "Concluido"})
    assert patched.status_code == 200
    assert patched.json()["status"] == "Concluido"

    invalid = await client.patch(f"/api/v1/subject-enrollments/{enrollment_id}", json={"status": "Feito"})
    assert invalid.status_code == 400

    listed = await client.get("/api/v1/subject-enrollments", params={"student_id": str(superior.student_id)})
    assert [e["id"] for e in listed.json()] == [enrollment_id]

    deleted = await client.delete(f"/api/v1/subject-enrollments/{enrollment_id}")
    assert deleted.status_code == 204

    gone = await client.delete(f"/api/v1/subject-enrollments/{enrollment_id}")
    assert gone.status_code == 404


async def test_attendance_without_lessons_is_null(client, login, superior) -> None:
    login(superior.admin_id, superior.tenant_id, role="ADMIN")
    response = await client.get(
        "/api/v1/academic-results/attendance",
        params={"teaching_plan_id": str(superior.plan_id), "student_id": str(superior.student_id)},
    )
    assert response.status_code == 200
    assert response.json()["percentage"] is None
    assert response.json()["situation"] == "INDETERMINADO"

    grades = await client.get(
        "/api/v1/academic-results/grades",
        params={"teaching_plan_id": str(superior.plan_id), "student_id": str(superior.student_id)},
    )
    assert grades.status_code == 200
    assert grades.json()["status"] == "EM_ANDAMENTO"


async def test_students_only_read_their_own_documents(client, login, factory, superior) -> None:
    classmate = await factory.user(superior.tenant, role="ALUNO")
    permissions = {"documents": {"read": True}}

    login(classmate.id, superior.tenant_id, role="ALUNO", permissions=permissions)
    other = await client.get(f"/api/v1/documents/transcript/{superior.student_id}")
    assert other.status_code == 403

    login(superior.student_id, superior.tenant_id, role="ALUNO", permissions=permissions)
    own = await client.get(f"/api/v1/documents/transcript/{superior.student_id}")
    assert own.status_code == 200
    assert own.json()["student"]["full_name"] == "João Silva"


async def test_blocked_document_is_forbidden(client, login, factory, superior) -> None:
    await factory.academic_block(superior.tenant, superior.student, "DOCUMENTOS", "Processo pendente")
    login(superior.admin_id, superior.tenant_id, role="ADMIN")

    response = await client.get(f"/api/v1/documents/report-card/{superior.student_id}")
    assert response.status_code == 403
    assert response.json()["detail"] == "Processo pendente"

    audit = await client.get("/api/v1/audit-logs", params={"action": "BLOCK"})
    assert audit.status_code == 200
    assert len(audit.json()) == 1
    assert audit.json()[0]["payload"]["document"] == "BOLETIM_ALUNO"


async def test_gradesheet_not_ready_is_bad_request(client, login, superior) -> None:
    login(superior.admin_id, superior.tenant_id, role="ADMIN")
    response = await client.get(f"/api/v1/documents/gradesheet/{superior.plan_id}")
    assert response.status_code == 400
    assert "Unmet prerequisites" in response.json()["detail"]


async def test_certificate_issue_and_public_verification(client, login, factory, superior) -> None:
    await factory.completion(superior.tenant, superior.student, course=superior.course)
    login(superior.admin_id, superior.tenant_id, role="ADMIN")

    neither = await client.post(
        "/api/v1/documents/certificate",
        json={"student_id": str(superior.student_id)},
    )
    assert neither.status_code == 400

    issued = await client.post(
        "/api/v1/documents/certificate",
        json={"student_id": str(superior.student_id), "course_id": str(superior.course_id)},
    )
    assert issued.status_code == 201
    code = issued.json()["verification_code"]

    verified = await client.get(f"/api/v1/documents/certificate/verify/{code}")
    assert verified.status_code == 200
    assert verified.json()["valid"] is True

    unknown = await client.get("/api/v1/documents/certificate/verify/0000-0000-NOPE")
    assert unknown.status_code == 404


async def test_block_status_endpoint(client, login, superior) -> None:
    login(superior.admin_id, superior.tenant_id, role="ADMIN")
    response = await client.get(f"/api/v1/academic-blocks/{superior.student_id}")
    assert response.status_code == 200
    assert response.json()["institutional_hold"]["held"] is False


async def test_platform_admin_must_pick_an_institution(client, login, superior) -> None:
    login(uuid.uuid4(), None, role="PLATFORM_ADMIN")

    unscoped = await client.get("/api/v1/audit-logs")
    assert unscoped.status_code == 403

    scoped = await client.get("/api/v1/audit-logs", params={"institution_id": str(superior.tenant_id)})
    assert scoped.status_code == 200

    unknown = await client.get("/api/v1/audit-logs", params={"institution_id": str(uuid.uuid4())})
    assert unknown.status_code == 404


async def test_requested_institution_is_ignored_for_tenant_users(client, login, factory, superior) -> None:
    other = await factory.tenant()
    other_student = await factory.user(other, role="ALUNO")
    login(superior.admin_id, superior.tenant_id, role="ADMIN")

    response = await client.get(
        f"/api/v1/academic-blocks/{other_student.id}",
        params={"institution_id": str(other.id)},
    )
    assert response.status_code == 404


async def test_bearer_token_resolves_user_and_role_permissions(client, factory, superior) -> None:
    clerk = await factory.user(superior.tenant, role="SECRETARIA")
    await factory.role(superior.tenant, "SECRETARIA", {"audit_logs": {"read": True}})
    token = create_access_token(
        subject={"user_id": str(clerk.id), "tenant_id": str(superior.tenant_id), "role": "SECRETARIA"}
    )

    ok = await client.get("/api/v1/audit-logs", headers={"Authorization": f"Bearer {token}"})
    assert ok.status_code == 200
    assert ok.json() == []

    bad = await client.get("/api/v1/audit-logs", headers={"Authorization": "Bearer garbage"})
    assert bad.status_code == 401

    anonymous = await client.get("/api/v1/audit-logs")
    assert anonymous.status_code == 401


async def test_institution_admin_holds_every_permission(client, login, superior) -> None:
    login(superior.admin_id, superior.tenant_id, role="ADMIN", permissions={})
    response = await client.get("/api/v1/audit-logs")
    assert response.status_code == 200

    login(superior.admin_id, superior.tenant_id, role="PROFESSOR", permissions={})
    denied = await client.get("/api/v1/audit-logs")
    assert denied.status_code == 403
    assert denied.json()["detail"] == "Insufficient permissions"

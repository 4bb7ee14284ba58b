import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from datetime import date, datetime, timedelta
from types import SimpleNamespace
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.auth.dependencies import get_current_user
from app.auth.models import Role, User
from app.auth.schemas import CurrentUser
from app.core.models import (
    AcademicBlock,
    AcademicYear,
    AnnualEnrollment,
    Assessment,
    AttendanceRecord,
    BlockConfiguration,
    ClassEnrollment,
    Course,
    CourseCompletion,
    CourseSubject,
    DigitalSignature,
    Grade,
    Lesson,
    SchoolClass,
    Section,
    Subject,
    SubjectEnrollment,
    SubjectEquivalence,
    TeachingPlan,
    Tenant,
    TuitionInvoice,
)
from app.core.tenant_scope import RequestContext
from app.db.session import Base, get_db


TEST_DATABASE_URL = "sqlite+aiosqlite://"
SCHEMAS = ("core", "auth", "school")


@pytest.fixture()
async def engine():
    """One in-memory database per test. Postgres schemas become attached SQLite databases."""
    test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    @event.listens_for(test_engine.sync_engine, "connect")
    def _attach_schemas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        for schema in SCHEMAS:
            cursor.execute(f"ATTACH DATABASE ':memory:' AS {schema}")
        cursor.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture()
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override FastAPI dependency."""
    async_session = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def login_as(user_id, tenant_id, role: str = "ADMIN", permissions: Optional[dict] = None) -> None:
    """Skip token decoding: every request runs as the given principal."""
    principal = CurrentUser(id=user_id, tenant_id=tenant_id, role=role, permissions=permissions or {})

    async def override_current_user() -> CurrentUser:
        return principal

    app.dependency_overrides[get_current_user] = override_current_user


@pytest.fixture()
def login(db_session: AsyncSession):
    return login_as


class Factory:
    """Persists rows one at a time. Every helper commits so service rollbacks never undo fixtures."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        return obj

    async def tenant(self, academic_type: Optional[str] = "SUPERIOR", name: str = "Instituto Politécnico") -> Tenant:
        n = self._next()
        return await self._save(
            Tenant(organization_code=f"ORG{n:04d}", organization_name=name, academic_type=academic_type)
        )

    async def user(self, tenant: Tenant, role: str = "ALUNO", full_name: Optional[str] = None, **kwargs) -> User:
        n = self._next()
        return await self._save(
            User(
                tenant_id=tenant.id,
                full_name=full_name or f"User {n}",
                email=f"user{n}@example.com",
                role=role,
                **kwargs,
            )
        )

    async def role(self, tenant: Tenant, name: str, permissions: dict) -> Role:
        return await self._save(Role(tenant_id=tenant.id, name=name, permissions=permissions))

    async def academic_year(self, tenant: Tenant, year: int = 2025, status: str = "ACTIVE") -> AcademicYear:
        return await self._save(AcademicYear(tenant_id=tenant.id, year=year, name=f"{year}/{year + 1}", status=status))

    async def course(self, tenant: Tenant, name: str = "Engenharia Informática") -> Course:
        n = self._next()
        return await self._save(Course(tenant_id=tenant.id, name=name, code=f"C{n}", workload_hours=3000))

    async def school_class(self, tenant: Tenant, name: Optional[str] = None) -> SchoolClass:
        n = self._next()
        return await self._save(SchoolClass(tenant_id=tenant.id, name=name or f"{n}ª Classe", workload_hours=900))

    async def subject(self, tenant: Tenant, name: Optional[str] = None, workload_hours: int = 60) -> Subject:
        n = self._next()
        return await self._save(
            Subject(tenant_id=tenant.id, name=name or f"Subject {n}", code=f"S{n}", workload_hours=workload_hours)
        )

    async def link(self, course: Course, subject: Subject) -> CourseSubject:
        return await self._save(CourseSubject(course_id=course.id, subject_id=subject.id))

    async def section(self, tenant: Tenant, year: AcademicYear, course=None, school_class=None, name: str = "A") -> Section:
        return await self._save(
            Section(
                tenant_id=tenant.id,
                name=name,
                academic_year_id=year.id,
                course_id=course.id if course else None,
                class_id=school_class.id if school_class else None,
            )
        )

    async def annual_enrollment(
        self, tenant: Tenant, student: User, year: AcademicYear, course=None, school_class=None, status: str = "ATIVA"
    ) -> AnnualEnrollment:
        return await self._save(
            AnnualEnrollment(
                tenant_id=tenant.id,
                student_id=student.id,
                academic_year_id=year.id,
                course_id=course.id if course else None,
                class_id=school_class.id if school_class else None,
                status=status,
            )
        )

    async def class_enrollment(
        self, student: User, section: Section, status: str = "Ativa", created_at: Optional[datetime] = None
    ) -> ClassEnrollment:
        return await self._save(
            ClassEnrollment(
                student_id=student.id,
                section_id=section.id,
                academic_year_id=section.academic_year_id,
                status=status,
                created_at=created_at or datetime.utcnow(),
            )
        )

    async def plan(
        self,
        tenant: Tenant,
        subject: Subject,
        year: AcademicYear,
        section: Optional[Section] = None,
        state: str = "APROVADO",
        blocked: bool = False,
        period: Optional[str] = None,
        professor: Optional[User] = None,
        planned_hours: int = 0,
    ) -> TeachingPlan:
        return await self._save(
            TeachingPlan(
                tenant_id=tenant.id,
                subject_id=subject.id,
                academic_year_id=year.id,
                section_id=section.id if section else None,
                course_id=section.course_id if section else None,
                class_id=section.class_id if section else None,
                professor_id=professor.id if professor else None,
                period=period,
                state=state,
                blocked=blocked,
                planned_hours=planned_hours,
            )
        )

    async def lessons(self, tenant: Tenant, plan: TeachingPlan, count: int) -> list:
        created = []
        for i in range(count):
            created.append(
                await self._save(
                    Lesson(tenant_id=tenant.id, teaching_plan_id=plan.id, date=date(2025, 3, 1) + timedelta(days=i))
                )
            )
        return created

    async def mark(self, tenant: Tenant, lesson: Lesson, student: User, status: str = "PRESENTE") -> AttendanceRecord:
        return await self._save(
            AttendanceRecord(tenant_id=tenant.id, lesson_id=lesson.id, student_id=student.id, status=status)
        )

    async def assessment(
        self,
        tenant: Tenant,
        plan: TeachingPlan,
        weight: float = 1.0,
        closed: bool = True,
        trimester: Optional[int] = None,
        name: Optional[str] = None,
    ) -> Assessment:
        n = self._next()
        return await self._save(
            Assessment(
                tenant_id=tenant.id,
                teaching_plan_id=plan.id,
                name=name or f"Prova {n}",
                weight=weight,
                closed=closed,
                trimester=trimester,
                date=date(2025, 4, 1) + timedelta(days=n),
            )
        )

    async def grade(self, tenant: Tenant, assessment: Assessment, student: User, value: Optional[float]) -> Grade:
        return await self._save(
            Grade(tenant_id=tenant.id, assessment_id=assessment.id, student_id=student.id, value=value)
        )

    async def subject_enrollment(
        self, tenant: Tenant, student: User, subject: Subject, annual: AnnualEnrollment, period: str = "ANUAL"
    ) -> SubjectEnrollment:
        return await self._save(
            SubjectEnrollment(
                tenant_id=tenant.id,
                student_id=student.id,
                subject_id=subject.id,
                annual_enrollment_id=annual.id,
                academic_year_id=annual.academic_year_id,
                period=period,
                status="Cursando",
            )
        )

    async def equivalence(
        self,
        tenant: Tenant,
        student: User,
        subject: Subject,
        source_name: str,
        approved: bool = True,
        equivalent_hours: Optional[int] = None,
        source_grade: Optional[float] = None,
    ) -> SubjectEquivalence:
        return await self._save(
            SubjectEquivalence(
                tenant_id=tenant.id,
                student_id=student.id,
                subject_id=subject.id,
                source_subject_name=source_name,
                equivalent_hours=equivalent_hours,
                source_grade=source_grade,
                approved=approved,
                approved_at=datetime.utcnow() if approved else None,
            )
        )

    async def academic_block(self, tenant: Tenant, student: User, operation: str, reason: str, active: bool = True) -> AcademicBlock:
        return await self._save(
            AcademicBlock(tenant_id=tenant.id, student_id=student.id, operation=operation, reason=reason, active=active)
        )

    async def block_config(self, tenant: Tenant, **flags) -> BlockConfiguration:
        return await self._save(BlockConfiguration(tenant_id=tenant.id, **flags))

    async def invoice(
        self, tenant: Tenant, student: User, amount: float, due_date: date, status: str = "Pendente", **kwargs
    ) -> TuitionInvoice:
        return await self._save(
            TuitionInvoice(
                tenant_id=tenant.id, student_id=student.id, amount=amount, due_date=due_date, status=status, **kwargs
            )
        )

    async def completion(
        self, tenant: Tenant, student: User, course=None, school_class=None, status: str = "CONCLUIDO"
    ) -> CourseCompletion:
        return await self._save(
            CourseCompletion(
                tenant_id=tenant.id,
                student_id=student.id,
                course_id=course.id if course else None,
                class_id=school_class.id if school_class else None,
                status=status,
                completed_at=datetime(2025, 7, 15),
                final_average=14.5,
            )
        )

    async def signature(self, tenant: Tenant) -> DigitalSignature:
        return await self._save(DigitalSignature(tenant_id=tenant.id, signer_name="Director", signer_title="Reitor"))

    @staticmethod
    def ctx(tenant: Optional[Tenant], actor: User, role: str = "ADMIN") -> RequestContext:
        return RequestContext(
            tenant_id=tenant.id if tenant else None,
            actor_id=actor.id,
            actor_role=role,
            academic_type=tenant.academic_type if tenant else None,
        )


@pytest.fixture()
def factory(db_session: AsyncSession) -> Factory:
    return Factory(db_session)


@pytest.fixture()
async def superior(factory: Factory) -> SimpleNamespace:
    """
    SUPERIOR institution with one student ready for subject enrollment:
    active annual enrollment in a course, Ativa in a section of that course,
    and one curriculum subject with an approved teaching plan.
    Plain ids are kept alongside the rows so tests can use them after a rollback.
    """
    tenant = await factory.tenant("SUPERIOR")
    admin = await factory.user(tenant, role="ADMIN", full_name="Secretaria Geral")
    professor = await factory.user(tenant, role="PROFESSOR", full_name="Prof. Ana Costa")
    student = await factory.user(tenant, role="ALUNO", full_name="João Silva", identification_number="BI-0001")
    year = await factory.academic_year(tenant, 2025)
    course = await factory.course(tenant)
    section = await factory.section(tenant, year, course=course, name="EI-1A")
    annual = await factory.annual_enrollment(tenant, student, year, course=course)
    await factory.class_enrollment(student, section)
    subject = await factory.subject(tenant, "Matemática I", workload_hours=60)
    await factory.link(course, subject)
    plan = await factory.plan(tenant, subject, year, section=section, professor=professor)
    return SimpleNamespace(
        tenant=tenant,
        admin=admin,
        professor=professor,
        student=student,
        year=year,
        course=course,
        section=section,
        annual=annual,
        subject=subject,
        plan=plan,
        ctx=Factory.ctx(tenant, admin),
        tenant_id=tenant.id,
        student_id=student.id,
        subject_id=subject.id,
        year_id=year.id,
        section_id=section.id,
        course_id=course.id,
        plan_id=plan.id,
        admin_id=admin.id,
    )


@pytest.fixture()
async def secundario(factory: Factory) -> SimpleNamespace:
    """SECUNDARIO institution: class-based context, trimesters, no curriculum restriction."""
    tenant = await factory.tenant("SECUNDARIO", name="Escola Secundária Central")
    admin = await factory.user(tenant, role="ADMIN")
    student = await factory.user(tenant, role="ALUNO", full_name="Maria Sousa")
    year = await factory.academic_year(tenant, 2025)
    school_class = await factory.school_class(tenant, "10ª Classe")
    section = await factory.section(tenant, year, school_class=school_class, name="10A")
    annual = await factory.annual_enrollment(tenant, student, year, school_class=school_class)
    await factory.class_enrollment(student, section)
    return SimpleNamespace(
        tenant=tenant,
        admin=admin,
        student=student,
        year=year,
        school_class=school_class,
        section=section,
        annual=annual,
        ctx=Factory.ctx(tenant, admin),
    )

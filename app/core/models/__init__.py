from app.core.models.tenant import Tenant
from app.core.models.academic_year import AcademicYear
from app.core.models.class_model import SchoolClass
from app.core.models.course import Course, CourseSubject
from app.core.models.section_model import Section
from app.core.models.subject import Subject
from app.core.models.enrollment import ANNUAL_PERIOD, AnnualEnrollment, ClassEnrollment, SubjectEnrollment
from app.core.models.teaching_plan import TeachingPlan
from app.core.models.lesson import AttendanceRecord, Lesson
from app.core.models.assessment import Assessment, Grade
from app.core.models.subject_equivalence import SubjectEquivalence
from app.core.models.academic_block import AcademicBlock, BlockConfiguration
from app.core.models.tuition_invoice import TuitionInvoice
from app.core.models.certificate import CertificateIssuance, CourseCompletion, DigitalSignature
from app.core.models.audit_log import AuditLog

__all__ = [
    "ANNUAL_PERIOD",
    "AcademicBlock",
    "AcademicYear",
    "AnnualEnrollment",
    "Assessment",
    "AttendanceRecord",
    "AuditLog",
    "BlockConfiguration",
    "CertificateIssuance",
    "ClassEnrollment",
    "Course",
    "CourseCompletion",
    "CourseSubject",
    "DigitalSignature",
    "Grade",
    "Lesson",
    "SchoolClass",
    "Section",
    "Subject",
    "SubjectEnrollment",
    "SubjectEquivalence",
    "TeachingPlan",
    "Tenant",
    "TuitionInvoice",
]

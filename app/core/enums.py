from enum import Enum


class AcademicType(str, Enum):
    SUPERIOR = "SUPERIOR"
    SECUNDARIO = "SECUNDARIO"


class AnnualEnrollmentStatus(str, Enum):
    ATIVA = "ATIVA"
    TRANCADA = "TRANCADA"
    CONCLUIDA = "CONCLUIDA"
    CANCELADA = "CANCELADA"


class ClassEnrollmentStatus(str, Enum):
    ATIVA = "Ativa"
    TRANCADA = "Trancada"
    CONCLUIDA = "Concluida"
    CANCELADA = "Cancelada"


class TeachingPlanState(str, Enum):
    RASCUNHO = "RASCUNHO"
    APROVADO = "APROVADO"
    ENCERRADO = "ENCERRADO"
    REJEITADO = "REJEITADO"


class SubjectEnrollmentStatus(str, Enum):
    CURSANDO = "Cursando"
    MATRICULADO = "Matriculado"
    CONCLUIDO = "Concluido"
    REPROVADO = "Reprovado"
    TRANCADO = "Trancado"
    CANCELADO = "Cancelado"


class AttendanceMark(str, Enum):
    PRESENTE = "PRESENTE"
    AUSENTE = "AUSENTE"
    JUSTIFICADO = "JUSTIFICADO"


class AttendanceSituation(str, Enum):
    REGULAR = "REGULAR"
    IRREGULAR = "IRREGULAR"
    # No lessons recorded yet: neither pass nor fail
    INDETERMINADO = "INDETERMINADO"


class AcademicStatus(str, Enum):
    APROVADO = "APROVADO"
    REPROVADO = "REPROVADO"
    REPROVADO_FALTA = "REPROVADO_FALTA"
    EM_ANDAMENTO = "EM_ANDAMENTO"
    EQUIVALENTE = "EQUIVALENTE"


class BlockedOperation(str, Enum):
    MATRICULA = "MATRICULA"
    DOCUMENTOS = "DOCUMENTOS"
    CERTIFICADOS = "CERTIFICADOS"
    AULAS = "AULAS"
    AVALIACOES = "AVALIACOES"


class InvoiceStatus(str, Enum):
    PENDENTE = "Pendente"
    ATRASADO = "Atrasado"
    PAGO = "Pago"
    CANCELADO = "Cancelado"


class CompletionStatus(str, Enum):
    PENDENTE = "PENDENTE"
    VALIDADO = "VALIDADO"
    CONCLUIDO = "CONCLUIDO"
    REJEITADO = "REJEITADO"


class AcademicYearStatus(str, Enum):
    PLANNED = "PLANNED"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class AuditModule(str, Enum):
    ALUNOS = "ALUNOS"
    RELATORIOS_OFICIAIS = "RELATORIOS_OFICIAIS"


class AuditEntity(str, Enum):
    ALUNO_DISCIPLINA = "ALUNO_DISCIPLINA"
    RELATORIO_GERADO = "RELATORIO_GERADO"
    CERTIFICADO = "CERTIFICADO"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    GENERATE_REPORT = "GENERATE_REPORT"
    BLOCK = "BLOCK"


class DocumentKind(str, Enum):
    HISTORICO_ACADEMICO = "HISTORICO_ACADEMICO"
    BOLETIM_ALUNO = "BOLETIM_ALUNO"
    PAUTA = "PAUTA"
    CERTIFICADO = "CERTIFICADO"


STUDENT_ROLE = "ALUNO"
PLATFORM_ROLES = ("PLATFORM_ADMIN",)
ADMIN_ROLES = ("SUPER_ADMIN", "PLATFORM_ADMIN", "ADMIN")

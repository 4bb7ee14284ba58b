"""Monthly tuition invoices ("mensalidades"). Read-only here; used to derive the financial situation."""

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class TuitionInvoice(Base):
    __tablename__ = "tuition_invoices"
    __table_args__ = {"schema": "school"}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("core.tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(UUID(as_uuid=True), ForeignKey("auth.users.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    fine_amount = Column(Numeric(12, 2), nullable=False, default=0)
    interest_amount = Column(Numeric(12, 2), nullable=False, default=0)
    due_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="Pendente")  # Pendente | Atrasado | Pago | Cancelado
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

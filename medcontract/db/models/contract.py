import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medcontract.common.enums import ContractStatus, DocumentSlot
from medcontract.db.base import BaseModel


class Contract(BaseModel):
    __tablename__ = "contracts"
    __table_args__ = (
        Index("ix_contracts_client_status", "client_id", "status"),
        Index("ix_contracts_contractor_status", "contractor_id", "status"),
        Index("ix_contracts_created_at", "created_at"),
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    client_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    contractor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    project_type: Mapped[str] = mapped_column(String(30), nullable=False)
    budget: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    status: Mapped[ContractStatus] = mapped_column(
        String(20), nullable=False, default=ContractStatus.DRAFT.value
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    milestones: Mapped[list | None] = mapped_column(JSONB, nullable=True, default=list)
    requirements: Mapped[dict | None] = mapped_column(JSONB, nullable=True, default=dict)
    terms: Mapped[dict | None] = mapped_column(JSONB, nullable=True, default=dict)
    communication: Mapped[list | None] = mapped_column(JSONB, nullable=True, default=list)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    client = relationship("User", foreign_keys="Contract.client_id", lazy="selectin")
    contractor = relationship("User", foreign_keys="Contract.contractor_id", lazy="selectin")
    documents = relationship(
        "Document",
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="Document.created_at",
        lazy="selectin",
    )

    def slot_document(self, slot: DocumentSlot):
        for doc in self.documents:
            if doc.slot is slot:
                return doc
        return None

    @property
    def dl_front(self):
        return self.slot_document(DocumentSlot.FRONT)

    @property
    def dl_back(self):
        return self.slot_document(DocumentSlot.BACK)

    @property
    def attachments(self) -> list:
        """Documents in the append set, i.e. everything that is not slotted."""
        return [doc for doc in self.documents if doc.slot is None]

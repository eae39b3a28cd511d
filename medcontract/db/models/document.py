import uuid

from sqlalchemy import ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medcontract.common.enums import SINGLE_SLOT_TYPES, DocumentSlot, DocumentType
from medcontract.db.base import BaseModel

_SINGLE_SLOT_CLAUSE = "document_type IN ({})".format(
    ", ".join(f"'{t}'" for t in SINGLE_SLOT_TYPES)
)


class Document(BaseModel):
    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_contract_type", "contract_id", "document_type"),
        # At most one dl-front and one dl-back per contract
        Index(
            "uq_documents_contract_slot",
            "contract_id",
            "document_type",
            unique=True,
            postgresql_where=text(_SINGLE_SLOT_CLAUSE),
            sqlite_where=text(_SINGLE_SLOT_CLAUSE),
        ),
    )

    contract_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False
    )
    uploaded_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    path: Mapped[str] = mapped_column(String(1000), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    document_type: Mapped[DocumentType] = mapped_column(String(20), nullable=False)
    is_verified: Mapped[bool] = mapped_column(default=False, nullable=False)
    verification_notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    image_metadata: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    # Relationships
    contract = relationship("Contract", back_populates="documents", lazy="selectin")

    @property
    def slot(self) -> DocumentSlot | None:
        return DocumentType(self.document_type).slot

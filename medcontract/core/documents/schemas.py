import uuid

from pydantic import BaseModel

from medcontract.db.models.document import Document


class ImageMetadata(BaseModel):
    width: int | None = None
    height: int | None = None
    orientation: str | None = None


class UploadedDocumentResponse(BaseModel):
    """Public metadata returned right after an upload."""

    id: uuid.UUID
    filename: str
    original_name: str
    size: int
    mime_type: str
    document_type: str
    uploaded_at: str

    @classmethod
    def from_document(cls, doc: Document) -> "UploadedDocumentResponse":
        return cls(
            id=doc.id,
            filename=doc.filename,
            original_name=doc.original_name,
            size=doc.size,
            mime_type=doc.mime_type,
            document_type=doc.document_type,
            uploaded_at=doc.created_at.isoformat(),
        )


class DocumentResponse(UploadedDocumentResponse):
    contract_id: uuid.UUID
    uploaded_by: uuid.UUID
    is_verified: bool
    verification_notes: str
    metadata: ImageMetadata | None

    @classmethod
    def from_document(cls, doc: Document) -> "DocumentResponse":
        return cls(
            id=doc.id,
            contract_id=doc.contract_id,
            uploaded_by=doc.uploaded_by,
            filename=doc.filename,
            original_name=doc.original_name,
            size=doc.size,
            mime_type=doc.mime_type,
            document_type=doc.document_type,
            is_verified=doc.is_verified,
            verification_notes=doc.verification_notes or "",
            metadata=ImageMetadata(**doc.image_metadata) if doc.image_metadata else None,
            uploaded_at=doc.created_at.isoformat(),
        )

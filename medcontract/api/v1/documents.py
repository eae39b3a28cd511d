import uuid

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel as PydanticModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from medcontract.api.deps import get_current_user, get_db
from medcontract.common.enums import DocumentType
from medcontract.common.exceptions import NotFoundError, StorageError, ValidationError
from medcontract.common.logging import get_logger
from medcontract.config import settings
from medcontract.core.contracts.workflow import ensure_participant
from medcontract.core.documents.schemas import DocumentResponse, UploadedDocumentResponse
from medcontract.core.documents.validation import (
    MAX_FILENAME_LENGTH,
    file_size_error,
    file_type_errors,
    is_image,
    read_image_metadata,
)
from medcontract.db.models.contract import Contract
from medcontract.db.models.document import Document
from medcontract.db.models.user import User
from medcontract.integrations.storage import StorageClient

logger = get_logger("api.documents")

router = APIRouter(prefix="/documents", tags=["Documents"])

PRIVATE_CACHE = "private, max-age=3600"
PUBLIC_CACHE = "public, max-age=3600"


# ---------- Schemas ----------


class VerifyRequest(PydanticModel):
    is_verified: bool
    verification_notes: str | None = None


# ---------- Endpoints ----------


@router.get("/public/{document_id}")
async def public_preview(
    document_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Unauthenticated inline preview, limited to image documents."""
    doc = await _get_document(document_id, db)
    if not is_image(doc.mime_type):
        raise NotFoundError("Document", str(document_id))
    return await _serve(doc, "inline", PUBLIC_CACHE)


@router.post("/upload", response_model=UploadedDocumentResponse, status_code=201)
async def upload_document(
    file: UploadFile | None = File(None),
    contract_id: str | None = Form(None),
    document_type: str | None = Form(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contract_uuid, doc_type = _validate_upload_fields(file, contract_id, document_type)

    contract = await _get_contract(contract_uuid, db)
    ensure_participant(contract, current_user.id, "upload to")

    # Type and size are checked before anything touches storage
    type_errors = file_type_errors(file.filename, file.content_type)
    if type_errors:
        raise ValidationError([{"field": "file", "message": m} for m in type_errors])

    content = await file.read(settings.MAX_FILE_SIZE + 1)
    size_error = file_size_error(len(content), settings.MAX_FILE_SIZE)
    if size_error:
        raise ValidationError.single("file", size_error)

    mime_type = file.content_type.split(";")[0].strip().lower()
    storage = StorageClient()
    stored_path = await storage.save(
        content, storage.generate_filename(doc_type.value, file.filename)
    )

    previous = contract.slot_document(doc_type.slot) if doc_type.is_single_slot else None
    try:
        if previous is not None:
            contract.documents.remove(previous)
            await db.delete(previous)
            await db.flush()

        doc = Document(
            contract=contract,
            uploaded_by=current_user.id,
            filename=stored_path.name,
            original_name=file.filename,
            path=str(stored_path),
            size=len(content),
            mime_type=mime_type,
            document_type=doc_type.value,
            image_metadata=read_image_metadata(content) if is_image(mime_type) else None,
        )
        db.add(doc)
        await db.commit()
    except Exception:
        await storage.delete(stored_path)
        raise

    # The replaced file goes only after the new record is committed
    if previous is not None:
        await storage.delete(previous.path)
        logger.info("Replaced %s on contract %s (was %s)", doc_type.value, contract.id, previous.id)

    logger.info(
        "Document %s (%s, %d bytes) uploaded to contract %s by %s",
        doc.id, doc_type.value, doc.size, contract.id, current_user.id,
    )
    return UploadedDocumentResponse.from_document(doc)


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    doc = await _get_document(document_id, db)
    ensure_participant(doc.contract, current_user.id, "view documents of")
    return DocumentResponse.from_document(doc)


@router.get("/{document_id}/download")
async def download_document(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    doc = await _get_document(document_id, db)
    ensure_participant(doc.contract, current_user.id, "download documents of")
    return await _serve(doc, "attachment", PRIVATE_CACHE)


@router.get("/{document_id}/view")
async def view_document(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    doc = await _get_document(document_id, db)
    ensure_participant(doc.contract, current_user.id, "view documents of")
    return await _serve(doc, "inline", PRIVATE_CACHE)


@router.put("/{document_id}/verify", response_model=DocumentResponse)
async def verify_document(
    document_id: uuid.UUID,
    body: VerifyRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    doc = await _get_document(document_id, db)
    ensure_participant(doc.contract, current_user.id, "verify documents of")

    doc.is_verified = body.is_verified
    doc.verification_notes = body.verification_notes or ""
    await db.flush()

    logger.info("Document %s verified=%s by %s", doc.id, doc.is_verified, current_user.id)
    return DocumentResponse.from_document(doc)


@router.delete("/{document_id}")
async def delete_document(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    doc = await _get_document(document_id, db)
    contract = doc.contract
    ensure_participant(contract, current_user.id, "delete documents of")

    # Unlinking clears the slot or drops the entry from the set
    if doc in contract.documents:
        contract.documents.remove(doc)
    await db.delete(doc)
    await db.commit()

    await StorageClient().delete(doc.path)
    logger.info("Document %s deleted from contract %s by %s", document_id, contract.id, current_user.id)
    return {"message": "Document deleted successfully"}


def _validate_upload_fields(
    file: UploadFile | None, contract_id: str | None, document_type: str | None
) -> tuple[uuid.UUID, DocumentType]:
    errors = []
    contract_uuid = None
    doc_type = None

    if file is None or not file.filename:
        errors.append({"field": "file", "message": "No file uploaded"})
    elif len(file.filename) > MAX_FILENAME_LENGTH:
        errors.append({
            "field": "file",
            "message": f"File name must be at most {MAX_FILENAME_LENGTH} characters",
        })

    if not contract_id:
        errors.append({"field": "contract_id", "message": "Contract ID is required"})
    else:
        try:
            contract_uuid = uuid.UUID(contract_id)
        except ValueError:
            errors.append({"field": "contract_id", "message": "Contract ID is not valid"})

    if not document_type:
        errors.append({"field": "document_type", "message": "Document type is required"})
    else:
        try:
            doc_type = DocumentType(document_type)
        except ValueError:
            allowed = ", ".join(t.value for t in DocumentType)
            errors.append({"field": "document_type", "message": f"Document type must be one of: {allowed}"})

    if errors:
        raise ValidationError(errors)
    return contract_uuid, doc_type


async def _serve(doc: Document, disposition: str, cache_control: str) -> FileResponse:
    storage = StorageClient()
    if not await storage.exists(doc.path):
        logger.warning("Document %s has no file at its stored path", doc.id)
        raise StorageError()
    return FileResponse(
        doc.path,
        media_type=doc.mime_type,
        filename=doc.original_name,
        content_disposition_type=disposition,
        headers={"Cache-Control": cache_control},
    )


async def _get_contract(contract_id: uuid.UUID, db: AsyncSession) -> Contract:
    result = await db.execute(
        select(Contract)
        .where(Contract.id == contract_id)
        .execution_options(populate_existing=True)
    )
    contract = result.scalar_one_or_none()
    if not contract:
        raise NotFoundError("Contract", str(contract_id))
    return contract


async def _get_document(document_id: uuid.UUID, db: AsyncSession) -> Document:
    result = await db.execute(
        select(Document)
        .where(Document.id == document_id)
        .execution_options(populate_existing=True)
    )
    doc = result.scalar_one_or_none()
    if not doc:
        raise NotFoundError("Document", str(document_id))
    return doc

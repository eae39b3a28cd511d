"""Contract CRUD, status lifecycle and party messaging."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, Field, StringConstraints, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from medcontract.api.deps import get_current_user, get_db
from medcontract.common.enums import ContractStatus, ProjectType
from medcontract.common.exceptions import ConflictError, NotFoundError, ValidationError, field_errors
from medcontract.common.logging import get_logger
from medcontract.common.pagination import PaginationParams, paginate
from medcontract.core.contracts.workflow import apply_status, ensure_client, ensure_participant
from medcontract.core.documents.schemas import DocumentResponse
from medcontract.db.base import utcnow
from medcontract.db.models.contract import Contract
from medcontract.db.models.user import User
from medcontract.integrations.storage import StorageClient

logger = get_logger("api.contracts")

router = APIRouter(prefix="/contracts", tags=["Contracts"])

NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


# ---------- Schemas ----------


class Milestone(BaseModel):
    title: NonBlank
    description: str | None = None
    due_date: date | None = None
    completed: bool = False


class Timeline(BaseModel):
    start_date: date
    end_date: date
    milestones: list[Milestone] = []

    @model_validator(mode="after")
    def _end_after_start(self) -> "Timeline":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class Requirements(BaseModel):
    features: list[str] = []
    technologies: list[str] = []
    integrations: list[str] = []
    compliance: list[str] = []

    @field_validator("features", "technologies", "integrations", "compliance")
    @classmethod
    def _as_set(cls, values: list[str]) -> list[str]:
        # Sets of strings; keep first-seen order for stable output
        return list(dict.fromkeys(v.strip() for v in values if v.strip()))


class Terms(BaseModel):
    payment_schedule: str | None = None
    deliverables: list[str] = []
    warranties: str | None = None
    termination_clause: str | None = None


class ContractCreateRequest(BaseModel):
    title: NonBlank
    description: NonBlank
    contractor_id: uuid.UUID
    project_type: ProjectType
    budget: Decimal = Field(ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    status: ContractStatus = ContractStatus.DRAFT
    timeline: Timeline
    requirements: Requirements = Requirements()
    terms: Terms = Terms()


class ContractUpdateRequest(BaseModel):
    title: NonBlank | None = None
    description: NonBlank | None = None
    project_type: ProjectType | None = None
    budget: Decimal | None = Field(None, ge=0)
    currency: str | None = Field(None, min_length=3, max_length=3)
    status: ContractStatus | None = None
    timeline: Timeline | None = None
    requirements: Requirements | None = None
    terms: Terms | None = None
    version: int | None = None


class StatusUpdateRequest(BaseModel):
    status: ContractStatus
    version: int | None = None


class MessageRequest(BaseModel):
    message: NonBlank


class PartySummary(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    company: str | None
    phone: str | None
    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    sender: uuid.UUID
    message: str
    timestamp: str


class ContractResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    client: PartySummary
    contractor: PartySummary
    project_type: str
    budget: Decimal
    currency: str
    status: str
    timeline: Timeline
    requirements: Requirements
    terms: Terms
    dl_front: DocumentResponse | None
    dl_back: DocumentResponse | None
    documents: list[DocumentResponse]
    communication: list[MessageResponse]
    version: int
    created_at: str
    updated_at: str

    @classmethod
    def from_orm_instance(cls, contract: Contract) -> "ContractResponse":
        dl_front, dl_back = contract.dl_front, contract.dl_back
        return cls(
            id=contract.id,
            title=contract.title,
            description=contract.description,
            client=PartySummary.model_validate(contract.client),
            contractor=PartySummary.model_validate(contract.contractor),
            project_type=contract.project_type,
            budget=contract.budget,
            currency=contract.currency,
            status=contract.status,
            timeline=Timeline(
                start_date=contract.start_date,
                end_date=contract.end_date,
                milestones=contract.milestones or [],
            ),
            requirements=Requirements(**(contract.requirements or {})),
            terms=Terms(**(contract.terms or {})),
            dl_front=DocumentResponse.from_document(dl_front) if dl_front else None,
            dl_back=DocumentResponse.from_document(dl_back) if dl_back else None,
            documents=[DocumentResponse.from_document(d) for d in contract.attachments],
            communication=[MessageResponse(**m) for m in contract.communication or []],
            version=contract.version,
            created_at=contract.created_at.isoformat(),
            updated_at=contract.updated_at.isoformat(),
        )


class ContractListResponse(BaseModel):
    contracts: list[ContractResponse]
    total: int
    total_pages: int
    current_page: int


# ---------- Endpoints ----------


@router.get("", response_model=ContractListResponse)
async def list_contracts(
    status: ContractStatus | None = Query(None, description="Filter by status"),
    params: PaginationParams = Depends(),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    query = (
        select(Contract)
        .where(or_(Contract.client_id == current_user.id, Contract.contractor_id == current_user.id))
        .execution_options(populate_existing=True)
    )
    if status:
        query = query.where(Contract.status == status.value)
    query = query.order_by(Contract.created_at.desc())

    items, total = await paginate(db, query, params)

    return ContractListResponse(
        contracts=[ContractResponse.from_orm_instance(c) for c in items],
        total=total,
        total_pages=params.total_pages(total),
        current_page=params.page,
    )


@router.get("/{contract_id}", response_model=ContractResponse)
async def get_contract(
    contract_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contract = await _load_contract(contract_id, db)
    ensure_participant(contract, current_user.id, "view")
    return ContractResponse.from_orm_instance(contract)


@router.post("", response_model=ContractResponse, status_code=201)
async def create_contract(
    payload: dict[str, Any] = Body(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    # Body errors and the contractor lookup are reported together
    errors: list[dict[str, str]] = []
    body = None
    try:
        body = ContractCreateRequest.model_validate(payload)
    except PydanticValidationError as exc:
        errors.extend(field_errors(exc.errors()))

    contractor_id = body.contractor_id if body else _parse_uuid(payload.get("contractor_id"))
    if contractor_id is not None and not await _user_exists(contractor_id, db):
        errors.append({"field": "contractor_id", "message": "Contractor not found"})
    if errors:
        raise ValidationError(errors)

    contract = Contract(
        title=body.title,
        description=body.description,
        client_id=current_user.id,
        contractor_id=body.contractor_id,
        project_type=body.project_type.value,
        budget=body.budget,
        currency=body.currency.upper(),
        status=body.status.value,
        start_date=body.timeline.start_date,
        end_date=body.timeline.end_date,
        milestones=[m.model_dump(mode="json") for m in body.timeline.milestones],
        requirements=body.requirements.model_dump(),
        terms=body.terms.model_dump(),
        communication=[],
    )
    db.add(contract)
    await db.flush()
    logger.info("Contract %s created by %s", contract.id, current_user.id)

    contract = await _load_contract(contract.id, db)
    return ContractResponse.from_orm_instance(contract)


@router.put("/{contract_id}", response_model=ContractResponse)
async def update_contract(
    contract_id: uuid.UUID,
    body: ContractUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contract = await _load_contract(contract_id, db)
    ensure_participant(contract, current_user.id, "update")
    _check_version(contract, body.version)

    # Status first so an illegal transition leaves the contract untouched
    if body.status is not None:
        apply_status(contract, body.status, current_user.id)
    if body.title is not None:
        contract.title = body.title
    if body.description is not None:
        contract.description = body.description
    if body.project_type is not None:
        contract.project_type = body.project_type.value
    if body.budget is not None:
        contract.budget = body.budget
    if body.currency is not None:
        contract.currency = body.currency.upper()
    if body.timeline is not None:
        contract.start_date = body.timeline.start_date
        contract.end_date = body.timeline.end_date
        contract.milestones = [m.model_dump(mode="json") for m in body.timeline.milestones]
    if body.requirements is not None:
        contract.requirements = body.requirements.model_dump()
    if body.terms is not None:
        contract.terms = body.terms.model_dump()

    await db.flush()
    contract = await _load_contract(contract_id, db)
    return ContractResponse.from_orm_instance(contract)


@router.delete("/{contract_id}")
async def delete_contract(
    contract_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contract = await _load_contract(contract_id, db)
    ensure_client(contract, current_user.id, "delete")

    # Files are only removed once the row deletion is committed
    paths = [doc.path for doc in contract.documents]
    await db.delete(contract)
    await db.commit()

    storage = StorageClient()
    for path in paths:
        await storage.delete(path)

    logger.info("Contract %s deleted by %s with %d documents", contract_id, current_user.id, len(paths))
    return {"message": "Contract deleted successfully"}


@router.post("/{contract_id}/status", response_model=ContractResponse)
async def set_status(
    contract_id: uuid.UUID,
    body: StatusUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contract = await _load_contract(contract_id, db)
    ensure_participant(contract, current_user.id, "update")
    _check_version(contract, body.version)

    if apply_status(contract, body.status, current_user.id):
        await db.flush()
        contract = await _load_contract(contract_id, db)
    return ContractResponse.from_orm_instance(contract)


@router.post("/{contract_id}/message", response_model=ContractResponse)
async def add_message(
    contract_id: uuid.UUID,
    body: MessageRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contract = await _load_contract(contract_id, db)
    ensure_participant(contract, current_user.id, "message on")

    # Reassign so the JSON column is flagged as changed
    contract.communication = [
        *(contract.communication or []),
        {
            "sender": str(current_user.id),
            "message": body.message,
            "timestamp": utcnow().isoformat(),
        },
    ]
    await db.flush()

    contract = await _load_contract(contract_id, db)
    return ContractResponse.from_orm_instance(contract)


def _check_version(contract: Contract, expected: int | None) -> None:
    if expected is not None and expected != contract.version:
        raise ConflictError(
            f"Contract was modified (version {contract.version}, you sent {expected}), reload and retry"
        )


async def _load_contract(contract_id: uuid.UUID, db: AsyncSession) -> Contract:
    result = await db.execute(
        select(Contract)
        .where(Contract.id == contract_id)
        .execution_options(populate_existing=True)
    )
    contract = result.scalar_one_or_none()
    if not contract:
        raise NotFoundError("Contract", str(contract_id))
    return contract


def _parse_uuid(value: Any) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


async def _user_exists(user_id: uuid.UUID, db: AsyncSession) -> bool:
    result = await db.execute(
        select(User.id).where(User.id == user_id, User.is_deleted.is_(False))
    )
    return result.scalar_one_or_none() is not None

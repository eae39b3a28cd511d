"""Access rules and status transitions for contracts."""

import uuid

from medcontract.common.enums import ContractStatus
from medcontract.common.exceptions import BadRequestError, PermissionDeniedError
from medcontract.common.logging import get_logger
from medcontract.config import settings
from medcontract.db.models.contract import Contract

logger = get_logger("contracts.workflow")

VALID_TRANSITIONS: dict[ContractStatus, list[ContractStatus]] = {
    ContractStatus.DRAFT: [ContractStatus.PENDING, ContractStatus.CANCELLED],
    ContractStatus.PENDING: [ContractStatus.APPROVED, ContractStatus.DRAFT, ContractStatus.CANCELLED],
    ContractStatus.APPROVED: [ContractStatus.IN_PROGRESS, ContractStatus.CANCELLED],
    ContractStatus.IN_PROGRESS: [ContractStatus.COMPLETED, ContractStatus.CANCELLED],
    ContractStatus.COMPLETED: [],
    ContractStatus.CANCELLED: [],
}

TERMINAL_STATUSES = frozenset(s for s, targets in VALID_TRANSITIONS.items() if not targets)


def is_client(contract: Contract, user_id: uuid.UUID) -> bool:
    return contract.client_id == user_id


def is_participant(contract: Contract, user_id: uuid.UUID) -> bool:
    return user_id in (contract.client_id, contract.contractor_id)


def ensure_participant(contract: Contract, user_id: uuid.UUID, action: str = "access") -> None:
    if not is_participant(contract, user_id):
        raise PermissionDeniedError(f"Not authorized to {action} this contract")


def ensure_client(contract: Contract, user_id: uuid.UUID, action: str = "delete") -> None:
    if not is_client(contract, user_id):
        raise PermissionDeniedError(f"Only the client may {action} this contract")


def can_transition(current: ContractStatus, new: ContractStatus, strict: bool | None = None) -> bool:
    if strict is None:
        strict = settings.STRICT_STATUS_TRANSITIONS
    if not strict or current == new:
        return True
    return new in VALID_TRANSITIONS.get(current, [])


def apply_status(contract: Contract, new_status: ContractStatus, user_id: uuid.UUID) -> bool:
    """Move a contract to ``new_status``. Returns False when nothing changed."""
    current = ContractStatus(contract.status)
    if not can_transition(current, new_status):
        raise BadRequestError(
            f"Cannot transition from '{current.value}' to '{new_status.value}'"
        )
    if current == new_status:
        return False

    contract.status = new_status.value
    logger.info(
        "Contract %s status %s -> %s by %s",
        contract.id, current.value, new_status.value, user_id,
    )
    return True

from medcontract.db.models.contract import Contract
from medcontract.db.models.document import Document
from medcontract.db.models.user import User

__all__ = [
    "Contract",
    "Document",
    "User",
]

"""Clients for collaborators that live outside the database."""

from medcontract.integrations.base import BaseIntegration
from medcontract.integrations.storage import StorageClient

__all__ = [
    "BaseIntegration",
    "StorageClient",
]

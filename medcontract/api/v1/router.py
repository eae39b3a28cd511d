from fastapi import APIRouter

from medcontract.api.v1.auth import router as auth_router
from medcontract.api.v1.contracts import router as contracts_router
from medcontract.api.v1.documents import router as documents_router

v1_router = APIRouter()

v1_router.include_router(auth_router)
v1_router.include_router(contracts_router)
v1_router.include_router(documents_router)

"""API v1 router aggregation"""
from fastapi import APIRouter

from token_vesting.api.v1 import accounts, vesting

api_router = APIRouter()

api_router.include_router(vesting.router, prefix="/vesting", tags=["Vesting"])
api_router.include_router(accounts.router, prefix="/accounts", tags=["Accounts"])

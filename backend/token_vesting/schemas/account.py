"""Token holding schemas"""
from pydantic import BaseModel


class DepositRequest(BaseModel):
    """Credit tokens to an owner's holding (issuance happens outside the ledger)"""
    owner: str
    mint: str
    amount: int


class TokenAccountResponse(BaseModel):
    address: str
    owner: str
    mint: str
    amount: int

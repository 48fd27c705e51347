"""Token holding endpoints"""
from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from token_vesting.config import get_settings
from token_vesting.errors import AccountNotFound
from token_vesting.models.database import get_db
from token_vesting.models.token_account import TokenAccount
from token_vesting.schemas.account import DepositRequest, TokenAccountResponse
from token_vesting.services.authority import decode_address
from token_vesting.services.ledger import TokenLedger, associated_address

router = APIRouter()


def get_ledger(db: AsyncSession = Depends(get_db)) -> TokenLedger:
    return TokenLedger(db, get_settings().program_id)


@router.post("/deposit", response_model=TokenAccountResponse)
async def deposit_tokens(request: DepositRequest, ledger: TokenLedger = Depends(get_ledger)):
    """Credit tokens to an owner's holding, opening it if needed"""
    decode_address(request.owner)
    decode_address(request.mint)
    account = await ledger.deposit(request.owner, request.mint, request.amount)
    return _account_to_response(account)


@router.get("/{owner}/{mint}", response_model=TokenAccountResponse)
async def get_token_account(
    owner: str = Path(...),
    mint: str = Path(...),
    ledger: TokenLedger = Depends(get_ledger),
):
    """Get an owner's holding for a mint"""
    address = associated_address(owner, mint)
    account = await ledger.get_account(address)
    if account is None:
        raise AccountNotFound(details={"owner": owner, "mint": mint})
    return _account_to_response(account)


def _account_to_response(account: TokenAccount) -> TokenAccountResponse:
    return TokenAccountResponse(
        address=account.address,
        owner=account.owner,
        mint=account.mint,
        amount=account.amount,
    )

"""Token ledger: holdings and authorized transfers between them.

Stands in for the external asset-transfer program. Every transfer checks the
presented authority independently (a derived authority is re-derived from
its seeds, never trusted as given), checks mints and balances, and only then
moves the balance. It never commits: the caller's database transaction makes
the transfer and the schedule update land together or not at all.
"""
from typing import Optional, Union

import structlog
from solders.token.associated import get_associated_token_address
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from token_vesting.errors import (
    AccountNotFound,
    InsufficientFunds,
    InvalidAuthority,
    MintMismatch,
    TransferError,
)
from token_vesting.models.token_account import TokenAccount
from token_vesting.services.authority import DerivedAuthority, to_pubkey
from token_vesting.services.vesting_math import checked_add_u64

logger = structlog.get_logger()

# A wallet signer is identified by its address; signature checks happen upstream
Authority = Union[str, DerivedAuthority]


def associated_address(owner: str, mint: str) -> str:
    """Deterministic wallet holding address for (owner, mint)"""
    return str(get_associated_token_address(to_pubkey(owner), to_pubkey(mint)))


class TokenLedger:
    """Holdings and transfers for all mints"""

    def __init__(self, db: AsyncSession, program_id: str):
        self.db = db
        self.program_id = program_id

    async def get_account(self, address: str, for_update: bool = False) -> Optional[TokenAccount]:
        stmt = select(TokenAccount).where(TokenAccount.address == address)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def require_account(self, address: str, for_update: bool = False) -> TokenAccount:
        account = await self.get_account(address, for_update=for_update)
        if account is None:
            raise AccountNotFound(details={"address": address})
        return account

    async def get_associated_account(self, owner: str, mint: str, for_update: bool = False) -> Optional[TokenAccount]:
        return await self.get_account(associated_address(owner, mint), for_update=for_update)

    async def get_or_create_associated_account(self, owner: str, mint: str) -> TokenAccount:
        """Fetch the owner's holding for a mint, opening an empty one if needed"""
        address = associated_address(owner, mint)
        account = await self.get_account(address, for_update=True)
        if account is None:
            account = TokenAccount(address=address, mint=mint, owner=owner, amount=0)
            self.db.add(account)
            await self.db.flush()
            logger.debug("Opened token account", address=address, owner=owner, mint=mint)
        return account

    async def open_vault(self, vault: DerivedAuthority, schedule: DerivedAuthority, mint: str) -> TokenAccount:
        """Open an empty escrow holding owned by a schedule's derived address"""
        if not vault.verify(self.program_id) or not schedule.verify(self.program_id):
            raise InvalidAuthority(details={"vault": vault.address, "schedule": schedule.address})
        if await self.get_account(vault.address) is not None:
            raise TransferError("Escrow vault already exists", details={"vault": vault.address})
        account = TokenAccount(address=vault.address, mint=mint, owner=schedule.address, amount=0)
        self.db.add(account)
        await self.db.flush()
        return account

    async def deposit(self, owner: str, mint: str, amount: int) -> TokenAccount:
        """Credit newly issued tokens to an owner's holding"""
        if amount <= 0:
            raise TransferError("Deposit amount must be positive", details={"amount": amount})
        account = await self.get_or_create_associated_account(owner, mint)
        account.amount = checked_add_u64(account.amount, amount)
        await self.db.flush()
        logger.info("Deposited tokens", owner=owner, mint=mint, amount=amount, balance=account.amount)
        return account

    def check_authority(self, source: TokenAccount, authority: Authority) -> None:
        if isinstance(authority, DerivedAuthority):
            if not authority.verify(self.program_id) or authority.address != source.owner:
                raise InvalidAuthority(details={"source": source.address, "authority": authority.address})
        elif authority != source.owner:
            raise InvalidAuthority(details={"source": source.address, "authority": authority})

    def check_balance(self, source: TokenAccount, amount: int) -> None:
        if source.amount < amount:
            raise InsufficientFunds(
                details={"source": source.address, "balance": source.amount, "requested": amount}
            )

    async def transfer(
        self,
        source: TokenAccount,
        destination: TokenAccount,
        amount: int,
        authority: Authority,
    ) -> None:
        """Move ``amount`` from source to destination, all or nothing"""
        if amount <= 0:
            raise TransferError("Transfer amount must be positive", details={"amount": amount})
        if source.address == destination.address:
            raise TransferError("Source and destination must differ", details={"address": source.address})
        self.check_authority(source, authority)
        if source.mint != destination.mint:
            raise MintMismatch(details={"source_mint": source.mint, "destination_mint": destination.mint})
        self.check_balance(source, amount)
        new_destination_amount = checked_add_u64(destination.amount, amount)

        source.amount = source.amount - amount
        destination.amount = new_destination_amount
        await self.db.flush()

        logger.debug(
            "Transferred tokens",
            source=source.address,
            destination=destination.address,
            mint=source.mint,
            amount=amount,
        )

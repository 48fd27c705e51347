"""Unit tests for the token ledger."""
import pytest

from token_vesting.constants import U64_MAX
from token_vesting.errors import (
    CalculationOverflow,
    InsufficientFunds,
    InvalidAuthority,
    MintMismatch,
    TransferError,
)
from token_vesting.models.token_account import TokenAccount
from token_vesting.services.authority import derive_schedule_authority, derive_vault_address
from token_vesting.services.ledger import associated_address


class TestAssociatedAddress:
    """Tests for wallet holding addresses."""

    def test_deterministic_per_owner_and_mint(self, addresses):
        first = associated_address(addresses.admin, addresses.mint)
        assert associated_address(addresses.admin, addresses.mint) == first
        assert associated_address(addresses.other, addresses.mint) != first
        assert associated_address(addresses.admin, addresses.other_mint) != first


class TestDeposit:
    """Tests for crediting holdings."""

    @pytest.mark.asyncio
    async def test_deposit_opens_holding(self, ledger, addresses):
        account = await ledger.deposit(addresses.admin, addresses.mint, 1_000)
        assert account.address == associated_address(addresses.admin, addresses.mint)
        assert account.owner == addresses.admin
        assert account.amount == 1_000

    @pytest.mark.asyncio
    async def test_deposit_accumulates(self, ledger, addresses):
        await ledger.deposit(addresses.admin, addresses.mint, 1_000)
        account = await ledger.deposit(addresses.admin, addresses.mint, 500)
        assert account.amount == 1_500

    @pytest.mark.asyncio
    async def test_deposit_rejects_zero(self, ledger, addresses):
        with pytest.raises(TransferError):
            await ledger.deposit(addresses.admin, addresses.mint, 0)

    @pytest.mark.asyncio
    async def test_deposit_overflow(self, ledger, addresses):
        await ledger.deposit(addresses.admin, addresses.mint, U64_MAX)
        with pytest.raises(CalculationOverflow):
            await ledger.deposit(addresses.admin, addresses.mint, 1)


class TestTransfer:
    """Tests for authorized transfers."""

    @pytest.mark.asyncio
    async def test_wallet_transfer(self, ledger, addresses):
        source = await ledger.deposit(addresses.admin, addresses.mint, 1_000)
        destination = await ledger.get_or_create_associated_account(addresses.other, addresses.mint)

        await ledger.transfer(source, destination, 400, addresses.admin)

        assert source.amount == 600
        assert destination.amount == 400

    @pytest.mark.asyncio
    async def test_wrong_signer_moves_nothing(self, ledger, addresses):
        source = await ledger.deposit(addresses.admin, addresses.mint, 1_000)
        destination = await ledger.get_or_create_associated_account(addresses.other, addresses.mint)

        with pytest.raises(InvalidAuthority):
            await ledger.transfer(source, destination, 400, addresses.other)

        assert source.amount == 1_000
        assert destination.amount == 0

    @pytest.mark.asyncio
    async def test_insufficient_funds(self, ledger, addresses):
        source = await ledger.deposit(addresses.admin, addresses.mint, 100)
        destination = await ledger.get_or_create_associated_account(addresses.other, addresses.mint)

        with pytest.raises(InsufficientFunds):
            await ledger.transfer(source, destination, 101, addresses.admin)

        assert source.amount == 100

    @pytest.mark.asyncio
    async def test_mint_mismatch(self, ledger, addresses):
        source = await ledger.deposit(addresses.admin, addresses.mint, 100)
        destination = await ledger.get_or_create_associated_account(addresses.other, addresses.other_mint)

        with pytest.raises(MintMismatch):
            await ledger.transfer(source, destination, 10, addresses.admin)

    @pytest.mark.asyncio
    async def test_self_transfer_rejected(self, ledger, addresses):
        source = await ledger.deposit(addresses.admin, addresses.mint, 100)
        with pytest.raises(TransferError):
            await ledger.transfer(source, source, 10, addresses.admin)


class TestVaultAuthority:
    """Tests for escrow vaults controlled by derived authorities."""

    async def _open_funded_vault(self, ledger, addresses, amount=1_000):
        authority = derive_schedule_authority(
            addresses.admin, addresses.beneficiary, addresses.mint, ledger.program_id
        )
        vault = derive_vault_address(authority.address, ledger.program_id)
        account = await ledger.open_vault(vault, authority, addresses.mint)
        account.amount = amount
        return authority, account

    @pytest.mark.asyncio
    async def test_vault_owned_by_schedule(self, ledger, addresses):
        authority, vault = await self._open_funded_vault(ledger, addresses)
        assert vault.owner == authority.address
        assert vault.mint == addresses.mint

    @pytest.mark.asyncio
    async def test_vault_cannot_be_opened_twice(self, ledger, addresses):
        authority, _ = await self._open_funded_vault(ledger, addresses)
        vault = derive_vault_address(authority.address, ledger.program_id)
        with pytest.raises(TransferError):
            await ledger.open_vault(vault, authority, addresses.mint)

    @pytest.mark.asyncio
    async def test_derived_authority_releases(self, ledger, addresses):
        authority, vault = await self._open_funded_vault(ledger, addresses)
        destination = await ledger.get_or_create_associated_account(addresses.beneficiary, addresses.mint)

        await ledger.transfer(vault, destination, 250, authority)

        assert vault.amount == 750
        assert destination.amount == 250

    @pytest.mark.asyncio
    async def test_admin_signature_cannot_drain_vault(self, ledger, addresses):
        """Only the schedule's derived authority controls the escrow."""
        _, vault = await self._open_funded_vault(ledger, addresses)
        destination = await ledger.get_or_create_associated_account(addresses.admin, addresses.mint)

        with pytest.raises(InvalidAuthority):
            await ledger.transfer(vault, destination, 250, addresses.admin)

        assert vault.amount == 1_000

    @pytest.mark.asyncio
    async def test_other_schedule_authority_rejected(self, ledger, addresses):
        _, vault = await self._open_funded_vault(ledger, addresses)
        stranger = derive_schedule_authority(
            addresses.admin, addresses.other, addresses.mint, ledger.program_id
        )
        destination = TokenAccount(address=addresses.other, mint=addresses.mint, owner=addresses.other, amount=0)

        with pytest.raises(InvalidAuthority):
            await ledger.transfer(vault, destination, 1, stranger)

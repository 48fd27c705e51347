"""Derived authorities: keyless, deterministic signing identities.

A derived address is the program address of a seed list under the program
id: a hash of the seeds and a bump byte that is not a valid Ed25519 point,
so no private key can exist for it. ``Pubkey.find_program_address`` searches
bumps from 255 downwards and returns the first (canonical) one. The bump is
stored with the schedule so any verifier can recompute the address from
public inputs alone.
"""
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from solders.pubkey import Pubkey

from token_vesting.constants import VAULT_SEED, VESTING_SEED
from token_vesting.errors import InvalidAddress, InvalidAuthority

MAX_SEED_LENGTH = 32
# The bump occupies the last of the 16 seed slots
MAX_SEEDS = 15


def to_pubkey(address: str) -> Pubkey:
    """Parse a base58 address, requiring exactly 32 bytes"""
    try:
        return Pubkey.from_string(address)
    except ValueError:
        raise InvalidAddress(details={"address": address})


def decode_address(address: str) -> bytes:
    return bytes(to_pubkey(address))


def encode_address(raw: bytes) -> str:
    return str(Pubkey.from_bytes(raw))


def is_on_curve(address: str) -> bool:
    """Whether the address is a usable Ed25519 public key"""
    return to_pubkey(address).is_on_curve()


def find_program_address(seeds: Sequence[bytes], program_id: str) -> Tuple[str, int]:
    """Find the canonical derived address and its bump"""
    if len(seeds) > MAX_SEEDS:
        raise ValueError(f"At most {MAX_SEEDS} seeds are allowed")
    for seed in seeds:
        if len(seed) > MAX_SEED_LENGTH:
            raise ValueError(f"Seed longer than {MAX_SEED_LENGTH} bytes")
    address, bump = Pubkey.find_program_address(list(seeds), to_pubkey(program_id))
    return str(address), bump


def vesting_seeds(admin: str, beneficiary: str, mint: str) -> list[bytes]:
    return [
        VESTING_SEED,
        decode_address(admin),
        decode_address(beneficiary),
        decode_address(mint),
    ]


def vault_seeds(schedule_address: str) -> list[bytes]:
    return [VAULT_SEED, decode_address(schedule_address)]


@dataclass(frozen=True)
class DerivedAuthority:
    """A derived address together with everything needed to prove it.

    Presented to the token ledger in place of a signature: the ledger calls
    ``verify()`` which recomputes the address from the seeds. Only canonical
    bumps are accepted, which is what schedule creation stores.
    """
    address: str
    seeds: Tuple[bytes, ...]
    bump: int
    program_id: str

    @classmethod
    def find(cls, seeds: Sequence[bytes], program_id: str) -> "DerivedAuthority":
        address, bump = find_program_address(seeds, program_id)
        return cls(address=address, seeds=tuple(seeds), bump=bump, program_id=program_id)

    @classmethod
    def from_bump(cls, seeds: Sequence[bytes], bump: int, program_id: str) -> "DerivedAuthority":
        """Re-derive from a stored bump, rejecting any non-canonical one"""
        authority = cls.find(seeds, program_id)
        if authority.bump != bump:
            raise InvalidAuthority(details={"bump": bump, "canonical_bump": authority.bump})
        return authority

    def signer_seeds(self) -> list[bytes]:
        return [*self.seeds, bytes([self.bump])]

    def verify(self, expected_program_id: Optional[str] = None) -> bool:
        """Recompute the address from public inputs and compare"""
        if expected_program_id is not None and expected_program_id != self.program_id:
            return False
        return find_program_address(self.seeds, self.program_id) == (self.address, self.bump)


def derive_schedule_authority(
    admin: str, beneficiary: str, mint: str, program_id: str, bump: Optional[int] = None
) -> DerivedAuthority:
    """Schedule address for an (admin, beneficiary, mint) triple.

    The schedule address doubles as the authority that owns the escrow vault.
    """
    seeds = vesting_seeds(admin, beneficiary, mint)
    if bump is None:
        return DerivedAuthority.find(seeds, program_id)
    return DerivedAuthority.from_bump(seeds, bump, program_id)


def derive_vault_address(
    schedule_address: str, program_id: str, bump: Optional[int] = None
) -> DerivedAuthority:
    """Escrow vault address for a schedule"""
    seeds = vault_seeds(schedule_address)
    if bump is None:
        return DerivedAuthority.find(seeds, program_id)
    return DerivedAuthority.from_bump(seeds, bump, program_id)

"""Vesting program constants"""

# Seeds for derived addresses
VESTING_SEED = b"vesting"
VAULT_SEED = b"vault"

# Schedule limits
MIN_VESTING_DURATION = 86_400  # 1 day
MAX_VESTING_DURATION = 315_360_000  # 10 years
MAX_CLIFF_PERCENTAGE = 50

# Integer widths of the ledger's fields
U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1
I64_MIN = -(2**63)
I64_MAX = 2**63 - 1

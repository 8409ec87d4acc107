"""orbit constants: cluster endpoints, program ids, seed labels."""

from solders.pubkey import Pubkey

CLUSTER_URLS: dict[str, str] = {
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
    "solana": "https://api.mainnet-beta.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "devnet": "https://api.devnet.solana.com",
    "solana-test": "https://api.devnet.solana.com",
    "localnet": "http://127.0.0.1:8899",
}

SUPPORTED_CHAINS = {"solana"}

MAINNET_PROFILE = "solana"
TESTNET_PROFILE = "solana-test"

SYSTEM_PROGRAM_ID = Pubkey.from_string("11111111111111111111111111111111")
TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL")
INSTRUCTIONS_SYSVAR_ID = Pubkey.from_string("Sysvar1nstructions1111111111111111111111111")

# Compute unit limit for operations that relay through xcall.
RELAY_COMPUTE_UNITS = 1_000_000

# Seed labels, shared by all programs in the protocol.
SEED_STATE = b"state"
SEED_CONFIG = b"config"
SEED_VAULT = b"vault"
SEED_VAULT_NATIVE = b"vault_native"
SEED_DAPP_AUTHORITY = b"dapp_authority"
SEED_TOKEN_STATE = b"token_state"
SEED_BNUSD_AUTHORITY = b"bnusd_authority"
SEED_ROLLBACK = b"rollback"
SEED_PROXY = b"proxy"
SEED_FEE = b"fee"
SEED_RECEIPT = b"receipt"
SEED_CONNECTION_AUTHORITY = b"connection_authority"

# Widths of big-endian numeric seeds.
SMALL_INDEX_WIDTH = 8
SEQUENCE_WIDTH = 16

# Instruction tag for CreateIdempotent in the associated token program.
ATA_CREATE_IDEMPOTENT = 1

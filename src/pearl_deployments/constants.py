"""Configuration constants for pearl-deployments library."""

# Deterministic deployment proxy (CREATE2 factory) used for salted deployments.
# Calldata is salt (32 bytes) followed by the init code.
DETERMINISTIC_DEPLOYER = "0x4e59b44847b379578588920cA78FbF26c0B4956C"

# EIP-1167 minimal proxy init code:
#   constructor prologue (10) | trampoline head (10) | implementation (20) | trampoline tail (15)
MINIMAL_PROXY_INIT_CODE_PREFIX = bytes.fromhex(
    "3d602d80600a3d3981f3" "363d3d373d3d3d363d73"
)
MINIMAL_PROXY_INIT_CODE_SUFFIX = bytes.fromhex("5af43d82803e903d91602b57fd5bf3")
MINIMAL_PROXY_IMPLEMENTATION_OFFSET = len(MINIMAL_PROXY_INIT_CODE_PREFIX)
MINIMAL_PROXY_INIT_CODE_LENGTH = (
    MINIMAL_PROXY_IMPLEMENTATION_OFFSET + 20 + len(MINIMAL_PROXY_INIT_CODE_SUFFIX)
)

# Pool constructor arguments hashed into the pool salt
POOL_SALT_TYPES = ["address", "address", "uint24"]
UINT24_MAX = 2**24 - 1

# Plain value transfer; used for the nonce-gap self-heal transaction
TRANSFER_GAS = 21_000

# Replacement transactions must outbid the stuck one
REPLACEMENT_GAS_PRICE_BUMP_PERCENT = 25

# Node gas estimates are padded by this factor
GAS_ESTIMATE_MULTIPLIER = 1.2

DEFAULT_CONFIRMATION_TIMEOUT = 300.0
DEFAULT_POLL_INTERVAL = 2.0

# Networks where the plan deploys its own WETH9 instead of reading it from the book
LOCAL_NETWORKS = ("hardhat", "localhost")

# Networks the contracts are deployed to.
# "rpc_env" names the environment variable holding the RPC endpoint.
NETWORK_CONFIG = {
    "hardhat": {
        "chain_id": 31337,
        "rpc_env": "HARDHAT_RPC_URL",
        "default_rpc_url": "http://127.0.0.1:8545",
    },
    "localhost": {
        "chain_id": 31337,
        "rpc_env": "LOCALHOST_RPC_URL",
        "default_rpc_url": "http://127.0.0.1:8545",
    },
    "mainnet": {
        "chain_id": 1,
        "rpc_env": "MAINNET_RPC_URL",
        "infura_url": "https://mainnet.infura.io/v3/{key}",
    },
    "polygon": {
        "chain_id": 137,
        "rpc_env": "POLYGON_RPC_URL",
        "infura_url": "https://polygon-mainnet.infura.io/v3/{key}",
    },
    "mumbai": {
        "chain_id": 80001,
        "rpc_env": "MUMBAI_RPC_URL",
        "gas_price": 20 * 10**9,
        "gas_limit": 25_000_000,
    },
    "unreal": {
        "chain_id": 18233,
        "rpc_env": "UNREAL_RPC_URL",
        "gas_price": 20 * 10**9,
        "gas_limit": 25_000_000,
    },
    "arbitrumSepolia": {
        "chain_id": 421614,
        "rpc_env": "ARBITRUM_SEPOLIA_RPC_URL",
    },
    "holesky": {
        "chain_id": 17000,
        "rpc_env": "HOLESKY_RPC_URL",
    },
}

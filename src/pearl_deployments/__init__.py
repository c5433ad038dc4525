"""
pearl-deployments: deterministic address derivation and idempotent deployment
orchestration for Pearl periphery contracts
"""

from importlib.metadata import PackageNotFoundError, version

from .address_book import InMemoryAddressBook, JsonAddressBook
from .create2 import (
    build_minimal_proxy_init_code,
    compute_create2_address,
    compute_create_address,
    compute_pool_address,
    compute_salt,
    derive_address,
    sort_tokens,
)
from .exceptions import (
    AddressConflictError,
    ArtifactNotFoundError,
    ConfigurationError,
    ConfirmationTimeoutError,
    CorruptedFileError,
    DeploymentError,
    InvalidInputKindError,
    MissingDependencyError,
    NetworkNotFoundError,
    NonceGapDetectedError,
    NonceLeaseError,
    PlanNotFoundError,
    RpcError,
    TransactionFailedError,
    UnresolvedLibraryReferenceError,
)
from .orchestrator import DeploymentOrchestrator
from .types import DeploymentReport, DeploymentSpec, PendingTransactionState, Ref, StepState

try:
    __version__ = version("pearl-deployments")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "DeploymentOrchestrator",
    "DeploymentSpec",
    "DeploymentReport",
    "PendingTransactionState",
    "Ref",
    "StepState",
    "InMemoryAddressBook",
    "JsonAddressBook",
    "build_minimal_proxy_init_code",
    "compute_create2_address",
    "compute_create_address",
    "compute_pool_address",
    "compute_salt",
    "derive_address",
    "sort_tokens",
    "DeploymentError",
    "InvalidInputKindError",
    "UnresolvedLibraryReferenceError",
    "MissingDependencyError",
    "ConfirmationTimeoutError",
    "NonceGapDetectedError",
    "NonceLeaseError",
    "TransactionFailedError",
    "RpcError",
    "AddressConflictError",
    "ArtifactNotFoundError",
    "NetworkNotFoundError",
    "ConfigurationError",
    "PlanNotFoundError",
    "CorruptedFileError",
]

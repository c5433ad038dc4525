"""Custom exception classes for pearl-deployments library."""


class DeploymentError(Exception):
    """Base exception for deployment-related errors."""

    pass


class InvalidInputKindError(DeploymentError, ValueError):
    """Raised when address derivation inputs don't match the expected encoding."""

    pass


class UnresolvedLibraryReferenceError(DeploymentError, ValueError):
    """Raised when a library placeholder has no resolved address to link."""

    pass


class MissingDependencyError(DeploymentError, LookupError):
    """Raised when a referenced contract is not yet in the address book."""

    pass


class ConfirmationTimeoutError(DeploymentError, TimeoutError):
    """Raised when a submitted transaction is not confirmed in time."""

    pass


class NonceGapDetectedError(ConfirmationTimeoutError):
    """Raised when a stalled nonce could not be healed before the timeout."""

    pass


class NonceLeaseError(DeploymentError, RuntimeError):
    """Raised when the signer nonce is already leased by another submission."""

    pass


class TransactionFailedError(DeploymentError, RuntimeError):
    """Raised when a deployment transaction is mined but reverted."""

    pass


class RpcError(DeploymentError, RuntimeError):
    """Raised when the JSON-RPC node returns an error or can't be reached."""

    def __init__(self, message: str, code=None):
        super().__init__(message)
        self.code = code


class AddressConflictError(DeploymentError, ValueError):
    """Raised when an address book entry would be overwritten with a different address."""

    pass


class ArtifactNotFoundError(DeploymentError, FileNotFoundError):
    """Raised when a compiled contract artifact is not found."""

    pass


class NetworkNotFoundError(DeploymentError, ValueError):
    """Raised when requested network is not configured."""

    pass


class ConfigurationError(DeploymentError, ValueError):
    """Raised when required settings (RPC URL, credentials) are missing."""

    pass


class PlanNotFoundError(DeploymentError, FileNotFoundError):
    """Raised when a deployment plan file is not found."""

    pass


class CorruptedFileError(DeploymentError, ValueError):
    """Raised when an address book, plan or artifact file is not valid JSON."""

    pass

"""Signer handle owning the deployment account's nonce."""

import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount

from .exceptions import ConfigurationError, NonceLeaseError


class SignerHandle:
    """
    Exclusive owner of an account's transaction nonce for one run.

    A nonce is handed out through acquire(), a non-blocking lease: while a
    lease is held any other acquire() fails with NonceLeaseError. The next
    nonce advances only when the lease body completes without raising.
    """

    def __init__(self, account: LocalAccount):
        self.account = account
        self._lock = threading.Lock()
        self._next_nonce: Optional[int] = None

    @classmethod
    def from_private_key(cls, private_key: str) -> "SignerHandle":
        return cls(Account.from_key(private_key))

    @classmethod
    def from_mnemonic(cls, mnemonic: str, account_path: str = "m/44'/60'/0'/0/0") -> "SignerHandle":
        Account.enable_unaudited_hdwallet_features()
        return cls(Account.from_mnemonic(mnemonic, account_path=account_path))

    @classmethod
    def from_credentials(
        cls, private_key: Optional[str] = None, mnemonic: Optional[str] = None
    ) -> "SignerHandle":
        """
        Build a signer from a private key, falling back to a mnemonic.

        Raises:
            ConfigurationError: If neither is given
        """
        if private_key:
            return cls.from_private_key(private_key)
        if mnemonic:
            return cls.from_mnemonic(mnemonic)
        raise ConfigurationError("Signer credentials required: set $PRIVATE_KEY or $MNEMONIC")

    @property
    def address(self) -> str:
        return self.account.address

    @property
    def next_nonce(self) -> Optional[int]:
        return self._next_nonce

    @property
    def leased(self) -> bool:
        return self._lock.locked()

    def sync(self, nonce: int) -> None:
        """Set the next nonce from the chain's transaction count."""
        if self.leased:
            raise NonceLeaseError("Cannot resync nonce while a lease is held")
        self._next_nonce = nonce

    @contextmanager
    def acquire(self, nonce: Optional[int] = None) -> Iterator[int]:
        """
        Lease a nonce for one submission.

        Args:
            nonce: Explicit nonce (e.g., to replace a stuck transaction);
                defaults to the next nonce

        Yields:
            The leased nonce

        Raises:
            NonceLeaseError: If a lease is already held or the nonce was never synced
        """
        if not self._lock.acquire(blocking=False):
            raise NonceLeaseError(f"Nonce of {self.address} is already leased")
        try:
            leased = nonce if nonce is not None else self._next_nonce
            if leased is None:
                raise NonceLeaseError(f"Nonce of {self.address} was never synced")
            yield leased
            self._next_nonce = leased + 1
        finally:
            self._lock.release()

    def sign_transaction(self, tx: Dict[str, Any]) -> bytes:
        """Sign a transaction dict and return the raw bytes to broadcast."""
        return bytes(self.account.sign_transaction(tx).raw_transaction)

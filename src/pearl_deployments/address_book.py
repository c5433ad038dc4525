"""Address book persistence for pearl-deployments library."""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from eth_utils import to_checksum_address

from .create2 import canonical_address
from .exceptions import AddressConflictError, CorruptedFileError
from .paths import get_address_book_path

logger = logging.getLogger(__name__)


def load_address_book(book_path: Path) -> Dict[str, str]:
    """
    Load an address book file or return an empty dict.

    Args:
        book_path: Path to addresses.<network>.json

    Returns:
        Dictionary mapping contract name -> address
        Empty dict if the file doesn't exist

    Raises:
        CorruptedFileError: If the file is not valid JSON
    """
    try:
        with open(book_path) as f:
            return json.load(f)
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError as e:
        raise CorruptedFileError(f"Address book {book_path} is corrupted: {e}") from e


def save_address_book(addresses: Dict[str, str], book_path: Path) -> None:
    """
    Save an address book to disk.

    Writes to a temporary file and renames it over the target.

    Args:
        addresses: Contract name -> address
        book_path: Path to addresses.<network>.json

    Creates parent directories if they don't exist.
    """
    book_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = book_path.with_name(book_path.name + ".tmp")
    with open(tmp_path, "w") as f:
        json.dump(addresses, f, indent=2)
        f.write("\n")
    os.replace(tmp_path, book_path)


class InMemoryAddressBook:
    """
    Name -> address mapping for one network.

    Entries are append-only: recording a different address for a name that
    is already present raises AddressConflictError. Only forget()/clear()
    remove entries.
    """

    def __init__(self, network: str, addresses: Optional[Dict[str, str]] = None):
        self.network = network
        self._addresses: Dict[str, str] = {}
        for name, address in (addresses or {}).items():
            self._addresses[name] = to_checksum_address(canonical_address(address))

    def __contains__(self, name: str) -> bool:
        return name in self._addresses

    def __iter__(self) -> Iterator[str]:
        return iter(self._addresses)

    def __len__(self) -> int:
        return len(self._addresses)

    def get(self, name: str) -> Optional[str]:
        return self._addresses.get(name)

    def as_dict(self) -> Dict[str, str]:
        return dict(self._addresses)

    def record(self, name: str, address: str) -> str:
        """
        Record the address a contract was deployed to and persist it.

        Args:
            name: Logical contract name
            address: Deployed address

        Returns:
            The checksummed address stored

        Raises:
            AddressConflictError: If name already maps to another address
        """
        address = to_checksum_address(canonical_address(address))
        existing = self._addresses.get(name)
        if existing is not None:
            if existing != address:
                raise AddressConflictError(
                    f"'{name}' is already recorded at {existing} on {self.network}; "
                    f"refusing to overwrite with {address}"
                )
            return existing

        self._addresses[name] = address
        self._persist()
        logger.info("Recorded %s at %s on %s", name, address, self.network)
        return address

    def forget(self, name: str) -> bool:
        """Remove one entry (operator reset). Returns whether it existed."""
        if name not in self._addresses:
            return False
        del self._addresses[name]
        self._persist()
        logger.info("Forgot %s on %s", name, self.network)
        return True

    def clear(self) -> None:
        """Remove every entry (operator reset)."""
        self._addresses.clear()
        self._persist()

    def _persist(self) -> None:
        pass


class JsonAddressBook(InMemoryAddressBook):
    """Address book backed by addresses.<network>.json, rewritten on every change."""

    def __init__(self, network: str, book_path: Optional[Union[Path, str]] = None):
        self.path = Path(book_path) if book_path is not None else get_address_book_path(network)
        super().__init__(network, load_address_book(self.path))

    @classmethod
    def for_network(
        cls, network: str, addresses_dir: Optional[Union[Path, str]] = None
    ) -> "JsonAddressBook":
        return cls(network, get_address_book_path(network, addresses_dir))

    def _persist(self) -> None:
        save_address_book(self._addresses, self.path)

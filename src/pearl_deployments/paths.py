"""Path management utilities for pearl-deployments library."""

from pathlib import Path
from typing import Optional, Union


def get_default_addresses_dir() -> Path:
    """
    Get default directory holding address books.

    Returns:
        The current working directory
    """
    return Path.cwd()


def get_default_artifacts_dir() -> Path:
    """
    Get default compiled artifacts directory.

    Returns:
        Path to ./artifacts
    """
    return Path.cwd() / "artifacts"


def get_address_book_path(
    network: str, addresses_dir: Optional[Union[Path, str]] = None
) -> Path:
    """
    Get the address book file for a network.

    Args:
        network: Network name (e.g., "mumbai")
        addresses_dir: Custom directory (defaults to the current directory)

    Returns:
        Absolute path to addresses.<network>.json
    """
    if addresses_dir is None:
        addresses_dir = get_default_addresses_dir()
    else:
        addresses_dir = Path(addresses_dir).absolute()

    return addresses_dir / f"addresses.{network}.json"

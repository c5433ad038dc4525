"""Library linking for compiled contract bytecode."""

import logging
import re
from typing import List, Mapping, Optional

from eth_utils import keccak

from .create2 import canonical_address
from .exceptions import UnresolvedLibraryReferenceError
from .types import ContractArtifact

logger = logging.getLogger(__name__)

# Solidity >=0.5 placeholder: __$<34 hex chars of keccak(fully qualified name)>$__
PLACEHOLDER_PATTERN = re.compile(r"__\$[0-9a-fA-F]{34}\$__")


def library_placeholder(fully_qualified_name: str) -> str:
    """
    Placeholder the compiler leaves in bytecode for an unlinked library.

    Args:
        fully_qualified_name: e.g. "contracts/libraries/NFTDescriptor.sol:NFTDescriptor"
    """
    return f"__${keccak(text=fully_qualified_name).hex()[:34]}$__"


def _lookup_library(
    libraries: Mapping[str, str], source_name: str, library_name: str
) -> Optional[str]:
    fully_qualified = f"{source_name}:{library_name}"
    if fully_qualified in libraries:
        return libraries[fully_qualified]
    return libraries.get(library_name)


def unlinked_placeholders(bytecode: str) -> List[str]:
    """Return the link placeholders still present in bytecode."""
    found = PLACEHOLDER_PATTERN.findall(bytecode)
    if not found and "_" in bytecode:
        found = [bytecode[bytecode.index("_") :][:40]]
    return found


def link_bytecode(artifact: ContractArtifact, libraries: Mapping[str, str]) -> str:
    """
    Substitute library addresses into an artifact's bytecode.

    Link references from the artifact (byte offsets) are applied first;
    remaining placeholders are matched against fully qualified library names.

    Args:
        artifact: Compiled contract
        libraries: Library name (simple or "source.sol:Name") -> address

    Returns:
        0x-prefixed bytecode with every placeholder replaced

    Raises:
        UnresolvedLibraryReferenceError: If a placeholder has no address
        InvalidInputKindError: If a supplied library address is malformed
    """
    code = artifact.bytecode[2:] if artifact.bytecode.startswith("0x") else artifact.bytecode

    for source_name, libs in artifact.link_references.items():
        for library_name, offsets in libs.items():
            address = _lookup_library(libraries, source_name, library_name)
            if address is None:
                raise UnresolvedLibraryReferenceError(
                    f"{artifact.name} requires library {source_name}:{library_name} "
                    "but no address was resolved for it"
                )
            address_hex = canonical_address(address, f"{library_name} address").hex()
            for offset in offsets:
                start = offset["start"] * 2
                end = start + offset["length"] * 2
                code = code[:start] + address_hex + code[end:]
            logger.debug("Linked %s into %s at %d offset(s)", library_name, artifact.name, len(offsets))

    for name, address in libraries.items():
        if ":" not in name:
            continue
        placeholder = library_placeholder(name)
        if placeholder in code:
            code = code.replace(placeholder, canonical_address(address, f"{name} address").hex())

    remaining = unlinked_placeholders(code)
    if remaining:
        raise UnresolvedLibraryReferenceError(
            f"{artifact.name} has unlinked library placeholders: {', '.join(sorted(set(remaining)))}"
        )

    return "0x" + code

"""Compiled contract artifact loading for pearl-deployments library."""

import json
from pathlib import Path
from typing import Dict, Optional, Union

from .exceptions import ArtifactNotFoundError, CorruptedFileError, DeploymentError
from .types import ContractArtifact


def parse_artifact(file_path: Path) -> ContractArtifact:
    """
    Parse a compiled contract artifact.

    Two layouts are understood:
    * Hardhat: {"contractName", "sourceName", "abi", "bytecode": "0x..", "linkReferences"}
    * Foundry: {"abi", "bytecode": {"object": "0x..", "linkReferences"}}

    Args:
        file_path: Path to artifact JSON file

    Returns:
        ContractArtifact

    Raises:
        CorruptedFileError: If the file is not valid JSON
        DeploymentError: If the artifact carries no deployable bytecode
    """
    try:
        with open(file_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise CorruptedFileError(f"Artifact {file_path} is not valid JSON: {e}") from e

    name = data.get("contractName") or file_path.stem
    bytecode = data.get("bytecode")
    link_references = data.get("linkReferences", {})

    # Foundry nests link references inside the bytecode object
    if isinstance(bytecode, dict):
        link_references = bytecode.get("linkReferences", link_references)
        bytecode = bytecode.get("object")

    if not bytecode or bytecode in ("0x", "0x0"):
        raise DeploymentError(f"Artifact {file_path} has no deployable bytecode")
    if not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode

    return ContractArtifact(
        name=name,
        abi=data.get("abi", []),
        bytecode=bytecode,
        link_references=link_references or {},
        source_name=data.get("sourceName"),
    )


class ArtifactStore:
    """Looks up compiled artifacts by contract name under an artifacts directory."""

    def __init__(
        self,
        artifacts_dir: Union[Path, str],
        preloaded: Optional[Dict[str, ContractArtifact]] = None,
    ):
        self.artifacts_dir = Path(artifacts_dir)
        self._cache: Dict[str, ContractArtifact] = dict(preloaded or {})

    def _find(self, name: str) -> Path:
        # Fully qualified: contracts/Foo.sol:Foo -> <dir>/contracts/Foo.sol/Foo.json
        if ":" in name:
            source_name, contract_name = name.rsplit(":", 1)
            path = self.artifacts_dir / source_name / f"{contract_name}.json"
            if path.exists():
                return path
            raise ArtifactNotFoundError(f"Artifact for '{name}' not found at {path}")

        candidates = sorted(
            path
            for path in self.artifacts_dir.rglob(f"{name}.json")
            if "build-info" not in path.parts
        )
        if not candidates:
            raise ArtifactNotFoundError(
                f"Artifact for '{name}' not found under {self.artifacts_dir}"
            )
        if len(candidates) > 1:
            raise DeploymentError(
                f"Multiple artifacts named '{name}': "
                + ", ".join(str(path) for path in candidates)
                + ". Use the fully qualified name."
            )
        return candidates[0]

    def load(self, name: str) -> ContractArtifact:
        """
        Load an artifact by contract name.

        Args:
            name: Contract name or fully qualified "source.sol:Name"

        Raises:
            ArtifactNotFoundError: If no artifact exists for the name
        """
        if name not in self._cache:
            self._cache[name] = parse_artifact(self._find(name))
        return self._cache[name]

"""Unit tests for artifact loading."""

import json
from pathlib import Path

import pytest

from pearl_deployments.artifacts import ArtifactStore, parse_artifact
from pearl_deployments.exceptions import ArtifactNotFoundError, CorruptedFileError, DeploymentError


class TestParseArtifact:
    """Test the parse_artifact function."""

    def test_parses_hardhat_artifact(self, artifacts_dir: Path):
        path = (
            artifacts_dir
            / "contracts"
            / "NonfungibleTokenPositionDescriptor.sol"
            / "NonfungibleTokenPositionDescriptor.json"
        )
        artifact = parse_artifact(path)

        assert artifact.name == "NonfungibleTokenPositionDescriptor"
        assert artifact.source_name == "contracts/NonfungibleTokenPositionDescriptor.sol"
        assert artifact.bytecode.startswith("0x6080")
        assert artifact.link_references == {
            "contracts/libraries/NFTDescriptor.sol": {
                "NFTDescriptor": [{"length": 20, "start": 3}]
            }
        }
        assert artifact.abi[0]["type"] == "constructor"

    def test_parses_foundry_artifact(self, fixtures_dir: Path):
        artifact = parse_artifact(fixtures_dir / "foundry" / "PearlV2Pool.json")

        assert artifact.name == "PearlV2Pool"
        assert artifact.bytecode.startswith("0x60806040")
        assert "src/libraries/SwapMathV2.sol" in artifact.link_references

    def test_adds_missing_hex_prefix(self, tmp_path: Path):
        path = tmp_path / "Thing.json"
        path.write_text(json.dumps({"abi": [], "bytecode": "6080"}))
        assert parse_artifact(path).bytecode == "0x6080"

    @pytest.mark.parametrize("bytecode", ["0x", "", None])
    def test_rejects_missing_bytecode(self, tmp_path: Path, bytecode):
        """Test that interfaces and abstract contracts are rejected."""
        path = tmp_path / "IThing.json"
        path.write_text(json.dumps({"abi": [], "bytecode": bytecode}))
        with pytest.raises(DeploymentError):
            parse_artifact(path)

    def test_rejects_invalid_json(self, tmp_path: Path):
        path = tmp_path / "Thing.json"
        path.write_text("{ truncated")
        with pytest.raises(CorruptedFileError, match="Thing.json"):
            parse_artifact(path)


class TestArtifactStore:
    """Test the ArtifactStore class."""

    def test_finds_by_contract_name(self, artifact_store: ArtifactStore):
        assert artifact_store.load("QuoterV2").name == "QuoterV2"

    def test_ignores_build_info(self, artifact_store: ArtifactStore):
        """Test that build-info files with the same stem are not artifacts."""
        assert artifact_store.load("SwapRouter").source_name == "contracts/SwapRouter.sol"

    def test_finds_by_fully_qualified_name(self, artifact_store: ArtifactStore):
        artifact = artifact_store.load("contracts/libraries/NFTDescriptor.sol:NFTDescriptor")
        assert artifact.name == "NFTDescriptor"

    def test_missing_artifact(self, artifact_store: ArtifactStore):
        with pytest.raises(ArtifactNotFoundError):
            artifact_store.load("DoesNotExist")

    def test_missing_fully_qualified_artifact(self, artifact_store: ArtifactStore):
        with pytest.raises(ArtifactNotFoundError):
            artifact_store.load("contracts/Nope.sol:Nope")

    def test_missing_artifact_is_file_not_found(self, artifact_store: ArtifactStore):
        with pytest.raises(FileNotFoundError):
            artifact_store.load("DoesNotExist")

    def test_ambiguous_name(self, tmp_path: Path):
        for source in ("a", "b"):
            directory = tmp_path / source / "Token.sol"
            directory.mkdir(parents=True)
            (directory / "Token.json").write_text(json.dumps({"abi": [], "bytecode": "0x6080"}))

        with pytest.raises(DeploymentError) as exc_info:
            ArtifactStore(tmp_path).load("Token")
        assert "fully qualified" in str(exc_info.value)

    def test_caches_loaded_artifacts(self, artifact_store: ArtifactStore):
        assert artifact_store.load("QuoterV2") is artifact_store.load("QuoterV2")

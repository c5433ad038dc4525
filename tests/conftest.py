"""Shared pytest fixtures for pearl-deployments tests."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import pytest
import rlp
from eth_account import Account
from eth_utils import encode_hex, keccak, to_checksum_address

from pearl_deployments.address_book import InMemoryAddressBook
from pearl_deployments.artifacts import ArtifactStore
from pearl_deployments.config import DeploySettings
from pearl_deployments.constants import DETERMINISTIC_DEPLOYER
from pearl_deployments.create2 import compute_create2_address, compute_create_address
from pearl_deployments.exceptions import RpcError
from pearl_deployments.orchestrator import DeploymentOrchestrator
from pearl_deployments.signer import SignerHandle

# Throwaway key, never funded anywhere
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"

FACTORY_ADDRESS = to_checksum_address("0x1f98431c8ad98523631ae4a59f267346ea31f984")
WETH_ADDRESS = to_checksum_address("0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2")


class FakeChain:
    """
    In-process stand-in for a JSON-RPC node with a single sending account.

    Signed transactions are decoded with rlp. A transaction is mined once
    its nonce equals the confirmed count; mining can be delayed by
    `confirm_delay` polls or suppressed with `hold`.
    """

    def __init__(self, chain_id: int = 31337, latest: int = 0, pending: Optional[int] = None):
        self.chain_id_value = chain_id
        self.latest = latest
        self.pending = latest if pending is None else pending
        self.code: Dict[str, str] = {}
        self.receipts: Dict[str, Dict[str, Any]] = {}
        self.sent: List[Dict[str, Any]] = []
        self.revert_nonces: Set[int] = set()
        self.confirm_delay = 0
        self.hold = False
        # Simulates the stuck transaction behind a healed one mining by itself
        self.release_queue_after_heal = False
        self._queue: List[Dict[str, Any]] = []

    # JsonRpcClient surface

    def chain_id(self) -> int:
        return self.chain_id_value

    def get_transaction_count(self, address: str, block: str = "latest") -> int:
        self._advance()
        return self.latest if block == "latest" else self.pending

    def get_balance(self, address: str) -> int:
        return 10**18

    def gas_price(self) -> int:
        return 10**9

    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        return 1_000_000

    def get_code(self, address: str) -> str:
        return self.code.get(address.lower(), "0x")

    def send_raw_transaction(self, raw_transaction: bytes) -> str:
        nonce_bytes, gas_price, gas, to, value, data, _v, _r, _s = rlp.decode(raw_transaction)
        nonce = int.from_bytes(nonce_bytes, "big")
        if nonce < self.latest:
            raise RpcError("nonce too low", code=-32000)

        tx_hash = encode_hex(keccak(raw_transaction))
        tx = {
            "hash": tx_hash,
            "from": Account.recover_transaction(raw_transaction),
            "nonce": nonce,
            "to": to_checksum_address(to) if to else None,
            "data": bytes(data),
            "gas": int.from_bytes(gas, "big"),
            "gas_price": int.from_bytes(gas_price, "big"),
            "value": int.from_bytes(value, "big"),
            "wait": self.confirm_delay,
        }
        self.sent.append(tx)
        self.pending = max(self.pending, nonce + 1)

        if not self.hold:
            if tx["wait"] == 0:
                self._mine(tx)
            else:
                self._queue.append(tx)
        return tx_hash

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        self._advance()
        return self.receipts.get(tx_hash)

    # Simulation

    def _advance(self) -> None:
        for tx in list(self._queue):
            tx["wait"] -= 1
            if tx["wait"] <= 0:
                self._queue.remove(tx)
                self._mine(tx)

    def _mine(self, tx: Dict[str, Any]) -> None:
        self.latest = max(self.latest, tx["nonce"] + 1)
        self.pending = max(self.pending, self.latest)
        if self.release_queue_after_heal and not tx["data"]:
            self.latest = self.pending

        receipt = {
            "transactionHash": tx["hash"],
            "status": 1,
            "blockNumber": len(self.receipts) + 1,
            "contractAddress": None,
        }
        if tx["nonce"] in self.revert_nonces:
            receipt["status"] = 0
        elif tx["to"] and tx["to"].lower() == DETERMINISTIC_DEPLOYER.lower():
            salt, init_code = tx["data"][:32], tx["data"][32:]
            address = compute_create2_address(DETERMINISTIC_DEPLOYER, salt, keccak(init_code))
            self.code[address.lower()] = encode_hex(init_code)
        elif tx["to"] is None:
            address = compute_create_address(tx["from"], tx["nonce"])
            self.code[address.lower()] = encode_hex(tx["data"])
            receipt["contractAddress"] = address
        self.receipts[tx["hash"]] = receipt

    @property
    def deployments(self) -> List[Dict[str, Any]]:
        return [tx for tx in self.sent if tx["data"]]

    @property
    def heals(self) -> List[Dict[str, Any]]:
        return [tx for tx in self.sent if not tx["data"]]


class FakeClock:
    """Monotonic clock that only moves when sleep() is called."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def artifacts_dir(fixtures_dir: Path) -> Path:
    """Return the path to the sample Hardhat artifacts."""
    return fixtures_dir / "artifacts"


@pytest.fixture
def artifact_store(artifacts_dir: Path) -> ArtifactStore:
    return ArtifactStore(artifacts_dir)


@pytest.fixture
def signer() -> SignerHandle:
    return SignerHandle.from_private_key(TEST_PRIVATE_KEY)


@pytest.fixture
def fake_chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def address_book() -> InMemoryAddressBook:
    """Book holding the contracts the periphery plan expects to exist."""
    return InMemoryAddressBook(
        "hardhat", {"PearlV2Factory": FACTORY_ADDRESS}
    )


@pytest.fixture
def deploy_settings(tmp_path: Path, artifacts_dir: Path) -> DeploySettings:
    return DeploySettings(
        network="hardhat",
        chain_id=31337,
        rpc_url="http://127.0.0.1:8545",
        confirmation_timeout=10,
        poll_interval=1,
        addresses_dir=tmp_path,
        artifacts_dir=artifacts_dir,
    )


@pytest.fixture
def make_orchestrator(fake_chain, signer, artifact_store, deploy_settings, fake_clock):
    """Factory building an orchestrator wired to the fake chain and clock."""

    def _make(book, **overrides) -> DeploymentOrchestrator:
        for key, value in overrides.items():
            setattr(deploy_settings, key, value)
        return DeploymentOrchestrator(
            fake_chain,
            signer,
            book,
            artifact_store,
            deploy_settings,
            clock=fake_clock,
            sleep=fake_clock.sleep,
        )

    return _make


@pytest.fixture
def address_book_file(tmp_path: Path) -> Path:
    """Create a temporary addresses.hardhat.json with the factory recorded."""
    book_path = tmp_path / "addresses.hardhat.json"
    with open(book_path, "w") as f:
        json.dump({"PearlV2Factory": FACTORY_ADDRESS}, f, indent=2)
    return book_path

"""Deployment orchestration for pearl-deployments library."""

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from eth_utils import decode_hex, encode_hex, keccak

from .address_book import InMemoryAddressBook
from .artifacts import ArtifactStore
from .config import DeploySettings
from .constants import (
    DETERMINISTIC_DEPLOYER,
    GAS_ESTIMATE_MULTIPLIER,
    REPLACEMENT_GAS_PRICE_BUMP_PERCENT,
    TRANSFER_GAS,
)
from .create2 import (
    build_minimal_proxy_init_code,
    compute_create2_address,
    compute_create_address,
    normalize_salt,
)
from .encoding import encode_constructor_args
from .exceptions import (
    DeploymentError,
    InvalidInputKindError,
    MissingDependencyError,
    NonceGapDetectedError,
    TransactionFailedError,
    UnresolvedLibraryReferenceError,
)
from .linking import link_bytecode
from .rpc import JsonRpcClient, wait_for_receipt
from .signer import SignerHandle
from .types import (
    DeploymentReport,
    DeploymentSpec,
    PendingTransactionState,
    Ref,
    StepOutcome,
    StepState,
    SubmittedTransaction,
)

logger = logging.getLogger(__name__)


class DeploymentOrchestrator:
    """
    Runs deployment specs in declaration order against one network.

    Each step goes UNRESOLVED -> ADDRESS_KNOWN when its name is already in
    the address book, otherwise UNRESOLVED -> SUBMITTING -> CONFIRMED, and
    the address is persisted before the next step starts. Before any step
    the signer's nonce gap (pending > latest) is healed with zero-value
    self-transactions.

    Args:
        rpc: Client exposing the JsonRpcClient methods
        signer: Owner of the deployment account's nonce
        address_book: InMemoryAddressBook or JsonAddressBook for the network
        artifacts: Compiled artifact lookup
        settings: Network and operator settings
        clock: Monotonic clock (injectable for tests)
        sleep: Sleep function (injectable for tests)
    """

    def __init__(
        self,
        rpc: JsonRpcClient,
        signer: SignerHandle,
        address_book: InMemoryAddressBook,
        artifacts: ArtifactStore,
        settings: DeploySettings,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._rpc = rpc
        self._signer = signer
        self._book = address_book
        self._artifacts = artifacts
        self._settings = settings
        self._clock = clock
        self._sleep = sleep
        self._states: Dict[str, StepState] = {}
        # Dry run only: addresses steps would occupy
        self._planned: Dict[str, str] = {}

    def state_of(self, name: str) -> Optional[StepState]:
        return self._states.get(name)

    def _transition(self, name: str, state: StepState) -> None:
        logger.debug("%s: %s -> %s", name, self._states.get(name, StepState.UNRESOLVED).value, state.value)
        self._states[name] = state

    # Nonce gap guard

    def read_nonce_state(self) -> PendingTransactionState:
        """Read confirmed and pending transaction counts for the signer."""
        address = self._signer.address
        return PendingTransactionState(
            latest=self._rpc.get_transaction_count(address, "latest"),
            pending=self._rpc.get_transaction_count(address, "pending"),
        )

    def resolve_nonce_gap(self, report: DeploymentReport) -> PendingTransactionState:
        """
        Heal stalled nonces and sync the signer to the confirmed count.

        While pending > latest, a zero-value self-transaction is sent at
        nonce `latest` and the run blocks until the confirmed count moves
        past it. Counts are re-read after each heal, and no more heals than
        the initial gap are sent.

        Raises:
            NonceGapDetectedError: If a heal doesn't confirm in time or the
                gap persists after healing
        """
        state = self.read_nonce_state()
        report.nonce_state = state

        if state.has_gap:
            logger.warning(
                "Nonce gap for %s: latest=%d pending=%d",
                self._signer.address,
                state.latest,
                state.pending,
            )
            if self._settings.dry_run:
                logger.info("Dry run: not healing nonce gap")
                self._signer.sync(state.pending)
                return state

            budget = state.gap
            while state.has_gap and budget > 0:
                self._heal(state.latest, report)
                budget -= 1
                state = self.read_nonce_state()

            if state.has_gap:
                raise NonceGapDetectedError(
                    f"Nonce gap for {self._signer.address} persists after healing: "
                    f"latest={state.latest} pending={state.pending}"
                )

        self._signer.sync(state.latest)
        return state

    def _heal(self, nonce: int, report: DeploymentReport) -> None:
        gas_price = self._gas_price() * (100 + REPLACEMENT_GAS_PRICE_BUMP_PERCENT) // 100
        with self._signer.acquire(nonce) as leased:
            tx = {
                "to": self._signer.address,
                "value": 0,
                "data": "0x",
                "nonce": leased,
                "gas": TRANSFER_GAS,
                "gasPrice": gas_price,
                "chainId": self._settings.chain_id,
            }
            tx_hash = self._rpc.send_raw_transaction(self._signer.sign_transaction(tx))
            report.transactions.append(SubmittedTransaction("heal", leased, tx_hash))
            logger.info("Sent self-heal transaction %s at nonce %d", tx_hash, leased)
            self._wait_for_nonce(leased)

    def _wait_for_nonce(self, nonce: int) -> None:
        deadline = self._clock() + self._settings.confirmation_timeout
        while self._rpc.get_transaction_count(self._signer.address, "latest") <= nonce:
            if self._clock() >= deadline:
                raise NonceGapDetectedError(
                    f"Nonce {nonce} of {self._signer.address} not confirmed within "
                    f"{self._settings.confirmation_timeout:g}s"
                )
            self._sleep(self._settings.poll_interval)

    # Step processing

    def run(self, specs: Iterable[DeploymentSpec]) -> DeploymentReport:
        """
        Deploy every spec that isn't already in the address book.

        Args:
            specs: Steps in dependency order

        Returns:
            DeploymentReport

        Raises:
            DeploymentError: On the first failing step; steps confirmed
                before it stay recorded in the address book
        """
        specs = list(specs)
        seen = set()
        for spec in specs:
            if spec.name in seen:
                raise DeploymentError(f"Duplicate deployment name '{spec.name}' in plan")
            seen.add(spec.name)
            self._states[spec.name] = StepState.UNRESOLVED

        report = DeploymentReport(network=self._settings.network)
        self.resolve_nonce_gap(report)

        if report.heal_transactions and self._settings.exit_after_heal:
            logger.info("Nonce gap healed; exiting before deployment")
            report.halted_after_heal = True
            return report

        for spec in specs:
            self.deploy(spec, report)

        logger.info(
            "Run on %s finished: %d step(s), %d transaction(s)",
            self._settings.network,
            len(report.steps),
            len(report.transactions),
        )
        return report

    def deploy(self, spec: DeploymentSpec, report: DeploymentReport) -> StepOutcome:
        """Process one step; the nonce gap must already be resolved."""
        known = self._book.get(spec.name)
        if known is not None:
            logger.info("%s already deployed at %s, skipping", spec.name, known)
            return self._finish(report, StepOutcome(spec.name, StepState.ADDRESS_KNOWN, known))

        try:
            init_code = self.build_init_code(spec)
            return self._submit(spec, init_code, report)
        except DeploymentError as e:
            logger.error("Deployment step %s failed: %s", spec.name, e)
            self._finish(report, StepOutcome(spec.name, StepState.FAILED))
            raise

    def _finish(self, report: DeploymentReport, outcome: StepOutcome) -> StepOutcome:
        self._transition(outcome.name, outcome.state)
        report.steps.append(outcome)
        return outcome

    def _lookup(self, name: str) -> Optional[str]:
        address = self._book.get(name)
        if address is None:
            return self._planned.get(name)
        return address

    def _resolve(self, value: Any, step: str) -> Any:
        if isinstance(value, Ref):
            address = self._lookup(value.name)
            if address is None:
                raise MissingDependencyError(
                    f"{step} depends on '{value.name}', which is not deployed on "
                    f"{self._settings.network}; declare it earlier or register its address"
                )
            return address
        if isinstance(value, list):
            return [self._resolve(item, step) for item in value]
        if isinstance(value, tuple):
            return tuple(self._resolve(item, step) for item in value)
        return value

    def _resolve_libraries(self, spec: DeploymentSpec) -> Dict[str, str]:
        libraries = {}
        for library, value in spec.libraries.items():
            if isinstance(value, Ref):
                address = self._lookup(value.name)
                if address is None:
                    raise UnresolvedLibraryReferenceError(
                        f"{spec.name} links library {library} to '{value.name}', "
                        f"which is not deployed on {self._settings.network}"
                    )
                value = address
            libraries[library] = value
        return libraries

    def build_init_code(self, spec: DeploymentSpec) -> bytes:
        """
        Build the creation bytecode for a step.

        Raises:
            MissingDependencyError: If an argument references an unresolved step
            UnresolvedLibraryReferenceError: If a library placeholder can't be linked
            InvalidInputKindError: If arguments don't match the constructor
        """
        if spec.proxy_of is not None:
            if spec.args or spec.libraries:
                raise InvalidInputKindError(
                    f"{spec.name} is a minimal proxy and takes no constructor arguments or libraries"
                )
            return build_minimal_proxy_init_code(self._resolve(spec.proxy_of, spec.name))

        args = self._resolve(spec.args, spec.name)
        libraries = self._resolve_libraries(spec)
        artifact = self._artifacts.load(spec.contract_name)
        bytecode = decode_hex(link_bytecode(artifact, libraries))
        return bytecode + encode_constructor_args(artifact.abi, args)

    def _submit(self, spec: DeploymentSpec, init_code: bytes, report: DeploymentReport) -> StepOutcome:
        predicted = None
        if spec.salt is not None:
            salt = normalize_salt(spec.salt)
            predicted = compute_create2_address(DETERMINISTIC_DEPLOYER, salt, keccak(init_code))
            if self._has_code(predicted):
                if self._settings.dry_run:
                    self._planned[spec.name] = predicted
                    logger.info("Dry run: %s already on chain at %s", spec.name, predicted)
                    return self._finish(
                        report, StepOutcome(spec.name, StepState.ADDRESS_KNOWN, predicted)
                    )
                logger.info("%s already on chain at %s, recording", spec.name, predicted)
                address = self._book.record(spec.name, predicted)
                return self._finish(report, StepOutcome(spec.name, StepState.ADDRESS_KNOWN, address))
            tx: Dict[str, Any] = {"to": DETERMINISTIC_DEPLOYER, "data": encode_hex(salt + init_code)}
        else:
            tx = {"data": encode_hex(init_code)}

        if self._settings.dry_run:
            with self._signer.acquire() as nonce:
                if predicted is None:
                    predicted = compute_create_address(self._signer.address, nonce)
            self._planned[spec.name] = predicted
            logger.info("Dry run: would deploy %s at %s (nonce %d)", spec.name, predicted, nonce)
            return self._finish(report, StepOutcome(spec.name, StepState.PLANNED, predicted, nonce))

        self._transition(spec.name, StepState.SUBMITTING)
        tx["value"] = 0
        tx["chainId"] = self._settings.chain_id
        tx["gasPrice"] = self._gas_price()
        tx["gas"] = self._gas_limit(tx)

        with self._signer.acquire() as nonce:
            tx["nonce"] = nonce
            tx_hash = self._rpc.send_raw_transaction(self._signer.sign_transaction(tx))
            report.transactions.append(SubmittedTransaction("deploy", nonce, tx_hash, spec.name))
            logger.info("Deploying %s: tx %s (nonce %d)", spec.name, tx_hash, nonce)
            receipt = wait_for_receipt(
                self._rpc,
                tx_hash,
                self._settings.confirmation_timeout,
                self._settings.poll_interval,
                clock=self._clock,
                sleep=self._sleep,
            )

        if receipt.get("status") != 1:
            raise TransactionFailedError(f"{spec.name} deployment reverted in {tx_hash}")

        address = predicted or receipt.get("contractAddress")
        if not address:
            raise TransactionFailedError(f"{spec.name} receipt {tx_hash} has no contract address")
        if predicted is not None and not self._has_code(predicted):
            raise TransactionFailedError(
                f"{spec.name} confirmed in {tx_hash} but no code at predicted address {predicted}"
            )

        address = self._book.record(spec.name, address)
        logger.info("%s deployed at %s", spec.name, address)
        return self._finish(
            report, StepOutcome(spec.name, StepState.CONFIRMED, address, nonce, tx_hash)
        )

    def _has_code(self, address: str) -> bool:
        code = self._rpc.get_code(address)
        return bool(code) and code not in ("0x", "0x0")

    def _gas_price(self) -> int:
        if self._settings.gas_price is not None:
            return self._settings.gas_price
        return self._rpc.gas_price()

    def _gas_limit(self, tx: Dict[str, Any]) -> int:
        if self._settings.gas_limit is not None:
            return self._settings.gas_limit
        estimate_tx = {"from": self._signer.address, "data": tx["data"], "value": 0}
        if "to" in tx:
            estimate_tx["to"] = tx["to"]
        return int(self._rpc.estimate_gas(estimate_tx) * GAS_ESTIMATE_MULTIPLIER)


def planned_references(specs: Iterable[DeploymentSpec]) -> List[str]:
    """Names referenced by the specs that no spec in the list deploys."""
    specs = list(specs)
    declared = {spec.name for spec in specs}
    missing = []
    for spec in specs:
        for name in spec.references():
            if name not in declared and name not in missing:
                missing.append(name)
    return missing

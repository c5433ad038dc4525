"""Data types and dataclasses for pearl-deployments library."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union


@dataclass(frozen=True)
class Ref:
    """Reference to the address another deployment step resolved to."""

    name: str

    def __str__(self) -> str:
        return f"@{self.name}"


AddressOrRef = Union[str, Ref]


@dataclass(frozen=True)
class DeploymentSpec:
    """One logical deployment step."""

    # Logical name; key in the address book
    name: str
    # Artifact to deploy (defaults to name)
    contract: Optional[str] = None
    # Ordered constructor arguments; may contain Ref values
    args: Tuple[Any, ...] = ()
    # Library name (simple or fully qualified) -> address or Ref
    libraries: Mapping[str, AddressOrRef] = field(default_factory=dict)
    # Text label or 32-byte hex; salted specs deploy via CREATE2
    salt: Optional[str] = None
    # Implementation address or Ref; deploys an EIP-1167 minimal proxy
    proxy_of: Optional[AddressOrRef] = None

    def __post_init__(self):
        object.__setattr__(self, "args", tuple(self.args))
        object.__setattr__(self, "libraries", MappingProxyType(dict(self.libraries)))

    @property
    def contract_name(self) -> str:
        return self.contract or self.name

    def references(self) -> List[str]:
        """Names of other steps whose addresses this step consumes."""
        names = [ref.name for ref in _iter_refs(self.args)]
        if isinstance(self.proxy_of, Ref):
            names.append(self.proxy_of.name)
        names.extend(ref.name for ref in _iter_refs(self.libraries.values()))
        return names


def _iter_refs(values):
    for value in values:
        if isinstance(value, Ref):
            yield value
        elif isinstance(value, (list, tuple)):
            yield from _iter_refs(value)


@dataclass(frozen=True)
class PendingTransactionState:
    """Confirmed vs pending transaction counts for a signer."""

    latest: int
    pending: int

    @property
    def gap(self) -> int:
        return max(self.pending - self.latest, 0)

    @property
    def has_gap(self) -> bool:
        return self.pending > self.latest


@dataclass
class ContractArtifact:
    """Compiled contract loaded from a Hardhat or Foundry artifact file."""

    name: str
    abi: List[Dict[str, Any]]
    bytecode: str  # 0x-prefixed, may contain link placeholders
    # source file -> library name -> [{"start": int, "length": int}, ...]
    link_references: Dict[str, Dict[str, List[Dict[str, int]]]] = field(default_factory=dict)
    source_name: Optional[str] = None


class StepState(Enum):
    """
    Deployment step states.

    UNRESOLVED -> ADDRESS_KNOWN (no-op) | SUBMITTING -> CONFIRMED, or FAILED.
    """

    UNRESOLVED = "unresolved"
    ADDRESS_KNOWN = "address-known"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    PLANNED = "planned"  # dry run only


@dataclass
class SubmittedTransaction:
    """A transaction broadcast during a run."""

    kind: str  # "deploy" or "heal"
    nonce: int
    tx_hash: str
    name: Optional[str] = None


@dataclass
class StepOutcome:
    """Final state of one deployment step."""

    name: str
    state: StepState
    address: Optional[str] = None
    nonce: Optional[int] = None
    tx_hash: Optional[str] = None


@dataclass
class DeploymentReport:
    """Summary of an orchestrator run."""

    network: str
    steps: List[StepOutcome] = field(default_factory=list)
    transactions: List[SubmittedTransaction] = field(default_factory=list)
    nonce_state: Optional[PendingTransactionState] = None
    halted_after_heal: bool = False

    @property
    def heal_transactions(self) -> List[SubmittedTransaction]:
        return [tx for tx in self.transactions if tx.kind == "heal"]

    @property
    def deploy_transactions(self) -> List[SubmittedTransaction]:
        return [tx for tx in self.transactions if tx.kind == "deploy"]

    def addresses(self) -> Dict[str, str]:
        return {step.name: step.address for step in self.steps if step.address}

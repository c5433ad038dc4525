"""Static deployment plans for pearl-deployments library."""

import json
from pathlib import Path
from typing import Any, List, Union

from .constants import LOCAL_NETWORKS
from .encoding import ascii_string_to_bytes32
from .exceptions import CorruptedFileError, DeploymentError, PlanNotFoundError
from .types import DeploymentSpec, Ref

FACTORY = "PearlV2Factory"
WETH9 = "WETH9"


def periphery_plan(network: str) -> List[DeploymentSpec]:
    """
    Periphery deployment sequence for a network.

    PearlV2Factory must already be in the address book; so must WETH9,
    except on local networks where a fresh ERC20 stands in for it.

    Args:
        network: Network name

    Returns:
        Specs in dependency order
    """
    specs = []
    if network in LOCAL_NETWORKS:
        specs.append(DeploymentSpec(WETH9, contract="ERC20", args=("Wrapped ETH", "WETH")))

    specs.extend(
        [
            DeploymentSpec("SwapRouter", args=(Ref(FACTORY), Ref(WETH9))),
            DeploymentSpec("QuoterV2", args=(Ref(FACTORY), Ref(WETH9))),
            DeploymentSpec("NFTDescriptor"),
            DeploymentSpec(
                "NonfungibleTokenPositionDescriptor",
                args=(Ref(WETH9), ascii_string_to_bytes32("ETH")),
                libraries={"NFTDescriptor": Ref("NFTDescriptor")},
            ),
            DeploymentSpec(
                "NonfungiblePositionManager",
                args=(Ref(FACTORY), Ref(WETH9), Ref("NonfungibleTokenPositionDescriptor")),
            ),
        ]
    )
    return specs


def _parse_value(value: Any) -> Any:
    # "@Name" refers to another step; "@@..." escapes a literal leading "@"
    if isinstance(value, str) and value.startswith("@"):
        if value.startswith("@@"):
            return value[1:]
        return Ref(value[1:])
    if isinstance(value, list):
        return [_parse_value(item) for item in value]
    return value


def parse_plan(data: Any) -> List[DeploymentSpec]:
    """
    Build specs from a plan document.

    Format:
        {"contracts": [
            {"name": "SwapRouter", "contract": "SwapRouter",
             "args": ["@PearlV2Factory", "@WETH9"],
             "libraries": {"NFTDescriptor": "@NFTDescriptor"},
             "salt": "SALT_V1", "proxyOf": "@PoolImplementation"}
        ]}

    Raises:
        DeploymentError: If the document is malformed
    """
    if not isinstance(data, dict) or not isinstance(data.get("contracts"), list):
        raise DeploymentError("Plan must be an object with a 'contracts' list")

    specs = []
    for index, entry in enumerate(data["contracts"]):
        if not isinstance(entry, dict) or not entry.get("name"):
            raise DeploymentError(f"Plan entry {index} has no name")
        specs.append(
            DeploymentSpec(
                name=entry["name"],
                contract=entry.get("contract"),
                args=tuple(_parse_value(arg) for arg in entry.get("args", [])),
                libraries={
                    library: _parse_value(address)
                    for library, address in entry.get("libraries", {}).items()
                },
                salt=entry.get("salt"),
                proxy_of=_parse_value(entry.get("proxyOf")),
            )
        )
    return specs


def load_plan(path: Union[Path, str]) -> List[DeploymentSpec]:
    """
    Load specs from a JSON plan file.

    Raises:
        PlanNotFoundError: If the file doesn't exist
        CorruptedFileError: If the file is not valid JSON
        DeploymentError: If the document is malformed
    """
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise PlanNotFoundError(f"Plan file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise CorruptedFileError(f"Plan file {path} is not valid JSON: {e}") from e
    return parse_plan(data)

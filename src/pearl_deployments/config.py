"""Network and operator settings for pearl-deployments library."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .constants import DEFAULT_CONFIRMATION_TIMEOUT, DEFAULT_POLL_INTERVAL, NETWORK_CONFIG
from .exceptions import ConfigurationError, NetworkNotFoundError
from .paths import get_default_addresses_dir, get_default_artifacts_dir


@dataclass
class DeploySettings:
    """Everything a deployment run consumes besides the plan itself."""

    network: str
    chain_id: int
    rpc_url: Optional[str] = None
    private_key: Optional[str] = field(default=None, repr=False)
    mnemonic: Optional[str] = field(default=None, repr=False)
    gas_price: Optional[int] = None  # wei; None asks the node
    gas_limit: Optional[int] = None  # None estimates per transaction
    confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    addresses_dir: Path = field(default_factory=get_default_addresses_dir)
    artifacts_dir: Path = field(default_factory=get_default_artifacts_dir)
    exit_after_heal: bool = False
    dry_run: bool = False

    def require_rpc_url(self) -> str:
        """
        Return the RPC URL.

        Raises:
            ConfigurationError: If none is configured for the network
        """
        if not self.rpc_url:
            rpc_env = NETWORK_CONFIG.get(self.network, {}).get("rpc_env", "RPC_URL")
            raise ConfigurationError(
                f"RPC URL required for network '{self.network}': set ${rpc_env}"
            )
        return self.rpc_url


def _resolve_rpc_url(network_config: Mapping, env: Mapping[str, str]) -> Optional[str]:
    rpc_url = env.get(network_config["rpc_env"])
    if rpc_url:
        if "://" not in rpc_url:
            rpc_url = f"https://{rpc_url}"
        return rpc_url

    infura_key = env.get("INFURA_API_KEY")
    if infura_key and "infura_url" in network_config:
        return network_config["infura_url"].format(key=infura_key)

    return network_config.get("default_rpc_url")


def _parse_number(env: Mapping[str, str], name: str, kind=int):
    raw = env.get(name)
    if raw is None or raw == "":
        return None
    try:
        return kind(raw)
    except ValueError as e:
        raise ConfigurationError(f"${name} must be a number, got {raw!r}") from e


def load_settings(network: str, env: Optional[Mapping[str, str]] = None) -> DeploySettings:
    """
    Build settings for a network from NETWORK_CONFIG and environment variables.

    Args:
        network: Network name (e.g., "mumbai")
        env: Environment mapping (defaults to os.environ)

    Returns:
        DeploySettings

    Raises:
        NetworkNotFoundError: If network is not configured
        ConfigurationError: If a numeric variable is malformed
    """
    if env is None:
        env = os.environ

    if network not in NETWORK_CONFIG:
        raise NetworkNotFoundError(
            f"Network '{network}' not configured. "
            f"Known networks: {', '.join(sorted(NETWORK_CONFIG))}"
        )
    network_config = NETWORK_CONFIG[network]

    gas_price = _parse_number(env, "GAS_PRICE")
    gas_limit = _parse_number(env, "GAS_LIMIT")
    timeout = _parse_number(env, "CONFIRMATION_TIMEOUT", float)
    poll_interval = _parse_number(env, "POLL_INTERVAL", float)

    settings = DeploySettings(
        network=network,
        chain_id=network_config["chain_id"],
        rpc_url=_resolve_rpc_url(network_config, env),
        private_key=env.get("PRIVATE_KEY") or None,
        mnemonic=env.get("MNEMONIC") or None,
        gas_price=gas_price if gas_price is not None else network_config.get("gas_price"),
        gas_limit=gas_limit if gas_limit is not None else network_config.get("gas_limit"),
    )
    if timeout is not None:
        settings.confirmation_timeout = timeout
    if poll_interval is not None:
        settings.poll_interval = poll_interval
    if env.get("ADDRESSES_DIR"):
        settings.addresses_dir = Path(env["ADDRESSES_DIR"]).absolute()
    if env.get("ARTIFACTS_DIR"):
        settings.artifacts_dir = Path(env["ARTIFACTS_DIR"]).absolute()
    return settings

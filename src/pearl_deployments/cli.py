"""Command-line entry point for pearl-deployments."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .address_book import JsonAddressBook
from .artifacts import ArtifactStore
from .config import DeploySettings, load_settings
from .create2 import compute_pool_address
from .exceptions import ConfigurationError, DeploymentError, MissingDependencyError
from .orchestrator import DeploymentOrchestrator, planned_references
from .plan import load_plan, periphery_plan
from .rpc import JsonRpcClient
from .signer import SignerHandle
from .types import DeploymentReport

logger = logging.getLogger(__name__)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure default logging if no handlers are present."""
    root = logging.getLogger()
    if root.handlers:
        return
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    base = argparse.ArgumentParser(add_help=False)
    base.add_argument("--network", required=True, help="Network name (e.g., mumbai)")
    base.add_argument("--addresses-dir", default=None, help="Directory holding addresses.<network>.json")

    parser = argparse.ArgumentParser(prog="pearl-deploy", description="Pearl periphery deployment tool")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    deploy_parser = subparsers.add_parser("deploy", parents=[base], help="Run a deployment plan")
    deploy_parser.add_argument("--plan", default=None, help="JSON plan file (defaults to the periphery plan)")
    deploy_parser.add_argument("--artifacts-dir", default=None, help="Compiled artifacts directory")
    deploy_parser.add_argument("--dry-run", action="store_true", help="Resolve every step, submit nothing")
    deploy_parser.add_argument(
        "--exit-after-heal",
        action="store_true",
        help="Stop after healing a nonce gap instead of continuing to deploy",
    )

    pool_parser = subparsers.add_parser("pool-address", help="Compute a pool address offline")
    pool_parser.add_argument("--factory", required=True)
    pool_parser.add_argument(
        "--implementation",
        required=True,
        help="Pool implementation address, or the pool init code hash",
    )
    pool_parser.add_argument("--token-a", required=True)
    pool_parser.add_argument("--token-b", required=True)
    pool_parser.add_argument("--fee", required=True, type=int)

    addresses_parser = subparsers.add_parser("addresses", parents=[base], help="Show the address book")
    addresses_parser.add_argument("--forget", metavar="NAME", default=None, help="Remove one entry")

    register_parser = subparsers.add_parser(
        "register", parents=[base], help="Record an externally deployed address"
    )
    register_parser.add_argument("name")
    register_parser.add_argument("address")

    subparsers.add_parser("nonce", parents=[base], help="Show latest/pending transaction counts")

    return parser.parse_args(argv)


def _settings(args: argparse.Namespace) -> DeploySettings:
    settings = load_settings(args.network)
    if args.addresses_dir:
        settings.addresses_dir = Path(args.addresses_dir).absolute()
    if getattr(args, "artifacts_dir", None):
        settings.artifacts_dir = Path(args.artifacts_dir).absolute()
    return settings


def _connect(settings: DeploySettings) -> JsonRpcClient:
    rpc = JsonRpcClient(settings.require_rpc_url())
    chain_id = rpc.chain_id()
    if chain_id != settings.chain_id:
        raise ConfigurationError(
            f"RPC endpoint for '{settings.network}' reports chain id {chain_id}, "
            f"expected {settings.chain_id}"
        )
    return rpc


def _print_report(report: DeploymentReport) -> None:
    if report.halted_after_heal:
        print(f"Healed {len(report.heal_transactions)} stalled nonce(s); rerun to deploy.")
        return
    for step in report.steps:
        print(f"{step.name:40} {step.state.value:14} {step.address or '-'}")


def _cmd_deploy(args: argparse.Namespace) -> int:
    settings = _settings(args)
    settings.dry_run = args.dry_run
    settings.exit_after_heal = args.exit_after_heal

    specs = load_plan(args.plan) if args.plan else periphery_plan(settings.network)
    book = JsonAddressBook.for_network(settings.network, settings.addresses_dir)

    external = [name for name in planned_references(specs) if name not in book]
    if external:
        raise MissingDependencyError(
            f"Plan needs addresses missing from {book.path}: {', '.join(external)}. "
            "Record them with 'pearl-deploy register'."
        )

    rpc = _connect(settings)
    signer = SignerHandle.from_credentials(settings.private_key, settings.mnemonic)
    logger.info("Deploying to %s as %s", settings.network, signer.address)

    orchestrator = DeploymentOrchestrator(
        rpc, signer, book, ArtifactStore(settings.artifacts_dir), settings
    )
    _print_report(orchestrator.run(specs))
    return 0


def _cmd_pool_address(args: argparse.Namespace) -> int:
    print(
        compute_pool_address(
            args.factory, args.implementation, (args.token_a, args.token_b), args.fee
        )
    )
    return 0


def _cmd_addresses(args: argparse.Namespace) -> int:
    settings = _settings(args)
    book = JsonAddressBook.for_network(settings.network, settings.addresses_dir)
    if args.forget:
        if not book.forget(args.forget):
            print(f"'{args.forget}' is not recorded for {settings.network}", file=sys.stderr)
            return 1
        return 0
    for name, address in book.as_dict().items():
        print(f"{name:40} {address}")
    return 0


def _cmd_register(args: argparse.Namespace) -> int:
    settings = _settings(args)
    book = JsonAddressBook.for_network(settings.network, settings.addresses_dir)
    print(f"{args.name:40} {book.record(args.name, args.address)}")
    return 0


def _cmd_nonce(args: argparse.Namespace) -> int:
    settings = _settings(args)
    rpc = _connect(settings)
    signer = SignerHandle.from_credentials(settings.private_key, settings.mnemonic)
    latest = rpc.get_transaction_count(signer.address, "latest")
    pending = rpc.get_transaction_count(signer.address, "pending")
    print(f"{signer.address} latest={latest} pending={pending}")
    return 0


COMMANDS = {
    "deploy": _cmd_deploy,
    "pool-address": _cmd_pool_address,
    "addresses": _cmd_addresses,
    "register": _cmd_register,
    "nonce": _cmd_nonce,
}


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    try:
        return COMMANDS[args.command](args)
    except DeploymentError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

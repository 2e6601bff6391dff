"""Nit CLI — command-line interface for asset provenance versioning.

Usage:
    nit init
    nit config --list
    nit add photo.jpg -m "Sunset at the pier" --integrity-cid bafkrei...
    nit status
    nit commit -m "first" -a initial-registration --dry-run
    nit commit -m "first"
    nit log bafkrei...
    nit verify -i <assetTreeSha256> -s <signature>
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Any, Optional

from nit.config import NitConfig, default_config_path, load_config
from nit.crypto.signing import EthereumSigner, recover_address
from nit.engine.sources import read_asset_source
from nit.engine.versioning import VersioningEngine, init_workspace
from nit.errors import NitError
from nit.models.asset_tree import AssetTree, AssetTreeUpdates
from nit.models.commit import Action, ActionKind, CommitOverlay
from nit.persistence.staging import StagingArea
from nit.registry.base import Registry
from nit.registry.contract import ContractRegistry
from nit.registry.file_registry import FileRegistry
from nit.storage.content_store import ContentStore, LocalContentStore
from nit.storage.ipfs import IpfsContentStore

DEFAULT_DATA = Path.home() / ".nit"


def _make_store(config: NitConfig) -> ContentStore:
    if config.ipfs.api_url:
        return IpfsContentStore(
            api_url=config.ipfs.api_url,
            project_id=config.ipfs.project_id or None,
            project_secret=config.ipfs.project_secret or None,
        )
    return LocalContentStore(config.store_dir or DEFAULT_DATA / "objects")


def _make_registry(config: NitConfig) -> Registry:
    chain = config.blockchain
    if chain.rpc_url and chain.contract_address:
        return ContractRegistry.connect(
            rpc_url=chain.rpc_url,
            contract_address=chain.contract_address,
            private_key=chain.private_key or None,
            chain_id=chain.chain_id,
            explorer_base_url=chain.explorer_base_url,
            from_block=chain.from_block,
        )
    return FileRegistry(config.registry_path or DEFAULT_DATA / "registry.jsonl")


def _make_engine(args: argparse.Namespace) -> VersioningEngine:
    """Load configuration and wire backends. Fails before any network access
    if the configuration is missing."""
    config = load_config(args.config)
    signer = EthereumSigner(config.blockchain.private_key) if config.blockchain.private_key else None
    return VersioningEngine(_make_store(config), _make_registry(config), config, signer=signer)


def _workspace(args: argparse.Namespace) -> StagingArea:
    return StagingArea(args.workspace)


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def cmd_init(args: argparse.Namespace) -> int:
    path = args.config or default_config_path()
    if init_workspace(_workspace(args), path):
        print(f"Created config {path}")
    else:
        print(f"Nit config {path} exists.")
    print('You can run "nit config --edit" to set configuration now.')
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    path = args.config or default_config_path()
    if args.edit:
        editor = os.getenv("VISUAL") or os.getenv("EDITOR") or "vi"
        return subprocess.call([editor, str(path)])
    if args.list:
        config = load_config(path)
        print(_dump(config.raw))
        return 0
    print("Specify --list or --edit", file=sys.stderr)
    return 1


def cmd_add(args: argparse.Namespace) -> int:
    workspace = _workspace(args)
    workspace.require_initialized()
    engine = _make_engine(args)
    if args.mockup:
        print("Run add with mockup CID")
    source = read_asset_source(args.source, engine.store)
    updates = AssetTreeUpdates(
        abstract=args.message,
        nft_record=args.nft_record_cid,
        integrity_cid=args.integrity_cid,
    )
    draft = engine.add(workspace, source, updates, mockup=args.mockup)
    print(f"[ Staged Asset CID ]\n{draft.asset_cid}\n")
    print(f"[ Staged AssetTree ]\n{_dump(draft.asset_tree.to_dict())}\n")
    return 0


def cmd_add_tree(args: argparse.Namespace) -> int:
    engine = _make_engine(args)
    data = json.loads(Path(args.file).read_text(encoding="utf-8"))
    draft = engine.add_tree(_workspace(args), AssetTree.from_dict(data))
    print(f"[ Staged Asset CID ]\n{draft.asset_cid}\n")
    print(f"[ Staged AssetTree ]\n{_dump(draft.asset_tree.to_dict())}\n")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    draft = _make_engine(args).status(_workspace(args))
    if draft is None:
        print("No working Asset")
        return 0
    print(f"[ Working Asset CID ]\n{draft.asset_cid}\n")
    print(f"[ Staged Commit ]\n{_dump(draft.commit.to_dict())}\n")
    print(f"[ Staged AssetTree ]\n{_dump(draft.asset_tree.to_dict())}\n")
    return 0


def cmd_commit(args: argparse.Namespace) -> int:
    engine = _make_engine(args)
    overlay = CommitOverlay(
        message=args.message,
        action=Action.parse(args.action) if args.action else None,
        action_result=args.action_result,
    )
    result = engine.commit(
        _workspace(args), overlay, dry_run=args.dry_run, mockup=args.mockup,
    )
    if not result.dry_run:
        print(f"Signer wallet address: {engine.signer_address}")
    print(f"Asset Cid (index): {result.asset_cid}")
    print(f"Commit Cid: {result.commit_cid}")
    print(f"Commit: {_dump(result.commit.to_dict())}")
    if result.receipt is None:
        print("This is dry run and Nit does not register this commit to the registry.")
        return 0
    print(f"Commit Tx: {result.receipt.tx_hash}")
    if result.receipt.explorer_url:
        print(f"Commit Explorer: {result.receipt.explorer_url}")
    return 0


def cmd_discard(args: argparse.Namespace) -> int:
    discarded = _make_engine(args).discard_staged(_workspace(args))
    if discarded is None:
        print("No working Asset")
    else:
        print(f"Discarded staged draft of {discarded}")
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    address = recover_address(args.integrity_hash, args.signature)
    print(f"Signer address: {address}")
    return 0


def cmd_log(args: argparse.Namespace) -> int:
    engine = _make_engine(args)
    history = engine.log(args.asset_cid)
    if not history:
        print(f"No commits for {args.asset_cid}")
        return 0
    for item in history:
        block, index = item.entry.sequence
        print(f"commit {item.entry.commit_cid} (block {block}, index {index})")
        if item.explorer_url:
            print(f"Tx: {item.explorer_url}")
        print(_dump(item.commit.to_dict()))
        print()
    return 0


def cmd_put(args: argparse.Namespace) -> int:
    engine = _make_engine(args)
    cid = engine.put_file(Path(args.file))
    print(cid)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nit",
        description="Nit — provenance versioning for digital assets",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config file (default: $NIT_CONFIG or ~/.nitconfig.json)",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        default=Path.cwd(),
        help="Workspace directory holding .nit/ (default: current directory)",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="Log progress (-v) or debug detail (-vv)",
    )
    sub = parser.add_subparsers(dest="command")

    # init
    sub.add_parser("init", help="Initialize working environment")

    # config
    p_config = sub.add_parser("config", help="Show or edit Nit configuration")
    group = p_config.add_mutually_exclusive_group()
    group.add_argument("-e", "--edit", action="store_true", help="Open config in $EDITOR")
    group.add_argument("-l", "--list", action="store_true", help="Print config")

    # add
    p_add = sub.add_parser("add", help="Stage a new AssetTree version for an asset")
    p_add.add_argument("source", help="Asset file path, http(s) URL, or CID")
    p_add.add_argument("-m", "--message", help="AssetTree abstract")
    p_add.add_argument("--nft-record-cid", help="CID of the NFT record")
    p_add.add_argument("--integrity-cid", help="CID of the integrity record")
    p_add.add_argument(
        "--mockup", action="store_true",
        help="Use the mockup asset CID (59 'a' chars) instead of the real one",
    )

    # add-tree
    p_tree = sub.add_parser("add-tree", help="Stage an AssetTree JSON file directly")
    p_tree.add_argument("file", help="AssetTree JSON file")

    # status
    sub.add_parser("status", help="Show the staged Commit and AssetTree")

    # commit
    p_commit = sub.add_parser("commit", help="Sign and anchor the staged version")
    p_commit.add_argument("-m", "--message", help='Commit description ("abstract" field)')
    p_commit.add_argument(
        "-a", "--action",
        help=f"Provenance action ({', '.join(k.value for k in ActionKind if k != ActionKind.CUSTOM)}, or free text)",
    )
    p_commit.add_argument("-r", "--action-result", help="Result of the action")
    p_commit.add_argument(
        "--dry-run", action="store_true",
        help="Only show the Commit; do not anchor it. The staged version is kept.",
    )
    p_commit.add_argument(
        "--mockup", action="store_true",
        help="Anchor under the mockup asset CID",
    )

    # discard
    sub.add_parser("discard", help="Drop the staged version without anchoring")

    # verify
    p_verify = sub.add_parser("verify", help="Recover the signer of an integrity hash")
    p_verify.add_argument("-i", "--integrity-hash", required=True, help="AssetTree sha256")
    p_verify.add_argument("-s", "--signature", required=True, help="AssetTree signature")

    # log
    p_log = sub.add_parser("log", help="Show an asset's anchored commits")
    p_log.add_argument("asset_cid", help="Asset CID")

    # put
    p_put = sub.add_parser("put", help="Store a file in the content store and print its CID")
    p_put.add_argument("file", help="File to store")

    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "init": cmd_init,
        "config": cmd_config,
        "add": cmd_add,
        "add-tree": cmd_add_tree,
        "status": cmd_status,
        "commit": cmd_commit,
        "discard": cmd_discard,
        "verify": cmd_verify,
        "log": cmd_log,
        "put": cmd_put,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except (NitError, OSError, ValueError) as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

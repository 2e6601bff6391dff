"""Nit configuration — identities, license, backends and signing key.

The configuration file is JSON at ``~/.nitconfig.json`` (override with
the ``NIT_CONFIG`` environment variable). Secrets may instead live in a
``.env`` file next to the workspace; those values take precedence:

    NIT_PRIVATE_KEY          signing key (author's wallet)
    NIT_RPC_URL              blockchain RPC endpoint
    NIT_IPFS_API_URL         IPFS HTTP API endpoint
    NIT_IPFS_PROJECT_ID      IPFS pinning service credentials
    NIT_IPFS_PROJECT_SECRET
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from nit.errors import ConfigMissing
from nit.models.license import DEFAULT_LICENSE, LicenseSetting

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "NIT_CONFIG"
DEFAULT_CONFIG_NAME = ".nitconfig.json"

CONFIG_TEMPLATE: dict[str, Any] = {
    "author": {"type": "", "name": "", "wallet": "", "identifier": ""},
    "committer": {"type": "", "name": "", "wallet": "", "identifier": ""},
    "provider": {"type": "", "name": "", "identifier": ""},
    "license": DEFAULT_LICENSE,
    "licenseContent": "",
    "ipfs": {"apiUrl": "", "projectId": "", "projectSecret": ""},
    "blockchain": {
        "rpcUrl": "",
        "contractAddress": "",
        "chainId": None,
        "explorerBaseUrl": "",
        "fromBlock": 0,
        "privateKey": "",
    },
}


@dataclass(frozen=True)
class IpfsSettings:
    api_url: str = ""
    project_id: str = ""
    project_secret: str = ""


@dataclass(frozen=True)
class BlockchainSettings:
    rpc_url: str = ""
    contract_address: str = ""
    chain_id: Optional[int] = None
    explorer_base_url: str = ""
    from_block: int = 0
    private_key: str = field(default="", repr=False)


@dataclass(frozen=True)
class NitConfig:
    """Loaded configuration. Opaque to the versioning core except for
    identities and license."""
    author: Any
    committer: Any
    provider: Any
    license: LicenseSetting
    ipfs: IpfsSettings = field(default_factory=IpfsSettings)
    blockchain: BlockchainSettings = field(default_factory=BlockchainSettings)
    store_dir: Optional[Path] = None
    registry_path: Optional[Path] = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> NitConfig:
        ipfs = data.get("ipfs") or {}
        chain = data.get("blockchain") or {}
        chain_id = os.getenv("NIT_CHAIN_ID") or chain.get("chainId")
        store_dir = data.get("storeDir")
        registry_path = data.get("registryPath")
        return NitConfig(
            author=data.get("author"),
            committer=data.get("committer"),
            provider=data.get("provider"),
            license=LicenseSetting.from_config(
                data.get("license") or DEFAULT_LICENSE,
                data.get("licenseContent"),
            ),
            ipfs=IpfsSettings(
                api_url=os.getenv("NIT_IPFS_API_URL") or ipfs.get("apiUrl") or "",
                project_id=os.getenv("NIT_IPFS_PROJECT_ID") or ipfs.get("projectId") or "",
                project_secret=(
                    os.getenv("NIT_IPFS_PROJECT_SECRET") or ipfs.get("projectSecret") or ""
                ),
            ),
            blockchain=BlockchainSettings(
                rpc_url=os.getenv("NIT_RPC_URL") or chain.get("rpcUrl") or "",
                contract_address=chain.get("contractAddress") or "",
                chain_id=int(chain_id) if chain_id else None,
                explorer_base_url=chain.get("explorerBaseUrl") or "",
                from_block=int(chain.get("fromBlock") or 0),
                private_key=os.getenv("NIT_PRIVATE_KEY") or chain.get("privateKey") or "",
            ),
            store_dir=Path(store_dir).expanduser() if store_dir else None,
            registry_path=Path(registry_path).expanduser() if registry_path else None,
            raw=data,
        )


def default_config_path() -> Path:
    override = os.getenv(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / DEFAULT_CONFIG_NAME


def load_config(path: Optional[Path] = None, env_file: Optional[Path] = None) -> NitConfig:
    """Load configuration, applying ``.env`` overrides.

    Raises ConfigMissing if the file does not exist. No network access
    happens before this check.
    """
    load_dotenv(env_file)
    path = path or default_config_path()
    if not path.exists():
        raise ConfigMissing(f"Config {path} not found; run 'nit init' to create it")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise ConfigMissing(f"Config {path} is not valid JSON: {e}") from e
    try:
        return NitConfig.from_dict(data)
    except ValueError as e:
        raise ConfigMissing(f"Config {path} is invalid: {e}") from e


def write_config_template(path: Optional[Path] = None) -> bool:
    """Create the config file from the template. Never overwrites.

    Returns True if a file was written, False if one already existed.
    """
    path = path or default_config_path()
    if path.exists():
        logger.warning("Nit config %s exists.", path)
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("x", encoding="utf-8") as f:
        json.dump(CONFIG_TEMPLATE, f, indent=2)
        f.write("\n")
    return True

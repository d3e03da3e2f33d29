import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from minter_client import DEFAULT_PROGRAM_ID, MinterAdminError, parse_keypair


DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
DEFAULT_KEYPAIR_PATH = "~/.config/solana/id.json"
DEFAULT_MASTER_INFO_PATH = "../nft-master-setup/collection-master-info.json"
DEFAULT_PROGRAM_CONFIG_PATH = "program-config.json"
DEFAULT_NETWORK = "mainnet"

MINT_PRICE_SOL = "0.2"
DISCOUNTED_PRICE_SOL = "0.1"


class ConfigError(MinterAdminError):
    pass


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    program_id: Pubkey
    keypair_path: Path
    master_info_path: Path
    program_config_path: Path
    network: str

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        raw_program_id = env.get("MINTER_PROGRAM_ID", DEFAULT_PROGRAM_ID)
        try:
            program_id = Pubkey.from_string(raw_program_id)
        except ValueError as exc:
            raise ConfigError(f"MINTER_PROGRAM_ID is not a valid pubkey: {exc}") from exc
        return cls(
            rpc_url=env.get("RPC_URL", DEFAULT_RPC_URL),
            program_id=program_id,
            keypair_path=Path(env.get("KEYPAIR_PATH", DEFAULT_KEYPAIR_PATH)).expanduser(),
            master_info_path=Path(env.get("MASTER_INFO_PATH", DEFAULT_MASTER_INFO_PATH)),
            program_config_path=Path(
                env.get("PROGRAM_CONFIG_PATH", DEFAULT_PROGRAM_CONFIG_PATH)
            ),
            network=env.get("SOLANA_NETWORK", DEFAULT_NETWORK),
        )


@dataclass(frozen=True)
class MasterInfo:
    master_mint: str
    master_metadata: Optional[str]
    master_edition: Optional[str]


@dataclass(frozen=True)
class ProgramConfig:
    program_id: Pubkey
    config_pda: Pubkey
    payment_vault_pda: Pubkey
    network: Optional[str] = None


def _read_json(path: Path, what: str):
    try:
        with open(path, "r", encoding="utf-8") as handle:
            return json.load(handle)
    except OSError as exc:
        raise ConfigError(f"Failed to read {what} at {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Failed to parse {what} at {path}: {exc}") from exc


def load_keypair(path: Path) -> Keypair:
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to load wallet from {path}: {exc}") from exc
    try:
        return parse_keypair(raw)
    except (ValueError, TypeError) as exc:
        raise ConfigError(f"Failed to load wallet from {path}: {exc}") from exc


def load_master_info(path: Path) -> MasterInfo:
    data = _read_json(path, "master info")
    if not isinstance(data, dict):
        raise ConfigError(f"Master info at {path} must be a JSON object")
    master_mint = data.get("masterMint") or data.get("collectionMint")
    if not master_mint:
        raise ConfigError(f"Master info at {path} has no masterMint or collectionMint")
    return MasterInfo(
        master_mint=master_mint,
        master_metadata=data.get("masterMetadata") or data.get("collectionMetadata"),
        master_edition=data.get("masterEdition") or data.get("collectionMasterEdition"),
    )


def load_program_config(path: Path) -> ProgramConfig:
    data = _read_json(path, "program config")
    if not isinstance(data, dict):
        raise ConfigError(f"Program config at {path} must be a JSON object")
    try:
        return ProgramConfig(
            program_id=Pubkey.from_string(data["programId"]),
            config_pda=Pubkey.from_string(data["configPda"]),
            payment_vault_pda=Pubkey.from_string(data["paymentVaultPda"]),
            network=data.get("network"),
        )
    except KeyError as exc:
        raise ConfigError(f"Program config at {path} is missing {exc.args[0]}") from exc
    except ValueError as exc:
        raise ConfigError(f"Program config at {path} has an invalid address: {exc}") from exc


def program_config_record(
    program_id: Pubkey,
    config_pda: Pubkey,
    payment_vault_pda: Pubkey,
    master_info: MasterInfo,
    network: str,
) -> dict:
    return {
        "programId": str(program_id),
        "configPda": str(config_pda),
        "paymentVaultPda": str(payment_vault_pda),
        "masterMint": master_info.master_mint,
        "masterMetadata": master_info.master_metadata,
        "masterEdition": master_info.master_edition,
        "mintPrice": MINT_PRICE_SOL,
        "discountedPrice": DISCOUNTED_PRICE_SOL,
        "network": network,
    }


def save_program_config(path: Path, record: dict) -> None:
    try:
        with open(path, "w", encoding="utf-8") as handle:
            json.dump(record, handle, indent=2)
    except OSError as exc:
        raise ConfigError(f"Failed to write program config at {path}: {exc}") from exc

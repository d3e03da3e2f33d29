import hashlib
import json
from dataclasses import dataclass
from typing import List, Optional, Tuple

from base58 import b58decode
from borsh_construct import CStruct, Option, U8, U64
from solana.rpc.api import Client
from solana.rpc.commitment import Confirmed
from solana.rpc.core import TransactionExpiredBlockheightExceededError, UnconfirmedTxError
from solana.rpc.types import TxOpts
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import ID as SYS_PROGRAM_ID
from solders.transaction import Transaction


LAMPORTS_PER_SOL = 1_000_000_000
U64_MAX = 2**64 - 1
SEND_MAX_RETRIES = 5

DEFAULT_PROGRAM_ID = "C4FiFWofsjxRGXrcF5i1RnxPHc7QDcSf9XzhFgLQyioh"

CONFIG_SEED = b"config"
PAYMENT_VAULT_SEED = b"payment_vault"

CONFIG_DISCRIMINATOR = hashlib.sha256(b"account:Config").digest()[:8]

# Anchor assigns custom errors from 6000 in declaration order.
ERROR_CODES = {
    "ConstraintHasOne": 2001,
    "Unauthorized": 6000,
    "InvalidMasterMint": 6001,
    "InsufficientPayment": 6002,
}


CONFIG_LAYOUT = CStruct(
    "authority" / U8[32],
    "master_mint" / U8[32],
    "mint_price" / U64,
    "discounted_price" / U64,
    "total_minted" / U64,
    "payment_vault" / U8[32],
)

INITIALIZE_ARGS = CStruct("master_mint" / U8[32])

WITHDRAW_ARGS = CStruct("amount" / U64)

UPDATE_PRICING_ARGS = CStruct(
    "new_regular_price" / Option(U64),
    "new_discounted_price" / Option(U64),
)


@dataclass
class Config:
    authority: Pubkey
    master_mint: Pubkey
    mint_price: int
    discounted_price: int
    total_minted: int
    payment_vault: Pubkey


class MinterAdminError(RuntimeError):
    pass


class TransactionFailedError(MinterAdminError):
    def __init__(self, message: str, signature: Signature, err=None) -> None:
        super().__init__(message)
        self.signature = signature
        self.err = err


class TransactionTimeoutError(MinterAdminError):
    def __init__(self, message: str, signature: Signature) -> None:
        super().__init__(message)
        self.signature = signature


def parse_keypair(raw: str) -> Keypair:
    raw = raw.strip()
    if raw.startswith("["):
        secret = bytes(json.loads(raw))
        return Keypair.from_bytes(secret)
    return Keypair.from_bytes(b58decode(raw))


def anchor_discriminator(name: str) -> bytes:
    return hashlib.sha256(f"global:{name}".encode()).digest()[:8]


def pda_config(program_id: Pubkey) -> Tuple[Pubkey, int]:
    return Pubkey.find_program_address([CONFIG_SEED], program_id)


def pda_payment_vault(program_id: Pubkey) -> Tuple[Pubkey, int]:
    return Pubkey.find_program_address([PAYMENT_VAULT_SEED], program_id)


def lamports_to_sol(lamports: int) -> float:
    return lamports / LAMPORTS_PER_SOL


def _check_u64(name: str, value: int) -> int:
    value = int(value)
    if value < 0 or value > U64_MAX:
        raise ValueError(f"{name} must fit in an unsigned 64-bit integer, got {value}")
    return value


def encode_config(config: Config) -> bytes:
    return CONFIG_DISCRIMINATOR + CONFIG_LAYOUT.build(
        {
            "authority": list(bytes(config.authority)),
            "master_mint": list(bytes(config.master_mint)),
            "mint_price": _check_u64("mint_price", config.mint_price),
            "discounted_price": _check_u64("discounted_price", config.discounted_price),
            "total_minted": _check_u64("total_minted", config.total_minted),
            "payment_vault": list(bytes(config.payment_vault)),
        }
    )


def decode_config(data: bytes) -> Config:
    if data[:8] != CONFIG_DISCRIMINATOR:
        raise ValueError("Invalid Config discriminator")
    parsed = CONFIG_LAYOUT.parse(data[8:])
    return Config(
        authority=Pubkey(bytes(parsed.authority)),
        master_mint=Pubkey(bytes(parsed.master_mint)),
        mint_price=parsed.mint_price,
        discounted_price=parsed.discounted_price,
        total_minted=parsed.total_minted,
        payment_vault=Pubkey(bytes(parsed.payment_vault)),
    )


def instruction_initialize(
    program_id: Pubkey, authority: Pubkey, master_mint: Pubkey
) -> Instruction:
    data = anchor_discriminator("initialize") + INITIALIZE_ARGS.build(
        {"master_mint": list(bytes(master_mint))}
    )
    config_key, _ = pda_config(program_id)
    payment_vault, _ = pda_payment_vault(program_id)
    accounts = [
        AccountMeta(config_key, is_signer=False, is_writable=True),
        AccountMeta(authority, is_signer=True, is_writable=True),
        AccountMeta(payment_vault, is_signer=False, is_writable=False),
        AccountMeta(SYS_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(program_id, data, accounts)


def instruction_withdraw(
    program_id: Pubkey,
    config: Pubkey,
    authority: Pubkey,
    payment_vault: Pubkey,
    amount: int,
) -> Instruction:
    data = anchor_discriminator("withdraw") + WITHDRAW_ARGS.build(
        {"amount": _check_u64("amount", amount)}
    )
    accounts = [
        AccountMeta(config, is_signer=False, is_writable=False),
        AccountMeta(authority, is_signer=True, is_writable=True),
        AccountMeta(payment_vault, is_signer=False, is_writable=True),
        AccountMeta(SYS_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(program_id, data, accounts)


def instruction_update_pricing(
    program_id: Pubkey,
    config: Pubkey,
    authority: Pubkey,
    new_regular_price: Optional[int],
    new_discounted_price: Optional[int],
) -> Instruction:
    if new_regular_price is not None:
        new_regular_price = _check_u64("new_regular_price", new_regular_price)
    if new_discounted_price is not None:
        new_discounted_price = _check_u64("new_discounted_price", new_discounted_price)
    data = anchor_discriminator("update_pricing") + UPDATE_PRICING_ARGS.build(
        {
            "new_regular_price": new_regular_price,
            "new_discounted_price": new_discounted_price,
        }
    )
    accounts = [
        AccountMeta(config, is_signer=False, is_writable=True),
        AccountMeta(authority, is_signer=True, is_writable=True),
    ]
    return Instruction(program_id, data, accounts)


def send_transaction(
    client: Client, instruction: Instruction, signer: Keypair
) -> Signature:
    """Sign and submit a single-instruction transaction, then wait for it.

    Raises ``TransactionFailedError`` when the transaction lands with an
    execution error and ``TransactionTimeoutError`` when it is not confirmed
    before its blockhash expires. Preflight rejections surface as
    ``RPCException`` from the client.
    """
    blockhash_resp = client.get_latest_blockhash(Confirmed)
    blockhash = blockhash_resp.value.blockhash
    last_valid_block_height = blockhash_resp.value.last_valid_block_height

    tx = Transaction.new_unsigned(Message([instruction], signer.pubkey()))
    tx.sign([signer], blockhash)

    opts = TxOpts(
        skip_preflight=False,
        preflight_commitment=Confirmed,
        max_retries=SEND_MAX_RETRIES,
    )
    signature = client.send_raw_transaction(bytes(tx), opts=opts).value

    try:
        resp = client.confirm_transaction(
            signature,
            Confirmed,
            last_valid_block_height=last_valid_block_height,
        )
    except (UnconfirmedTxError, TransactionExpiredBlockheightExceededError) as err:
        raise TransactionTimeoutError(
            f"Transaction {signature} was not confirmed: {err}", signature
        ) from err

    statuses = resp.value or []
    status = statuses[0] if statuses else None
    if status is not None and status.err is not None:
        raise TransactionFailedError(
            f"Transaction failed: {status.err}", signature, status.err
        )
    return signature


def fetch_account(client: Client, pubkey: Pubkey) -> Optional[bytes]:
    value = client.get_account_info(pubkey, commitment=Confirmed).value
    if value is None:
        return None
    return bytes(value.data)


def fetch_config(client: Client, program_id: Pubkey) -> Optional[Config]:
    config_key, _ = pda_config(program_id)
    data = fetch_account(client, config_key)
    if not data:
        return None
    return decode_config(data)


def fetch_balance(client: Client, pubkey: Pubkey) -> int:
    return client.get_balance(pubkey, commitment=Confirmed).value


def explorer_url(signature, network: str) -> str:
    return f"https://explorer.solana.com/tx/{signature}?cluster={network}"


def extract_custom_error_code(err: Exception) -> int:
    if hasattr(err, "args") and err.args:
        for arg in err.args:
            data = getattr(arg, "data", None)
            err_data = getattr(data, "err", None)
            custom = getattr(getattr(err_data, "err", None), "code", None)
            if custom is None:
                custom = getattr(getattr(err_data, "value", None), "custom", None)
            if isinstance(custom, int):
                return custom
    texts = [str(err), repr(err)]
    if hasattr(err, "args"):
        texts.extend([str(arg) for arg in err.args if arg is not None])
    marker = "custom program error: 0x"
    for text in texts:
        if marker in text:
            try:
                hex_str = text.split(marker)[1].split()[0]
                return int(hex_str.rstrip(".,\"'"), 16)
            except ValueError:
                continue
        if "InstructionErrorCustom(" in text:
            try:
                num = text.split("InstructionErrorCustom(")[1].split(")")[0]
                return int(num)
            except ValueError:
                continue
    return -1


def error_name(code: int) -> Optional[str]:
    for name, value in ERROR_CODES.items():
        if value == code:
            return name
    return None


def extract_program_logs(err: Exception) -> List[str]:
    logs = getattr(err, "logs", None)
    if logs:
        return list(logs)
    for arg in getattr(err, "args", ()):
        data = getattr(arg, "data", None)
        logs = getattr(data, "logs", None)
        if logs:
            return list(logs)
    return []


def is_rate_limited(err: Exception) -> bool:
    texts = [str(err)]
    cause = err.__cause__ or err.__context__
    if cause is not None:
        texts.append(str(cause))
        response = getattr(cause, "response", None)
        if getattr(response, "status_code", None) == 429:
            return True
    return any("429" in text or "too many requests" in text.lower() for text in texts)

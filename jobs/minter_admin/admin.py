import sys
from typing import Callable, Optional

from solana.exceptions import SolanaRpcException
from solana.rpc.api import Client
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from minter_client import (
    LAMPORTS_PER_SOL,
    MinterAdminError,
    anchor_discriminator,
    decode_config,
    error_name,
    explorer_url,
    extract_custom_error_code,
    extract_program_logs,
    fetch_account,
    fetch_balance,
    fetch_config,
    instruction_initialize,
    instruction_update_pricing,
    instruction_withdraw,
    is_rate_limited,
    lamports_to_sol,
    pda_config,
    pda_payment_vault,
    send_transaction,
)
from minter_settings import (
    DEFAULT_NETWORK,
    ConfigError,
    MasterInfo,
    ProgramConfig,
    Settings,
    load_keypair,
    load_master_info,
    load_program_config,
    program_config_record,
    save_program_config,
)


CONFIRMATION_THRESHOLD_LAMPORTS = LAMPORTS_PER_SOL

Confirm = Callable[[str], bool]


class WithdrawalError(MinterAdminError):
    pass


def log(msg: str = "") -> None:
    print(msg, flush=True)


def log_error(msg: str = "") -> None:
    print(msg, file=sys.stderr, flush=True)


def format_sol(lamports: int, places: int = 9) -> str:
    return f"{lamports_to_sol(lamports):.{places}f}"


def terminal_confirm(prompt: str) -> bool:
    try:
        answer = input(prompt)
    except EOFError:
        return False
    return answer.strip().lower() == "y"


def resolve_withdraw_amount(balance: int, requested: Optional[int]) -> int:
    """Return the lamports to withdraw, or raise if the vault cannot cover it.

    ``None`` means the full balance.
    """
    if balance <= 0:
        raise WithdrawalError("Vault balance is 0. Nothing to withdraw.")
    if requested is None:
        return balance
    if requested <= 0:
        raise WithdrawalError("Amount must be greater than 0")
    if requested > balance:
        raise WithdrawalError(
            f"Requested amount ({requested} lamports) exceeds vault balance ({balance} lamports)"
        )
    return requested


def requires_confirmation(amount: int) -> bool:
    return amount >= CONFIRMATION_THRESHOLD_LAMPORTS


def print_config(config) -> None:
    log("\nCurrent Config:")
    log(f"  Authority: {config.authority}")
    log(f"  Master Mint: {config.master_mint}")
    log(f"  Regular Price: {format_sol(config.mint_price, 2)} SOL")
    log(f"  Discounted Price: {format_sol(config.discounted_price, 2)} SOL")
    log(f"  Total Minted: {config.total_minted}")
    log(f"  Payment Vault: {config.payment_vault}")


def initialize_program(
    client: Client,
    settings: Settings,
    signer: Keypair,
    master_info: MasterInfo,
) -> Optional[Signature]:
    """Create the program Config account and write program-config.json.

    When the Config account already exists nothing is sent; the existing
    account is printed and the local file is rewritten.
    """
    program_id = settings.program_id
    try:
        master_mint = Pubkey.from_string(master_info.master_mint)
    except ValueError as exc:
        raise ConfigError(f"Invalid master mint {master_info.master_mint}: {exc}") from exc

    log(f"Program ID: {program_id}")
    log(f"Authority: {signer.pubkey()}")
    log(f"Master Mint: {master_mint}")

    config_key, _ = pda_config(program_id)
    payment_vault, _ = pda_payment_vault(program_id)
    log("\nDerived PDAs:")
    log(f"Config PDA: {config_key}")
    log(f"Payment Vault PDA: {payment_vault}")

    record = program_config_record(
        program_id, config_key, payment_vault, master_info, settings.network
    )

    existing = fetch_account(client, config_key)
    if existing is not None:
        log("\nProgram already initialized!")
        log(f"Config account exists with {len(existing)} bytes")
        try:
            print_config(decode_config(existing))
        except Exception as exc:  # noqa: BLE001
            log(f"Could not parse config data: {exc}")
        save_program_config(settings.program_config_path, record)
        log(f"\nConfig saved to {settings.program_config_path}")
        return None

    log("\nInitializing program...")
    log(f"Discriminator: {anchor_discriminator('initialize').hex()}")
    instruction = instruction_initialize(program_id, signer.pubkey(), master_mint)

    log("\nConfirming transaction...")
    signature = send_transaction(client, instruction, signer)

    log("\nInitialization successful!")
    log(f"Transaction signature: {signature}")
    log(f"\nView on explorer: {explorer_url(signature, settings.network)}")

    save_program_config(settings.program_config_path, record)
    log(f"\nConfig saved to {settings.program_config_path}")
    log(f"Regular price: {record['mintPrice']} SOL (website)")
    log(f"Discounted price: {record['discountedPrice']} SOL (dapp)")
    return signature


def _warn_on_pda_drift(program_config: ProgramConfig) -> None:
    config_key, _ = pda_config(program_config.program_id)
    payment_vault, _ = pda_payment_vault(program_config.program_id)
    if config_key != program_config.config_pda:
        log(f"\nWarning: configPda {program_config.config_pda} does not match derived {config_key}")
    if payment_vault != program_config.payment_vault_pda:
        log(
            f"\nWarning: paymentVaultPda {program_config.payment_vault_pda} "
            f"does not match derived {payment_vault}"
        )


def withdraw_funds(
    client: Client,
    settings: Settings,
    signer: Keypair,
    program_config: ProgramConfig,
    amount: Optional[int],
    confirm: Confirm,
) -> Optional[Signature]:
    """Withdraw ``amount`` lamports (or everything) from the payment vault.

    Returns ``None`` without sending anything when ``confirm`` declines a
    withdrawal at or above the confirmation threshold.
    """
    log("\nProgram Details:")
    log(f"  Program ID: {program_config.program_id}")
    log(f"  Authority: {signer.pubkey()}")
    log(f"  Config PDA: {program_config.config_pda}")
    log(f"  Payment Vault: {program_config.payment_vault_pda}")
    _warn_on_pda_drift(program_config)

    vault_balance = fetch_balance(client, program_config.payment_vault_pda)
    withdraw_amount = resolve_withdraw_amount(vault_balance, amount)
    log(f"\nVault Balance: {format_sol(vault_balance)} SOL")

    if requires_confirmation(withdraw_amount):
        log(f"\nWARNING: You are about to withdraw {format_sol(withdraw_amount)} SOL")
        if not confirm("Are you sure you want to continue? (y/n): "):
            log("Withdrawal cancelled by user.")
            return None

    log(f"\nWithdrawing {format_sol(withdraw_amount)} SOL ({withdraw_amount} lamports)...")
    instruction = instruction_withdraw(
        program_config.program_id,
        program_config.config_pda,
        signer.pubkey(),
        program_config.payment_vault_pda,
        withdraw_amount,
    )

    log("\nSending transaction...")
    signature = send_transaction(client, instruction, signer)

    log("\nWithdrawal successful!")
    log(f"  Transaction signature: {signature}")
    network = program_config.network or settings.network
    log(f"  View on explorer: {explorer_url(signature, network)}")

    new_balance = fetch_balance(client, program_config.payment_vault_pda)
    log(f"\nNew Vault Balance: {format_sol(new_balance)} SOL")
    return signature


def update_pricing(
    client: Client,
    settings: Settings,
    signer: Keypair,
    program_config: ProgramConfig,
    new_regular_price: Optional[int],
    new_discounted_price: Optional[int],
) -> Signature:
    if new_regular_price is None and new_discounted_price is None:
        raise ValueError("At least one of the regular or discounted price is required")

    log(f"Program ID: {program_config.program_id}")
    log(f"Authority: {signer.pubkey()}")
    if new_regular_price is not None:
        log(f"New regular price: {format_sol(new_regular_price)} SOL ({new_regular_price} lamports)")
    if new_discounted_price is not None:
        log(
            f"New discounted price: {format_sol(new_discounted_price)} SOL "
            f"({new_discounted_price} lamports)"
        )

    instruction = instruction_update_pricing(
        program_config.program_id,
        program_config.config_pda,
        signer.pubkey(),
        new_regular_price,
        new_discounted_price,
    )

    log("\nSending transaction...")
    signature = send_transaction(client, instruction, signer)

    log("\nPricing updated!")
    log(f"  Transaction signature: {signature}")
    network = program_config.network or settings.network
    log(f"  View on explorer: {explorer_url(signature, network)}")

    config = fetch_config(client, program_config.program_id)
    if config:
        print_config(config)
    return signature


def show_config(client: Client, settings: Settings):
    program_id = settings.program_id
    config_key, _ = pda_config(program_id)
    payment_vault, _ = pda_payment_vault(program_id)
    log(f"Program ID: {program_id}")
    log(f"Config PDA: {config_key}")
    log(f"Payment Vault PDA: {payment_vault}")

    config = fetch_config(client, program_id)
    if config is None:
        log("\nProgram is not initialized.")
        return None
    print_config(config)
    log(f"\nVault Balance: {format_sol(fetch_balance(client, payment_vault))} SOL")
    return config


def report_failure(err: Exception, network: str = DEFAULT_NETWORK) -> None:
    log_error(f"\nError: {err}")

    signature = getattr(err, "signature", None)
    if signature is not None:
        log_error(f"  Failed transaction: {explorer_url(signature, network)}")

    if is_rate_limited(err):
        log_error("\nRate limited by RPC. Please wait a moment and try again.")

    code = extract_custom_error_code(err)
    name = error_name(code)
    if name:
        log_error(f"\nProgram error: {name} ({code})")

    logs = extract_program_logs(err)
    if logs:
        log_error("\nProgram logs:")
        for line in logs:
            log_error(f"  {line}")


def run_admin_command(
    command: Callable[[Client, Settings], object],
    environ=None,
    client_factory=Client,
) -> int:
    """Run ``command`` with settings from the environment and map failures to exit codes."""
    network = DEFAULT_NETWORK
    try:
        settings = Settings.from_env(environ)
        network = settings.network
        client = client_factory(settings.rpc_url, commitment=Confirmed)
        command(client, settings)
    except (MinterAdminError, RPCException, SolanaRpcException, ValueError) as err:
        report_failure(err, network)
        return 1
    return 0


def initialize_command(client: Client, settings: Settings):
    master_info = load_master_info(settings.master_info_path)
    signer = load_keypair(settings.keypair_path)
    return initialize_program(client, settings, signer, master_info)


def withdraw_command(amount: Optional[int], confirm: Confirm):
    def command(client: Client, settings: Settings):
        program_config = load_program_config(settings.program_config_path)
        signer = load_keypair(settings.keypair_path)
        return withdraw_funds(client, settings, signer, program_config, amount, confirm)

    return command


def update_pricing_command(new_regular_price: Optional[int], new_discounted_price: Optional[int]):
    def command(client: Client, settings: Settings):
        program_config = load_program_config(settings.program_config_path)
        signer = load_keypair(settings.keypair_path)
        return update_pricing(
            client, settings, signer, program_config, new_regular_price, new_discounted_price
        )

    return command


def show_config_command(client: Client, settings: Settings):
    return show_config(client, settings)

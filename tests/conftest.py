from unittest.mock import Mock

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from minter_client import DEFAULT_PROGRAM_ID, pda_config, pda_payment_vault
from minter_settings import MasterInfo, ProgramConfig, Settings


@pytest.fixture
def program_id():
    return Pubkey.from_string(DEFAULT_PROGRAM_ID)


@pytest.fixture
def signer():
    return Keypair()


@pytest.fixture
def settings(tmp_path, program_id):
    return Settings(
        rpc_url="http://localhost:8899",
        program_id=program_id,
        keypair_path=tmp_path / "id.json",
        master_info_path=tmp_path / "collection-master-info.json",
        program_config_path=tmp_path / "program-config.json",
        network="devnet",
    )


@pytest.fixture
def master_info():
    return MasterInfo(
        master_mint=str(Keypair().pubkey()),
        master_metadata=str(Keypair().pubkey()),
        master_edition=str(Keypair().pubkey()),
    )


@pytest.fixture
def program_config(program_id):
    return ProgramConfig(
        program_id=program_id,
        config_pda=pda_config(program_id)[0],
        payment_vault_pda=pda_payment_vault(program_id)[0],
        network="devnet",
    )


def make_client(balance=0, account_data=None, status_err=None):
    """Build a mock RPC client whose responses mimic solana-py's typed responses."""
    client = Mock()
    client.get_latest_blockhash.return_value.value.blockhash = Hash.default()
    client.get_latest_blockhash.return_value.value.last_valid_block_height = 1_000
    client.send_raw_transaction.return_value.value = Signature.default()
    client.confirm_transaction.return_value.value = [Mock(err=status_err)]
    client.get_balance.return_value.value = balance
    if account_data is None:
        client.get_account_info.return_value.value = None
    else:
        client.get_account_info.return_value.value = Mock(data=account_data)
    return client

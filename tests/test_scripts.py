"""
Tests for the command-line entry points under scripts/.
"""

import importlib.util
from pathlib import Path
from unittest.mock import Mock

import pytest

from admin import terminal_confirm

SCRIPTS_DIR = Path(__file__).resolve().parent.parent / "scripts"


def load_script(filename: str, module_name: str):
    spec = importlib.util.spec_from_file_location(module_name, SCRIPTS_DIR / filename)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def withdraw_script():
    return load_script("withdraw-funds.py", "withdraw_funds_script")


@pytest.fixture
def update_pricing_script():
    return load_script("update-pricing.py", "update_pricing_script")


class TestWithdrawArgs:
    def test_no_amount_means_full_balance(self, withdraw_script):
        args = withdraw_script.parse_args([])
        assert args.amount is None
        assert args.yes is False

    def test_amount(self, withdraw_script):
        assert withdraw_script.parse_args(["250000000"]).amount == 250_000_000

    @pytest.mark.parametrize("raw", ["abc", "0", "-5", "1.5"])
    def test_rejects_non_positive_integers(self, withdraw_script, raw, capsys):
        with pytest.raises(SystemExit) as excinfo:
            withdraw_script.parse_args([raw])
        assert excinfo.value.code == 2
        assert "Amount must be" in capsys.readouterr().err

    def test_main_rejects_bad_amount_before_running(self, withdraw_script, monkeypatch):
        run = Mock(return_value=0)
        monkeypatch.setattr(withdraw_script, "run_admin_command", run)

        with pytest.raises(SystemExit) as excinfo:
            withdraw_script.main(["abc"])

        assert excinfo.value.code == 2
        run.assert_not_called()


class TestWithdrawMain:
    def test_yes_passes_approving_confirm(self, withdraw_script, monkeypatch):
        command = Mock()
        run = Mock(return_value=0)
        monkeypatch.setattr(withdraw_script, "withdraw_command", command)
        monkeypatch.setattr(withdraw_script, "run_admin_command", run)

        assert withdraw_script.main(["--yes", "2000000000"]) == 0

        amount, confirm = command.call_args.args
        assert amount == 2_000_000_000
        assert confirm("Are you sure you want to continue? (y/n): ") is True
        run.assert_called_once_with(command.return_value)

    def test_prompts_on_terminal_by_default(self, withdraw_script, monkeypatch):
        command = Mock()
        monkeypatch.setattr(withdraw_script, "withdraw_command", command)
        monkeypatch.setattr(withdraw_script, "run_admin_command", Mock(return_value=0))

        withdraw_script.main([])

        amount, confirm = command.call_args.args
        assert amount is None
        assert confirm is terminal_confirm

    def test_failure_exit_code_is_returned(self, withdraw_script, monkeypatch):
        monkeypatch.setattr(withdraw_script, "run_admin_command", Mock(return_value=1))
        assert withdraw_script.main(["10"]) == 1


class TestUpdatePricingArgs:
    def test_requires_a_price(self, update_pricing_script, capsys):
        with pytest.raises(SystemExit) as excinfo:
            update_pricing_script.parse_args([])
        assert excinfo.value.code == 2
        assert "at least one of --regular or --discounted" in capsys.readouterr().err

    def test_rejects_non_integer(self, update_pricing_script):
        with pytest.raises(SystemExit) as excinfo:
            update_pricing_script.parse_args(["--regular", "abc"])
        assert excinfo.value.code == 2

    def test_single_price(self, update_pricing_script):
        args = update_pricing_script.parse_args(["--discounted", "50000000"])
        assert args.regular is None
        assert args.discounted == 50_000_000

    def test_main_passes_prices(self, update_pricing_script, monkeypatch):
        command = Mock()
        run = Mock(return_value=0)
        monkeypatch.setattr(update_pricing_script, "update_pricing_command", command)
        monkeypatch.setattr(update_pricing_script, "run_admin_command", run)

        assert update_pricing_script.main(["--regular", "300000000"]) == 0

        command.assert_called_once_with(300_000_000, None)
        run.assert_called_once_with(command.return_value)


class TestTerminalConfirm:
    @pytest.mark.parametrize("answer,expected", [("y", True), ("Y\n", True), ("n", False), ("", False)])
    def test_answers(self, monkeypatch, answer, expected):
        monkeypatch.setattr("builtins.input", lambda _prompt: answer)
        assert terminal_confirm("continue? ") is expected

    def test_eof_declines(self, monkeypatch):
        def raise_eof(_prompt):
            raise EOFError

        monkeypatch.setattr("builtins.input", raise_eof)
        assert terminal_confirm("continue? ") is False

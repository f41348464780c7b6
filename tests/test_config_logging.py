"""
Test suite for configuration and structured logging
"""

import json
import logging
import pytest

from branch_banking import config as config_module
from branch_banking.accounts import AccountNumberSequence, CurrentAccount, SavingsAccount
from branch_banking.errors import InsufficientFunds
from branch_banking.config import BankConfig, get_config, reload_config
from branch_banking.logging_config import JSONFormatter, get_logger, log_action, setup_logging


@pytest.fixture
def bank_env(monkeypatch):
    """Environment overrides that are rolled back, with config reloaded, after the test"""
    yield monkeypatch
    monkeypatch.undo()
    reload_config()


class TestConfig:
    """Test environment-driven configuration"""

    def test_defaults(self, monkeypatch):
        for name in ("BANK_DEFAULT_CURRENCY", "BANK_FIRST_ACCOUNT_NUMBER",
                     "BANK_SAVINGS_MAX_WITHDRAWALS"):
            monkeypatch.delenv(name, raising=False)
        config = BankConfig(_env_file=None)

        assert config.default_currency == "GBP"
        assert config.first_account_number == 10001
        assert config.savings_max_withdrawals == 4
        assert config.interest_days_per_year == 365
        assert config.api_port == 8090

    def test_environment_override(self, bank_env):
        bank_env.setenv("BANK_FIRST_ACCOUNT_NUMBER", "500")
        bank_env.setenv("BANK_SAVINGS_MAX_WITHDRAWALS", "2")
        reload_config()

        assert get_config() is config_module.config
        assert AccountNumberSequence().peek() == 500
        assert SavingsAccount(sequence=AccountNumberSequence()).max_withdrawals == 2


class TestStructuredLogging:
    """Test JSON log output"""

    def test_json_formatter(self):
        record = logging.LogRecord("branch_banking.test", logging.INFO, __file__, 1,
                                   "Deposited", (), None)
        record.user_id = "tom"
        record.action = "deposit"
        record.account = 10001

        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "Deposited"
        assert entry["level"] == "INFO"
        assert entry["user_id"] == "tom"
        assert entry["action"] == "deposit"
        assert entry["account"] == 10001
        assert "resource" not in entry
        assert "error_kind" not in entry

    def test_setup_logging(self):
        logger = setup_logging("DEBUG", logger_name="branch_banking_setup_test")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)

        setup_logging("INFO", logger_name="branch_banking_setup_test", log_format="text")
        assert len(logger.handlers) == 1
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_setup_logging_defaults_from_config(self, bank_env):
        bank_env.setenv("BANK_LOG_LEVEL", "WARNING")
        bank_env.setenv("BANK_LOG_FORMAT", "text")
        reload_config()

        logger = setup_logging(logger_name="branch_banking_config_test")
        assert logger.level == logging.WARNING
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_log_action_carries_structured_fields(self, caplog):
        logger = get_logger("branch_banking.test_actions")
        with caplog.at_level(logging.INFO, logger="branch_banking.test_actions"):
            log_action(logger, "info", "Closed account", user_id="tom",
                       action="close_account", resource="account:10001",
                       branch="20-00-01")

        record = caplog.records[-1]
        assert record.getMessage() == "Closed account"
        assert record.user_id == "tom"
        assert record.resource == "account:10001"
        assert record.branch == "20-00-01"

    def test_log_action_respects_level(self, caplog):
        logger = get_logger("branch_banking.test_quiet")
        with caplog.at_level(logging.WARNING, logger="branch_banking.test_quiet"):
            log_action(logger, "info", "Not recorded")
        assert not caplog.records

    def test_refusals_carry_error_kind(self, caplog):
        account = CurrentAccount(10, sequence=AccountNumberSequence(start=10001))
        with caplog.at_level(logging.WARNING, logger="branch_banking.accounts"):
            with pytest.raises(InsufficientFunds):
                account.withdraw(50)

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.account == 10001
        assert record.action == "withdraw"
        assert record.error_kind == "insufficient_funds"

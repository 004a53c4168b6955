import os
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from position_gateway.api.http.execution_app import ExecutionApp
from position_gateway.execution.gateway_service import GatewayService
from position_gateway.execution.reconciliation import ReconciliationEngine

from .fake_backend import FakeBackend


def make_config(account="Sim101"):
    """Minimal config required by GatewayService"""
    return SimpleNamespace(
        account=account,
        is_telegram_enabled=lambda: False,
        get_telegram_config=lambda: None,
    )


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def engine(fake_backend):
    return ReconciliationEngine(fake_backend)


@pytest.fixture
def telegram():
    notifier = MagicMock()
    notifier.send_partial_execution.return_value = True
    return notifier


@pytest.fixture
def gateway(fake_backend, telegram):
    return GatewayService(make_config(), fake_backend, telegram=telegram)


@pytest.fixture
def client(gateway):
    app = ExecutionApp(gateway).get_app()
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def clean_env():
    # load_dotenv writes into os.environ; restore it after each test
    with patch.dict(os.environ, {}, clear=True):
        yield


@pytest.fixture
def write_env(tmp_path, clean_env):
    def _write(**values):
        path = tmp_path / "test.env"
        path.write_text("".join(f"{k}={v}\n" for k, v in values.items()))
        path.chmod(0o600)
        return path

    return _write

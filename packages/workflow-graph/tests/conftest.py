import pytest

from workflow_graph.config import CONFIG_ENV_VAR, clear_config_cache


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Run every test without a user config file."""
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    clear_config_cache()
    yield
    clear_config_cache()

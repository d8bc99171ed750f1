import pytest

from psptree import config as px_config

_ENV_KEYS = (
    "PSPTREE_METRIC",
    "PSPTREE_LOG_LEVEL",
    "PSPTREE_ENABLE_DIAGNOSTICS",
    "PSPTREE_SENTINEL_SEED",
)


@pytest.fixture(autouse=True)
def _clean_runtime(monkeypatch: pytest.MonkeyPatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    px_config.reset_runtime_config_cache()
    yield
    px_config.reset_runtime_config_cache()

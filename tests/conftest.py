import pytest

ENV_VARS = (
    "HUBSPOT_ACCESS_TOKEN",
    "SANTRAL_API_KEY",
    "HUBSPOT_API_BASE_URL",
    "SANTRAL_API_BASE_URL",
    "MAX_REQUESTS_PER_MINUTE",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path

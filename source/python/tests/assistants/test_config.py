import httpx
import pytest

from parley.assistants.config import AssistantConfiguration, PollingConfiguration, get_api_key


class TestPollingConfiguration:
  def test_defaults(self):
    polling = PollingConfiguration()

    assert polling.run_polling_interval == 0.5
    assert polling.run_polling_backoff == 1.0
    assert polling.message_synchronization_delay == 0.5

  def test_negative_values_are_rejected(self):
    with pytest.raises(ValueError, match="run_polling_interval"):
      PollingConfiguration(run_polling_interval=-1)

  def test_from_env(self, monkeypatch):
    monkeypatch.setenv("PARLEY_RUN_POLLING_INTERVAL", "0.25")
    monkeypatch.setenv("PARLEY_RUN_POLLING_BACKOFF", "not-a-number")
    monkeypatch.delenv("PARLEY_MESSAGE_SYNCHRONIZATION_DELAY", raising=False)

    polling = PollingConfiguration.from_env()

    assert polling.run_polling_interval == 0.25
    assert polling.run_polling_backoff == 1.0, "invalid values fall back to the default"
    assert polling.message_synchronization_delay == 0.5


class TestAssistantConfiguration:
  def test_api_key_is_required(self):
    with pytest.raises(ValueError):
      AssistantConfiguration(api_key="")

  def test_from_env_with_azure(self, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://example.openai.azure.com")
    monkeypatch.setenv("OPENAI_API_VERSION", "2024-05-01-preview")
    client = httpx.AsyncClient(base_url="https://proxy.example.com")

    config = AssistantConfiguration.from_env(http_client=client)

    assert config.api_key == "sk-env"
    assert config.endpoint == "https://example.openai.azure.com"
    assert config.version == "2024-05-01-preview"
    assert config.http_client is client

  def test_api_key_from_file(self, monkeypatch, tmp_path):
    key_file = tmp_path / "key"
    key_file.write_text("sk-from-file\n")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setenv("OPENAI_API_KEY_FILE", str(key_file))

    assert get_api_key() == "sk-from-file"

  def test_missing_api_key(self, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY_FILE", raising=False)

    with pytest.raises(ValueError, match="No API key configured"):
      get_api_key()

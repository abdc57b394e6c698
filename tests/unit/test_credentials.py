"""
Tests for the credential vault and its backends.
"""

import pytest

from stepflow.exceptions import ConfigurationError
from stepflow.security import (
    Credential,
    CredentialVault,
    EnvironmentCredentialBackend,
    MemoryCredentialBackend,
)


class TestEnvironmentBackend:
    """Test reading credentials from STEPFLOW_CRED_* variables."""

    def test_retrieve(self, monkeypatch):
        monkeypatch.setenv("STEPFLOW_CRED_TEAM_SLACK_TYPE", "Slack")
        monkeypatch.setenv("STEPFLOW_CRED_TEAM_SLACK_TOKEN", "xoxb-1")

        credential = EnvironmentCredentialBackend().retrieve("team-slack")
        assert credential.type == "slack"
        assert credential.data == {"token": "xoxb-1"}

    def test_multi_word_fields(self, monkeypatch):
        monkeypatch.setenv("STEPFLOW_CRED_BOT_BOT_TOKEN", "abc")
        credential = EnvironmentCredentialBackend().retrieve("bot")
        assert credential.first("token", "bot_token") == "abc"
        assert credential.type is None

    def test_missing(self, monkeypatch):
        monkeypatch.delenv("STEPFLOW_CRED_NOPE_TOKEN", raising=False)
        assert EnvironmentCredentialBackend().retrieve("nope") is None

    def test_list_ids(self, monkeypatch):
        monkeypatch.setenv("MYAPP_TEAM_SLACK_TYPE", "slack")
        monkeypatch.setenv("MYAPP_X_TYPE", "twitter")
        monkeypatch.setenv("MYAPP_X_API_KEY", "ck")
        assert EnvironmentCredentialBackend(prefix="MYAPP").list_ids() == ["team-slack", "x"]


class TestCredentialVault:
    """Test lookup, type checks and field resolution."""

    @pytest.fixture
    def memory_vault(self):
        return CredentialVault(MemoryCredentialBackend([
            Credential(id="team-slack", type="slack", data={"token": "xoxb-test"}),
            Credential(id="untyped", data={"api_key": "k"}),
        ]))

    def test_resolve(self, memory_vault):
        assert memory_vault.resolve("team-slack", "slack", "bot_token", "token") == "xoxb-test"

    def test_untyped_credential_matches_any_type(self, memory_vault):
        assert memory_vault.resolve("untyped", "openai", "api_key") == "k"

    def test_missing_credential(self, memory_vault):
        with pytest.raises(ConfigurationError, match="Invalid or missing credential: ghost"):
            memory_vault.require("ghost")

    def test_wrong_type(self, memory_vault):
        with pytest.raises(ConfigurationError, match="expected discord"):
            memory_vault.require("team-slack", "discord")

    def test_missing_fields(self, memory_vault):
        with pytest.raises(ConfigurationError, match="has none of the fields"):
            memory_vault.resolve("team-slack", "slack", "webhook_url")

    def test_get_is_cached(self):
        backend = MemoryCredentialBackend([Credential(id="a", data={"token": "1"})])
        vault = CredentialVault(backend)
        first = vault.get("a")
        backend.add(Credential(id="a", data={"token": "2"}))
        assert vault.get("a") is first

    def test_list_credentials(self, memory_vault):
        assert memory_vault.list_credentials() == ["team-slack", "untyped"]

"""
Credential Vault - resolve ``credentialId`` references in steps.

Steps may carry tokens inline or point at a stored credential by id. The
vault hides where credentials live; the default backend reads them from
environment variables so secrets never need to appear in a graph file.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
import logging
import os

from stepflow.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class Credential:
    """
    A stored credential.

    Attributes:
        id: Credential identifier referenced by steps
        type: Service the credential belongs to ('slack', 'discord', ...)
        data: Secret fields, keyed in snake_case (token, bot_token, api_key, ...)
    """
    id: str
    type: Optional[str] = None
    data: Dict[str, str] = field(default_factory=dict)

    def first(self, *keys: str) -> Optional[str]:
        """Value of the first non-empty field among ``keys``."""
        for key in keys:
            value = self.data.get(key)
            if value:
                return value
        return None


class ICredentialBackend(ABC):
    """Abstract backend for credential storage."""

    @abstractmethod
    def retrieve(self, credential_id: str) -> Optional[Credential]:
        """Retrieve a credential by id."""
        ...

    @abstractmethod
    def list_ids(self) -> List[str]:
        """List all credential ids."""
        ...


class EnvironmentCredentialBackend(ICredentialBackend):
    """
    Credential backend using environment variables.

    A credential ``my-slack`` is read from:
    - {PREFIX}_MY_SLACK_TYPE (optional)
    - {PREFIX}_MY_SLACK_<FIELD> for every other field, e.g. _TOKEN, _BOT_TOKEN
    """

    def __init__(self, prefix: str = "STEPFLOW_CRED"):
        self.prefix = prefix

    def _key(self, credential_id: str) -> str:
        return f"{self.prefix}_{credential_id.upper().replace('-', '_')}_"

    def retrieve(self, credential_id: str) -> Optional[Credential]:
        """Retrieve credential from environment."""
        key_prefix = self._key(credential_id)
        data: Dict[str, str] = {}
        cred_type: Optional[str] = None
        for key, value in os.environ.items():
            if not key.startswith(key_prefix):
                continue
            field_name = key[len(key_prefix):].lower()
            if field_name == "type":
                cred_type = value.lower()
            else:
                data[field_name] = value

        if not data:
            return None
        return Credential(id=credential_id, type=cred_type, data=data)

    def list_ids(self) -> List[str]:
        """List credential ids that declare a type."""
        ids = set()
        for key in os.environ:
            if key.startswith(f"{self.prefix}_") and key.endswith("_TYPE"):
                ids.add(key[len(self.prefix) + 1:-5].lower().replace("_", "-"))
        return sorted(ids)


class MemoryCredentialBackend(ICredentialBackend):
    """In-process credential storage, used for embedding and tests."""

    def __init__(self, credentials: Optional[Sequence[Credential]] = None):
        self._credentials = {c.id: c for c in credentials or []}

    def add(self, credential: Credential) -> None:
        self._credentials[credential.id] = credential

    def retrieve(self, credential_id: str) -> Optional[Credential]:
        return self._credentials.get(credential_id)

    def list_ids(self) -> List[str]:
        return sorted(self._credentials)


class CredentialVault:
    """
    Credential lookup with type checking.

    Example:
        >>> vault = CredentialVault()
        >>> token = vault.resolve("team-slack", "slack", "token", "bot_token")
    """

    def __init__(self, backend: Optional[ICredentialBackend] = None):
        self._backend = backend or EnvironmentCredentialBackend()
        self._cache: Dict[str, Credential] = {}

    def get(self, credential_id: str) -> Optional[Credential]:
        """Get a credential by id, or None if it does not exist."""
        if credential_id in self._cache:
            return self._cache[credential_id]

        credential = self._backend.retrieve(credential_id)
        if credential:
            self._cache[credential_id] = credential
        return credential

    def require(self, credential_id: str, expected_type: Optional[str] = None) -> Credential:
        """
        Get a credential that must exist and match ``expected_type``.

        Raises:
            ConfigurationError: If the credential is missing or of another type
        """
        credential = self.get(credential_id)
        if credential is None:
            raise ConfigurationError(
                f"Invalid or missing credential: {credential_id}",
                {"credential_id": credential_id},
            )
        if expected_type and credential.type and credential.type != expected_type:
            raise ConfigurationError(
                f"Credential {credential_id} is a {credential.type} credential, expected {expected_type}",
                {"credential_id": credential_id},
            )
        return credential

    def resolve(self, credential_id: str, expected_type: Optional[str], *fields: str) -> str:
        """
        Fetch the first non-empty field among ``fields``.

        Raises:
            ConfigurationError: If the credential or every field is missing
        """
        credential = self.require(credential_id, expected_type)
        value = credential.first(*fields)
        if not value:
            raise ConfigurationError(
                f"Credential {credential_id} has none of the fields {list(fields)}",
                {"credential_id": credential_id},
            )
        logger.debug(f"Resolved credential {credential_id}")
        return value

    def list_credentials(self) -> List[str]:
        """List all known credential ids."""
        return self._backend.list_ids()

"""
Security module - credential resolution for service steps.
"""

from stepflow.security.credential_vault import (
    Credential,
    CredentialVault,
    EnvironmentCredentialBackend,
    ICredentialBackend,
    MemoryCredentialBackend,
)

__all__ = [
    "Credential",
    "CredentialVault",
    "EnvironmentCredentialBackend",
    "ICredentialBackend",
    "MemoryCredentialBackend",
]

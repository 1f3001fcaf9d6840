"""
authbridge.directory

LLDAP directory backend package.

Responsibilities:
- Own the bearer session (login + periodic re-login).
- Expose user lookup, creation and group-membership operations over GraphQL.
"""

from authbridge.directory.client import DirectoryClient
from authbridge.directory.credentials import CredentialManager
from authbridge.directory.models import DirectoryUser

__all__ = ["CredentialManager", "DirectoryClient", "DirectoryUser"]

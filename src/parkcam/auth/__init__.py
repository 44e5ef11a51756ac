"""Auth module for Cloud Storage OAuth2 credentials."""

from parkcam.auth.oauth import SCOPES, CredentialProvider

__all__ = ["SCOPES", "CredentialProvider"]

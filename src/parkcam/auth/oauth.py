"""Cloud Storage OAuth2 credentials with an on-disk token cache.

The agent runs headless, so authorization is a two-step affair: the first run
prints a consent URL and exits, the operator reruns with ``--code`` and the
exchanged token is cached for every later start.
"""

from pathlib import Path

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error
from requests import RequestException

from parkcam.config import Settings
from parkcam.errors import AuthorizationRequired, CredentialExchangeError
from parkcam.logging import auth_logger

logger = auth_logger()

# Full control is needed to create buckets and write object ACLs
SCOPES = ["https://www.googleapis.com/auth/devstorage.full_control"]

AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URL = "https://accounts.google.com/o/oauth2/token"
REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"


class CredentialProvider:
    """Supplies valid storage credentials, exchanging a code when needed."""

    def __init__(self, config: Settings) -> None:
        """Initialize the provider.

        Args:
            config: Settings with cache file, client id/secret or secrets
                file, and an optional configured oauth_code
        """
        self.config = config
        self.cache_path: Path = config.cache_file

    def _ensure_cache_dir(self) -> None:
        """Ensure the token cache directory exists."""
        self.cache_path.parent.mkdir(parents=True, exist_ok=True)

    def _save(self, creds: Credentials) -> None:
        self._ensure_cache_dir()
        self.cache_path.write_text(creds.to_json())

    def _flow(self) -> Flow:
        """Create the OAuth flow from a secrets file or client id/secret."""
        if self.config.client_secrets_file:
            return Flow.from_client_secrets_file(
                str(self.config.client_secrets_file),
                scopes=SCOPES,
                redirect_uri=REDIRECT_URI,
                autogenerate_code_verifier=False,
            )

        if not (self.config.client_id and self.config.client_secret):
            raise CredentialExchangeError(
                "No OAuth client configured. Set PARKCAM_CLIENT_ID and "
                "PARKCAM_CLIENT_SECRET or PARKCAM_CLIENT_SECRETS_FILE."
            )

        client_config = {
            "installed": {
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "auth_uri": AUTH_URL,
                "token_uri": TOKEN_URL,
                "redirect_uris": [REDIRECT_URI],
            }
        }
        return Flow.from_client_config(
            client_config,
            scopes=SCOPES,
            redirect_uri=REDIRECT_URI,
            autogenerate_code_verifier=False,
        )

    def load_cached(self) -> Credentials | None:
        """Load cached credentials, refreshing them if they have expired.

        Returns:
            Valid credentials, or None if the cache is missing or unusable.

        Raises:
            CredentialExchangeError: If a refresh was attempted and failed
        """
        if not self.cache_path.exists():
            return None

        try:
            creds = Credentials.from_authorized_user_file(str(self.cache_path), SCOPES)
        except ValueError as e:
            logger.warning(
                "Ignoring unreadable token cache",
                extra={"cache_file": str(self.cache_path), "error": str(e)},
            )
            return None

        if creds.valid:
            return creds

        if creds.expired and creds.refresh_token:
            try:
                creds.refresh(Request())
            except GoogleAuthError as e:
                raise CredentialExchangeError(f"Token refresh failed: {e}") from e
            self._save(creds)
            logger.info("Token refreshed", extra={"cache_file": str(self.cache_path)})
            return creds

        return None

    def authorization_url(self) -> str:
        """Return the consent URL the operator must visit to get a code."""
        url, _ = self._flow().authorization_url(access_type="offline", prompt="consent")
        return url

    def exchange(self, code: str) -> Credentials:
        """Exchange an authorization code for a token and cache it.

        Raises:
            CredentialExchangeError: If the token endpoint rejects the code
        """
        flow = self._flow()
        try:
            flow.fetch_token(code=code)
        except (OAuth2Error, RequestException, ValueError) as e:
            raise CredentialExchangeError(f"Exchange: {e}") from e

        creds = flow.credentials
        self._save(creds)
        logger.info("Token is cached", extra={"cache_file": str(self.cache_path)})
        return creds

    def get_credentials(self, code: str | None = None) -> Credentials:
        """Return usable credentials.

        Order: cached token, then the code argument (--code), then the
        configured oauth_code.

        Raises:
            AuthorizationRequired: If there is no token and no code
            CredentialExchangeError: If refresh or exchange fails
        """
        creds = self.load_cached()
        if creds is not None:
            return creds

        code = code or self.config.oauth_code
        if not code:
            raise AuthorizationRequired(self.authorization_url())

        return self.exchange(code)

"""Tests for the OAuth credential provider with the token cache."""

from unittest.mock import MagicMock, patch

import pytest
from google.auth.exceptions import RefreshError
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from parkcam.auth import SCOPES, CredentialProvider
from parkcam.auth.oauth import REDIRECT_URI
from parkcam.errors import AuthorizationRequired, CredentialExchangeError


@pytest.fixture
def configured(settings):
    return settings.model_copy(
        update={"client_id": "id.apps.googleusercontent.com", "client_secret": "shh"}
    )


@pytest.fixture
def mock_flow():
    flow = MagicMock()
    flow.authorization_url.return_value = ("https://accounts.google.com/o/oauth2/auth?x=1", "state")
    flow.credentials.to_json.return_value = '{"token": "fresh"}'
    with patch("parkcam.auth.oauth.Flow.from_client_config", return_value=flow) as factory:
        flow.factory = factory
        yield flow


class TestAuthorizationRequired:
    def test_no_cache_and_no_code(self, configured, mock_flow):
        provider = CredentialProvider(configured)

        with pytest.raises(AuthorizationRequired) as exc_info:
            provider.get_credentials()

        assert exc_info.value.auth_url == "https://accounts.google.com/o/oauth2/auth?x=1"
        mock_flow.fetch_token.assert_not_called()

    def test_flow_uses_storage_scope_and_oob_redirect(self, configured, mock_flow):
        CredentialProvider(configured).authorization_url()

        kwargs = mock_flow.factory.call_args.kwargs
        client_config = mock_flow.factory.call_args.args[0]
        assert kwargs["scopes"] == SCOPES
        assert kwargs["redirect_uri"] == REDIRECT_URI
        assert client_config["installed"]["client_id"] == "id.apps.googleusercontent.com"

    def test_no_client_configured(self, settings):
        with pytest.raises(CredentialExchangeError, match="No OAuth client"):
            CredentialProvider(settings).get_credentials()


class TestExchange:
    def test_code_argument_is_exchanged_and_cached(self, configured, mock_flow):
        provider = CredentialProvider(configured)

        creds = provider.get_credentials("4/abc")

        mock_flow.fetch_token.assert_called_once_with(code="4/abc")
        assert creds is mock_flow.credentials
        assert configured.cache_file.read_text() == '{"token": "fresh"}'

    def test_configured_code_used_when_no_argument(self, configured, mock_flow):
        config = configured.model_copy(update={"oauth_code": "4/from-config"})

        CredentialProvider(config).get_credentials()

        mock_flow.fetch_token.assert_called_once_with(code="4/from-config")

    def test_argument_wins_over_configured_code(self, configured, mock_flow):
        config = configured.model_copy(update={"oauth_code": "4/from-config"})

        CredentialProvider(config).get_credentials("4/from-flag")

        mock_flow.fetch_token.assert_called_once_with(code="4/from-flag")

    def test_rejected_code(self, configured, mock_flow):
        mock_flow.fetch_token.side_effect = OAuth2Error(description="invalid_grant")

        with pytest.raises(CredentialExchangeError):
            CredentialProvider(configured).get_credentials("4/bad")

        assert not configured.cache_file.exists()


class TestCachedToken:
    def test_valid_cached_token_skips_exchange(self, configured, mock_flow):
        configured.cache_file.write_text("{}")
        cached = MagicMock(valid=True)

        with patch(
            "parkcam.auth.oauth.Credentials.from_authorized_user_file", return_value=cached
        ):
            creds = CredentialProvider(configured).get_credentials("4/ignored")

        assert creds is cached
        mock_flow.fetch_token.assert_not_called()

    def test_expired_token_is_refreshed(self, configured, mock_flow):
        configured.cache_file.write_text("{}")
        cached = MagicMock(valid=False, expired=True, refresh_token="r")
        cached.to_json.return_value = '{"token": "refreshed"}'

        with patch(
            "parkcam.auth.oauth.Credentials.from_authorized_user_file", return_value=cached
        ):
            creds = CredentialProvider(configured).get_credentials()

        cached.refresh.assert_called_once()
        assert creds is cached
        assert configured.cache_file.read_text() == '{"token": "refreshed"}'

    def test_refresh_failure(self, configured, mock_flow):
        configured.cache_file.write_text("{}")
        cached = MagicMock(valid=False, expired=True, refresh_token="r")
        cached.refresh.side_effect = RefreshError("revoked")

        with patch(
            "parkcam.auth.oauth.Credentials.from_authorized_user_file", return_value=cached
        ):
            with pytest.raises(CredentialExchangeError):
                CredentialProvider(configured).get_credentials()

    def test_unreadable_cache_needs_authorization(self, configured, mock_flow):
        configured.cache_file.write_text("not json")

        with pytest.raises(AuthorizationRequired):
            CredentialProvider(configured).get_credentials()

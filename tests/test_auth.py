"""
Tests for autopilot_tools.auth module.
"""

from unittest.mock import patch

import pytest

from autopilot_tools import auth
from autopilot_tools.errors import AuthenticationError
from autopilot_tools.graph import GraphSession


class TestConnectApp:
    """Tests for client credential authentication."""

    def test_success(self):
        """A token result produces a session carrying that token."""
        with patch("autopilot_tools.auth.msal.ConfidentialClientApplication") as app_cls:
            app_cls.return_value.acquire_token_for_client.return_value = {"access_token": "tok"}

            s = auth.connect_app("contoso.onmicrosoft.com", "app-id", "secret")

        assert isinstance(s, GraphSession)
        assert s.token == "tok"
        app_cls.assert_called_once_with(
            "app-id",
            authority="https://login.microsoftonline.com/contoso.onmicrosoft.com",
            client_credential="secret",
        )
        app_cls.return_value.acquire_token_for_client.assert_called_once_with(scopes=auth.APP_SCOPES)

    def test_failure(self):
        """An error result is an AuthenticationError with the server's description."""
        with patch("autopilot_tools.auth.msal.ConfidentialClientApplication") as app_cls:
            app_cls.return_value.acquire_token_for_client.return_value = {
                "error": "invalid_client",
                "error_description": "AADSTS7000215: Invalid client secret",
            }
            with pytest.raises(AuthenticationError, match="AADSTS7000215"):
                auth.connect_app("t", "a", "s")

    def test_missing_credentials(self):
        """Nothing is sent when a credential is missing."""
        with patch("autopilot_tools.auth.msal.ConfidentialClientApplication") as app_cls:
            with pytest.raises(AuthenticationError):
                auth.connect_app("t", "a", "")
        app_cls.assert_not_called()

    def test_from_env(self, app_env):
        with patch("autopilot_tools.auth.msal.ConfidentialClientApplication") as app_cls:
            app_cls.return_value.acquire_token_for_client.return_value = {"access_token": "tok"}
            s = auth.connect_from_env()
        assert s.token == "tok"
        assert app_cls.call_args.args[0] == "app-id"


class TestConnectInteractive:
    """Tests for delegated authentication."""

    def test_browser(self):
        with patch("autopilot_tools.auth.msal.PublicClientApplication") as app_cls:
            app_cls.return_value.acquire_token_interactive.return_value = {"access_token": "tok"}

            s = auth.connect_interactive()

        assert s.token == "tok"
        scopes = app_cls.return_value.acquire_token_interactive.call_args.kwargs["scopes"]
        assert "DeviceManagementServiceConfig.ReadWrite.All" in scopes
        assert app_cls.call_args.args[0] == auth.DEFAULT_PUBLIC_CLIENT_ID

    def test_device_code(self, capsys):
        """The device code prompt is printed for the operator."""
        with patch("autopilot_tools.auth.msal.PublicClientApplication") as app_cls:
            app = app_cls.return_value
            app.initiate_device_flow.return_value = {"user_code": "ABCD", "message": "Go to https://microsoft.com/devicelogin"}
            app.acquire_token_by_device_flow.return_value = {"access_token": "tok"}

            s = auth.connect_interactive(tenant_id="contoso.onmicrosoft.com", device_code=True)

        assert s.token == "tok"
        assert "devicelogin" in capsys.readouterr().out

    def test_device_code_not_started(self):
        with patch("autopilot_tools.auth.msal.PublicClientApplication") as app_cls:
            app_cls.return_value.initiate_device_flow.return_value = {"error_description": "bad scope"}
            with pytest.raises(AuthenticationError, match="bad scope"):
                auth.connect_interactive(device_code=True)

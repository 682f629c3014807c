import asyncio
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import httpx

from mentorline.services.alert_service import alert_error, alert_warning, format_alert, send_alert


class TestFormatAlert:
    def test_includes_level_and_message(self):
        text = format_alert("WARNING", "WhatsApp send failed")
        assert "WARNING" in text
        assert "WhatsApp send failed" in text

    def test_includes_context(self):
        text = format_alert("ERROR", "Run failed", {"session_id": "abc", "status": 502})
        assert "session_id: abc" in text
        assert "status: 502" in text


class TestSendAlert:
    @patch("mentorline.services.alert_service.settings")
    def test_returns_false_when_not_configured(self, mock_settings):
        mock_settings.alert_bot_token = None
        mock_settings.alert_chat_id = None

        assert asyncio.run(send_alert("ERROR", "Test message")) is False

    @patch("mentorline.services.alert_service.settings")
    @patch("mentorline.services.alert_service.httpx.AsyncClient")
    def test_sends_alert_to_telegram(self, mock_client_class, mock_settings):
        mock_settings.alert_bot_token = "test-token"
        mock_settings.alert_chat_id = "test-chat"
        mock_client = MagicMock()
        mock_client.post = AsyncMock(return_value=Mock(status_code=200))
        mock_client_class.return_value.__aenter__.return_value = mock_client

        result = asyncio.run(send_alert("ERROR", "Test error message"))

        assert result is True
        call_args = mock_client.post.call_args
        assert "api.telegram.org/bottest-token" in call_args[0][0]
        json_data = call_args[1]["json"]
        assert json_data["chat_id"] == "test-chat"
        assert "ERROR" in json_data["text"]

    @patch("mentorline.services.alert_service.settings")
    @patch("mentorline.services.alert_service.httpx.AsyncClient")
    def test_returns_false_on_telegram_error(self, mock_client_class, mock_settings):
        mock_settings.alert_bot_token = "test-token"
        mock_settings.alert_chat_id = "test-chat"
        mock_client = MagicMock()
        mock_client.post = AsyncMock(return_value=Mock(status_code=400))
        mock_client_class.return_value.__aenter__.return_value = mock_client

        assert asyncio.run(send_alert("ERROR", "Test message")) is False

    @patch("mentorline.services.alert_service.settings")
    @patch("mentorline.services.alert_service.httpx.AsyncClient")
    def test_returns_false_on_network_error(self, mock_client_class, mock_settings):
        mock_settings.alert_bot_token = "test-token"
        mock_settings.alert_chat_id = "test-chat"
        mock_client = MagicMock()
        mock_client.post = AsyncMock(side_effect=httpx.ConnectError("Network error"))
        mock_client_class.return_value.__aenter__.return_value = mock_client

        assert asyncio.run(send_alert("ERROR", "Test message")) is False


class TestAlertHelpers:
    @patch("mentorline.services.alert_service.send_alert", new_callable=AsyncMock)
    def test_alert_warning(self, mock_send):
        asyncio.run(alert_warning("Warning message", {"key": "value"}))
        mock_send.assert_awaited_once_with("WARNING", "Warning message", {"key": "value"})

    @patch("mentorline.services.alert_service.send_alert", new_callable=AsyncMock)
    def test_alert_error(self, mock_send):
        asyncio.run(alert_error("Error message"))
        mock_send.assert_awaited_once_with("ERROR", "Error message", None)

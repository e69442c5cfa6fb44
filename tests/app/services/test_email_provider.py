"""Tests for app.services.email_provider — Resend client."""
import pytest
import requests
from unittest.mock import MagicMock

from app.errors import ConfigError, ProviderError
from app.services.circuit_breaker import CircuitOpenError
from app.services.email_provider import ResendClient


def _response(status, json_body=None, text=''):
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    resp.json.return_value = json_body or {}
    return resp


@pytest.fixture
def http():
    mock = MagicMock()
    mock.post.return_value = _response(200, {'id': 'msg_123'})
    return mock


@pytest.fixture
def resend(http):
    return ResendClient('re_test', 'Khanect <hello@khanect.com>', timeout=5, session=http)


class TestSend:

    def test_posts_payload_and_returns_id(self, resend, http):
        message_id = resend.send('jane@acme.com', 'Welcome', '<p>Hi</p>', 'Hi')

        assert message_id == 'msg_123'
        args, kwargs = http.post.call_args
        assert args[0] == 'https://api.resend.com/emails'
        assert kwargs['json'] == {
            'from': 'Khanect <hello@khanect.com>',
            'to': ['jane@acme.com'],
            'subject': 'Welcome',
            'html': '<p>Hi</p>',
            'text': 'Hi',
        }
        assert kwargs['headers']['Authorization'] == 'Bearer re_test'
        assert kwargs['timeout'] == 5

    def test_non_2xx_raises_with_body(self, resend, http):
        http.post.return_value = _response(422, text='{"message": "invalid to"}')

        with pytest.raises(ProviderError) as exc_info:
            resend.send('bad', 'S', '<p></p>', '')
        assert exc_info.value.status == 422
        assert 'invalid to' in exc_info.value.body

    def test_network_error_raises_provider_error(self, resend, http):
        http.post.side_effect = requests.Timeout('timed out')
        with pytest.raises(ProviderError, match='timed out'):
            resend.send('jane@acme.com', 'S', '', '')

    def test_missing_key_is_config_error(self, http):
        client = ResendClient(None, 'x@y.com', session=http)
        assert not client.configured
        with pytest.raises(ConfigError):
            client.send('jane@acme.com', 'S', '', '')
        http.post.assert_not_called()

    def test_open_circuit_raises_provider_error(self, http):
        breaker = MagicMock()
        breaker.call.side_effect = CircuitOpenError('resend')
        client = ResendClient('re_test', 'x@y.com', session=http, breaker=breaker)

        with pytest.raises(ProviderError):
            client.send('jane@acme.com', 'S', '', '')
        http.post.assert_not_called()

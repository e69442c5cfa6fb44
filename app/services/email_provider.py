"""
Resend transactional email client.

POST {api_url}/emails with {from, to, subject, html, text}. 2xx is success;
anything else raises ProviderError carrying the provider's response text.
"""
import logging
from typing import Optional

import requests

from app.errors import ConfigError, ProviderError
from app.services.circuit_breaker import CircuitOpenError

logger = logging.getLogger('services.email_provider')


class ResendClient:

    def __init__(self, api_key: Optional[str], from_email: str,
                 api_url: str = 'https://api.resend.com', timeout: float = 15.0,
                 breaker=None, session=None):
        self.api_key = api_key
        self.from_email = from_email
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.breaker = breaker
        self.http = session or requests

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def ensure_configured(self):
        if not self.configured:
            raise ConfigError('RESEND_API_KEY is not configured')

    def _post(self, payload):
        response = self.http.post(
            f"{self.api_url}/emails",
            json=payload,
            headers={
                'Content-Type': 'application/json',
                'Authorization': f'Bearer {self.api_key}',
            },
            timeout=self.timeout,
        )
        if not 200 <= response.status_code < 300:
            raise ProviderError(
                f"Resend API error: {response.status_code}",
                status=response.status_code,
                body=response.text,
            )
        return response

    def send(self, to: str, subject: str, html: str, text: str) -> Optional[str]:
        """Send one email. Returns the provider message id."""
        self.ensure_configured()
        payload = {
            'from': self.from_email,
            'to': [to],
            'subject': subject,
            'html': html,
            'text': text,
        }
        try:
            if self.breaker is not None:
                response = self.breaker.call(self._post, payload)
            else:
                response = self._post(payload)
        except CircuitOpenError as e:
            raise ProviderError(str(e)) from e
        except requests.RequestException as e:
            raise ProviderError(f"Email sending error: {e}") from e

        try:
            message_id = response.json().get('id')
        except ValueError:
            message_id = None
        logger.info("Email sent to %s (id=%s)", to, message_id)
        return message_id

"""
Model gateway — the only place that talks to the chat-completion API.

Picks the model from a fixed purpose → tier policy, executes one request,
measures latency and token usage. Never retries: retry policy belongs to
the callers.

Tier policy (constant, not adaptive):
  lead_processing  → quality  (run once per lead, numeric/categorical decision)
  chat             → economy  (high volume)
  email_generation → economy  (high volume)
"""
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

import openai

from app.config import OPENAI_QUALITY_MODEL, OPENAI_ECONOMY_MODEL, MODEL_TIMEOUT_SECONDS
from app.errors import GatewayConfigError, ModelGatewayError
from app.pipeline.cost_config import calculate_cost
from app.services.circuit_breaker import CircuitOpenError

logger = logging.getLogger('services.model_gateway')


QUALITY = 'quality'
ECONOMY = 'economy'

MODEL_TIERS = {
    QUALITY: OPENAI_QUALITY_MODEL,
    ECONOMY: OPENAI_ECONOMY_MODEL,
}

PURPOSE_TIERS = {
    'lead_processing': QUALITY,
    'chat': ECONOMY,
    'email_generation': ECONOMY,
}


def tier_for_purpose(purpose: str) -> str:
    return PURPOSE_TIERS.get(purpose, ECONOMY)


def model_for_purpose(purpose: str) -> str:
    """Resolve a call purpose to a model id via the fixed tier policy."""
    return MODEL_TIERS[tier_for_purpose(purpose)]


@dataclass
class Completion:
    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: int = 0

    @property
    def cost(self) -> float:
        return calculate_cost(self.model, self.input_tokens, self.output_tokens)


class ModelGateway:
    """Thin wrapper around the OpenAI chat-completions endpoint."""

    def __init__(self, api_key: Optional[str], client=None, base_url: Optional[str] = None,
                 timeout: float = MODEL_TIMEOUT_SECONDS, breaker=None):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.breaker = breaker
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.api_key) or self._client is not None

    def ensure_configured(self):
        if not self.configured:
            raise GatewayConfigError()

    @property
    def client(self):
        if self._client is None:
            self.ensure_configured()
            self._client = openai.OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        history: Optional[List[Dict[str, str]]] = None,
        tier: str = ECONOMY,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> Completion:
        """
        Run one chat completion.

        Raises:
            GatewayConfigError: no API key configured.
            ModelGatewayError:  non-2xx response, network failure, timeout,
                                or the provider's circuit is open.
        """
        model = MODEL_TIERS.get(tier, MODEL_TIERS[ECONOMY])
        messages = [{'role': 'system', 'content': system_prompt}]
        messages.extend(history or [])
        messages.append({'role': 'user', 'content': user_prompt})

        client = self.client
        kwargs = dict(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            timeout=self.timeout,
        )

        start = time.monotonic()
        try:
            if self.breaker is not None:
                response = self.breaker.call(client.chat.completions.create, **kwargs)
            else:
                response = client.chat.completions.create(**kwargs)
        except CircuitOpenError as e:
            raise ModelGatewayError(str(e)) from e
        except openai.APIStatusError as e:
            body = e.response.text if e.response is not None else str(e)
            raise ModelGatewayError(
                f"OpenAI API error: {e.status_code}", status=e.status_code, body=body,
            ) from e
        except openai.APIError as e:
            raise ModelGatewayError(f"OpenAI request failed: {e}") from e

        latency_ms = int((time.monotonic() - start) * 1000)

        text = ''
        if response.choices:
            text = response.choices[0].message.content or ''
        usage = response.usage
        input_tokens = (usage.prompt_tokens or 0) if usage else 0
        output_tokens = (usage.completion_tokens or 0) if usage else 0

        logger.info(
            "OpenAI call: %s, latency: %dms, tokens: %d in / %d out",
            model, latency_ms, input_tokens, output_tokens,
        )
        return Completion(
            text=text,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            latency_ms=latency_ms,
        )

    def complete_for(self, purpose: str, system_prompt: str, user_prompt: str, **kwargs) -> Completion:
        """complete() with the tier chosen by the purpose policy."""
        return self.complete(system_prompt, user_prompt, tier=tier_for_purpose(purpose), **kwargs)

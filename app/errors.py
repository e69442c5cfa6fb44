"""
Error taxonomy for the lead pipeline.

  ConfigError       — missing credential; fatal, no partial work attempted
  ModelGatewayError — upstream model call failed
  ParseError        — model output was not the JSON we asked for
  PersistenceError  — store write/read failed
  ProviderError     — email provider rejected or never answered the send

Single-lead failures are downgraded by the callers; configuration failures
propagate.
"""


class PipelineError(Exception):
    """Base class for every error raised by the pipeline."""


class ConfigError(PipelineError):
    """A required credential or setting is missing."""


class ModelGatewayError(PipelineError):
    """Chat-completion call failed. Carries the HTTP status and a body snippet."""

    def __init__(self, message, status=None, body=None):
        self.status = status
        self.body = (body or '')[:500]
        super().__init__(message)


class GatewayConfigError(ConfigError, ModelGatewayError):
    """No model API credential configured."""

    def __init__(self, message='OPENAI_API_KEY is not configured'):
        ModelGatewayError.__init__(self, message)


class ParseError(PipelineError):
    """Model output could not be parsed into the expected shape."""


class PersistenceError(PipelineError):
    """A store operation failed and was rolled back."""


class ProviderError(PipelineError):
    """Transactional email provider returned non-2xx or failed to respond."""

    def __init__(self, message, status=None, body=None):
        self.status = status
        self.body = (body or '')[:500]
        super().__init__(message)

"""Shared test fixtures."""
import pytest
from unittest.mock import patch, MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, import_models
from app.errors import GatewayConfigError, ConfigError, ProviderError
from app.services.model_gateway import Completion, model_for_purpose
from app.services.store import LeadStore
from app.services.ledger import InteractionLedger


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created, shared across sessions."""
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    import_models()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine)


@pytest.fixture(autouse=True)
def patch_get_session(session_factory):
    """Route every default LeadStore() to the in-memory database."""
    with patch('app.services.store.get_session', session_factory):
        yield session_factory


@pytest.fixture
def store(session_factory):
    return LeadStore(session_factory)


@pytest.fixture
def ledger(store):
    return InteractionLedger(store)


@pytest.fixture
def make_submission(store):
    """Factory fixture: stores a contact submission and returns its dict."""
    def _make(**overrides):
        fields = dict(
            full_name='Jane Doe',
            email='jane@acme.com',
            phone='+15550001234',
            business_name='Acme Inc',
            website='https://acme.com',
        )
        fields.update(overrides)
        return store.create_submission(**fields)
    return _make


class FakeGateway:
    """Stands in for ModelGateway. Pops one scripted response per call."""

    def __init__(self, responses=None, configured=True):
        self.responses = list(responses or [])
        self.calls = []
        self.breaker = None
        self._configured = configured

    @property
    def configured(self):
        return self._configured

    def ensure_configured(self):
        if not self._configured:
            raise GatewayConfigError()

    def complete_for(self, purpose, system_prompt, user_prompt, **kwargs):
        self.calls.append(dict(purpose=purpose, system=system_prompt, user=user_prompt, **kwargs))
        response = self.responses.pop(0) if self.responses else '{}'
        if isinstance(response, Exception):
            raise response
        return Completion(
            text=response,
            model=model_for_purpose(purpose),
            input_tokens=1000,
            output_tokens=500,
            latency_ms=42,
        )


class FakeEmailClient:
    """Stands in for ResendClient. Records sends; fail_with makes every send raise."""

    def __init__(self, configured=True, fail_with=None):
        self.sent = []
        self.breaker = None
        self.fail_with = fail_with
        self._configured = configured

    @property
    def configured(self):
        return self._configured

    def ensure_configured(self):
        if not self._configured:
            raise ConfigError('RESEND_API_KEY is not configured')

    def send(self, to, subject, html, text):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({'to': to, 'subject': subject, 'html': html, 'text': text})
        return f'msg-{len(self.sent)}'


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def fake_email():
    return FakeEmailClient()


@pytest.fixture
def provider_error():
    return ProviderError('Resend API error: 422', status=422, body='{"message":"invalid to address"}')


@pytest.fixture
def mock_redis():
    """Mock Redis client. Returns a MagicMock with common Redis methods."""
    mock = MagicMock()
    mock.hgetall.return_value = {}
    mock.hincrby.return_value = 1
    with patch('app.extensions.redis_client', mock):
        yield mock


@pytest.fixture
def app(mock_redis):
    """Flask test app (no schema bootstrap, no real Redis)."""
    from app import create_app
    app = create_app(init_schema=False)
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def unconfigured_gateway():
    return FakeGateway(configured=False)


@pytest.fixture
def make_email_client():
    """Factory fixture: FakeEmailClient with custom configured / fail_with."""
    return FakeEmailClient

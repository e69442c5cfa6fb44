"""Tests for POST /api/followups/process."""
from unittest.mock import patch

from app.errors import ConfigError, PersistenceError

SUMMARY = {
    'message': 'Processed 2 followups', 'processedCount': 2, 'succeeded': 1, 'failed': 1,
    'skipped': 0, 'deferred': 0, 'results': [],
}


class TestProcessFollowups:

    @patch('app.routes.followups.process_due_followups', return_value=SUMMARY)
    def test_returns_summary(self, mock_run, client):
        resp = client.post('/api/followups/process?limit=5')
        assert resp.status_code == 200
        assert resp.get_json()['processedCount'] == 2
        mock_run.assert_called_once_with(5)

    @patch('app.routes.followups.process_due_followups', return_value=SUMMARY)
    def test_default_limit(self, mock_run, client):
        client.post('/api/followups/process')
        mock_run.assert_called_once_with(10)

    @patch('app.routes.followups.process_due_followups', return_value=SUMMARY)
    def test_limit_is_capped(self, mock_run, client):
        client.post('/api/followups/process?limit=5000')
        mock_run.assert_called_once_with(100)

    def test_bad_limit(self, client):
        assert client.post('/api/followups/process?limit=0').status_code == 400

    @patch('app.routes.followups.process_due_followups', side_effect=ConfigError('RESEND_API_KEY is not configured'))
    def test_missing_credential(self, mock_run, client):
        resp = client.post('/api/followups/process')
        assert resp.status_code == 500
        assert 'RESEND_API_KEY' in resp.get_json()['error']

    @patch('app.routes.followups.process_due_followups', side_effect=PersistenceError('Failed to query'))
    def test_store_failure(self, mock_run, client):
        assert client.post('/api/followups/process').status_code == 500

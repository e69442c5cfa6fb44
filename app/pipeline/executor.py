"""
Follow-up executor — sends due follow-up emails.

For each due item:
  claim (pending → processing) → load contact + score → generate copy
  (economy tier) → render HTML → send via Resend → finish (sent|failed)

A lost claim means another run owns the item: it is skipped and nothing is
sent. One item failing never stops the batch. The run stops claiming once
its time budget is spent or a provider circuit is open; whatever is left
stays pending for the next run.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from app.config import (
    FOLLOWUP_BATCH_LIMIT, FOLLOWUP_SEND_DELAY_SECONDS,
    FOLLOWUP_MAX_RUNTIME_SECONDS, FOLLOWUP_CLAIM_TTL_MINUTES,
)
from app.errors import ModelGatewayError, ParseError, PersistenceError, ProviderError
from app.pipeline.json_extract import extract_json_object
from app.services.email_render import text_to_html
from app.services.model_gateway import model_for_purpose

logger = logging.getLogger('pipeline.executor')

INTERACTION_TYPE = 'email_generation'


EMAIL_GENERATION_PROMPT = """You are an email copywriter for Khanect Automation Agency. Generate personalized follow-up emails based on lead information and email type.

## About Khanect:
Khanect Automation Agency provides AI-powered automation solutions including workflow automation, AI chatbots, CRM integrations, and lead generation systems.

## Email Types:
1. WELCOME - Initial thank you and value proposition introduction
2. VALUE_PROP - Deep dive into specific service benefits relevant to their business
3. CASE_STUDY - Share relevant success stories from similar businesses
4. DEMO_INVITE - Direct invitation to book a demo with clear value proposition
5. CHECK_IN - Friendly follow-up checking if they have questions
6. FINAL - Last attempt with special offer or alternative contact method

## Guidelines:
- Keep emails concise (150-250 words)
- Personalize based on business name and any available context
- Focus on value and ROI, not features
- Include a clear call-to-action
- Sound human and helpful, not salesy
- Use the lead's first name naturally
- Don't use exclamation marks excessively

## Output Format (JSON only):
{
  "subject": "Email subject line (max 60 chars)",
  "body": "Full email body in plain text with natural paragraph breaks",
  "cta_text": "Call-to-action button text",
  "cta_url": "https://khanect.com#contact"
}"""


EMAIL_TYPE_CONTEXT = {
    'welcome': 'Welcome email thanking them for their interest and briefly introducing Khanect',
    'value_prop': 'Email highlighting specific automation benefits and ROI potential for their business type',
    'case_study': 'Email sharing a relevant success story or client result',
    'demo_invite': 'Direct invitation to book a personalized demo',
    'check_in': 'Friendly check-in asking if they have questions or need more information',
    'final': 'Final outreach with special offer or alternative ways to connect',
}


def first_name(full_name: Optional[str]) -> str:
    parts = (full_name or '').split()
    return parts[0] if parts else 'there'


def build_email_prompt(followup: Dict, contact: Dict, lead_score: Optional[Dict]) -> str:
    email_type = followup['email_type']
    lines = [
        "## Lead Information:",
        f"- Name: {contact.get('full_name') or 'Not provided'} (use \"{first_name(contact.get('full_name'))}\" in the email)",
        f"- Business: {contact.get('business_name') or 'Not provided'}",
        f"- Website: {contact.get('website') or 'Not provided'}",
        f"- Email Type: {email_type.upper()}",
        f"- Email Purpose: {EMAIL_TYPE_CONTEXT.get(email_type, 'General follow-up')}",
        f"- Sequence Number: {followup['sequence_number']} of the follow-up sequence",
    ]
    if lead_score:
        points = (lead_score.get('ai_analysis') or {}).get('key_talking_points') or []
        lines += [
            "",
            "## Lead Analysis:",
            f"- Score: {lead_score['score']}/100 ({lead_score['category']})",
            f"- Key Points: {', '.join(points) if points else 'Focus on automation benefits'}",
        ]
    lines += ["", f"Generate a personalized {email_type} email for this lead."]
    return "\n".join(lines)


def parse_email_content(raw: str) -> Dict[str, Optional[str]]:
    """{subject, body} required; cta_text / cta_url optional. Raises ParseError."""
    data = extract_json_object(raw)
    subject = data.get('subject')
    body = data.get('body')
    if not isinstance(subject, str) or not subject.strip():
        raise ParseError("Email JSON is missing 'subject'")
    if not isinstance(body, str) or not body.strip():
        raise ParseError("Email JSON is missing 'body'")
    cta_text = data.get('cta_text')
    cta_url = data.get('cta_url')
    return {
        'subject': subject.strip(),
        'body': body,
        'cta_text': cta_text if isinstance(cta_text, str) and cta_text.strip() else None,
        'cta_url': cta_url if isinstance(cta_url, str) and cta_url.strip() else None,
    }


@dataclass
class ExecutorResult:
    processed_count: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    deferred: int = 0
    results: List[Dict[str, Any]] = field(default_factory=list)

    def add(self, followup_id, status, error=None):
        self.processed_count += 1
        if status == 'sent':
            self.succeeded += 1
        elif status == 'skipped':
            self.skipped += 1
        else:
            self.failed += 1
        entry = {'id': followup_id, 'success': status == 'sent', 'status': status}
        if error:
            entry['error'] = error
        self.results.append(entry)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'message': f"Processed {self.processed_count} followups",
            'processedCount': self.processed_count,
            'succeeded': self.succeeded,
            'failed': self.failed,
            'skipped': self.skipped,
            'deferred': self.deferred,
            'results': self.results,
        }


class FollowupExecutor:

    def __init__(self, gateway, store, ledger, email_client,
                 send_delay: float = FOLLOWUP_SEND_DELAY_SECONDS,
                 max_runtime: float = FOLLOWUP_MAX_RUNTIME_SECONDS,
                 claim_ttl_minutes: int = FOLLOWUP_CLAIM_TTL_MINUTES,
                 sleep=time.sleep, clock=time.monotonic):
        self.gateway = gateway
        self.store = store
        self.ledger = ledger
        self.email_client = email_client
        self.send_delay = send_delay
        self.max_runtime = max_runtime
        self.claim_ttl_minutes = claim_ttl_minutes
        self.sleep = sleep
        self.clock = clock

    def process_due(self, limit: Optional[int] = None) -> ExecutorResult:
        """
        One pass over due follow-ups.

        Raises ConfigError before touching the queue when either the model or
        the email credential is missing.
        """
        self.gateway.ensure_configured()
        self.email_client.ensure_configured()

        now = datetime.now(timezone.utc)
        expired = self.store.expire_stale_claims(now - timedelta(minutes=self.claim_ttl_minutes))
        if expired:
            logger.warning("Expired %d stale follow-up claims", expired)

        items = self.store.get_due_followups(now, limit or FOLLOWUP_BATCH_LIMIT)
        if not items:
            logger.info("No pending followups to process")
            return ExecutorResult()

        logger.info("Processing %d pending followups", len(items))
        return self.process_items(items)

    def process_items(self, items: List[Dict]) -> ExecutorResult:
        result = ExecutorResult()
        started = self.clock()

        for idx, item in enumerate(items):
            reason = self._stop_reason(started)
            if reason:
                result.deferred = len(items) - idx
                logger.warning("Stopping follow-up run (%s); %d items deferred", reason, result.deferred)
                break
            if idx > 0 and self.send_delay:
                self.sleep(self.send_delay)

            status, error = self._process_one(item)
            result.add(item['id'], status, error)

        logger.info(
            "Follow-up run: %d processed, %d sent, %d failed, %d skipped, %d deferred",
            result.processed_count, result.succeeded, result.failed, result.skipped, result.deferred,
        )
        return result

    def _stop_reason(self, started) -> Optional[str]:
        if self.max_runtime and self.clock() - started >= self.max_runtime:
            return 'time budget spent'
        for client in (self.gateway, self.email_client):
            breaker = getattr(client, 'breaker', None)
            if breaker is not None and breaker.is_open:
                return f"circuit '{breaker.name}' open"
        return None

    def _process_one(self, followup):
        followup_id = followup['id']
        try:
            if not self.store.claim_followup(followup_id):
                logger.info("Follow-up %s already claimed elsewhere, skipping", followup_id)
                return 'skipped', None

            contact = self.store.get_submission(followup['contact_submission_id'])
            if contact is None:
                logger.error("Contact not found: %s", followup['contact_submission_id'])
                self.store.finish_followup(followup_id, 'failed', error_message='Contact not found')
                return 'failed', 'Contact not found'

            lead_score = None
            if followup.get('lead_score_id'):
                lead_score = self.store.get_lead_score(followup['lead_score_id'])

            return self._generate_and_send(followup, contact, lead_score)
        except PersistenceError as e:
            logger.error("Follow-up %s: store failure: %s", followup_id, e)
            return 'failed', str(e)

    def _generate_and_send(self, followup, contact, lead_score):
        followup_id = followup['id']
        contact_id = contact['id']
        prompt = build_email_prompt(followup, contact, lead_score)

        try:
            completion = self.gateway.complete_for(
                INTERACTION_TYPE, EMAIL_GENERATION_PROMPT, prompt, max_tokens=1024, temperature=0.7,
            )
        except ModelGatewayError as e:
            error = str(e)
            logger.error("Follow-up %s: email generation failed: %s", followup_id, error)
            self.ledger.record(
                INTERACTION_TYPE, contact_id, model_for_purpose(INTERACTION_TYPE),
                success=False, error_message=error,
            )
            self.store.finish_followup(followup_id, 'failed', error_message=error)
            return 'failed', error

        try:
            content = parse_email_content(completion.text)
        except ParseError as e:
            logger.error("Follow-up %s: failed to parse email content: %s", followup_id, e)
            logger.debug("Raw model output: %s", completion.text)
            error = 'Failed to generate email content'
            self.ledger.record_completion(INTERACTION_TYPE, contact_id, completion, success=False, error_message=str(e))
            self.store.finish_followup(followup_id, 'failed', error_message=error)
            return 'failed', error

        html = text_to_html(content['body'], content['cta_text'], content['cta_url'])

        error = None
        try:
            self.email_client.send(contact['email'], content['subject'], html, content['body'])
        except ProviderError as e:
            error = e.body or str(e)
            logger.error("Follow-up %s: send to %s failed: %s", followup_id, contact['email'], e)

        sent = error is None
        self.ledger.record_completion(INTERACTION_TYPE, contact_id, completion, success=sent, error_message=error)
        self.store.finish_followup(
            followup_id,
            'sent' if sent else 'failed',
            email_subject=content['subject'],
            email_body=content['body'],
            error_message=error,
            sent_at=datetime.now(timezone.utc) if sent else None,
        )
        return ('sent', None) if sent else ('failed', error)

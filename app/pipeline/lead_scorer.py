"""
Lead scorer — qualifies one contact-form submission with the model.

  submission → processing → [quality-tier model call] → parse/validate
             → store LeadScore → completed → dispatch follow-up scheduling

A parse glitch never blocks a lead: it is scored with a fixed "warm"
default instead. Upstream model or store failures mark the submission
failed. Every model call leaves exactly one interaction record.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app.config import (
    LEAD_CATEGORIES, BUDGET_INDICATORS, URGENCY_INDICATORS, FOLLOWUP_SEQUENCE_NAMES,
)
from app.errors import ModelGatewayError, ParseError, PersistenceError
from app.pipeline.json_extract import extract_json_object

logger = logging.getLogger('pipeline.lead_scorer')

INTERACTION_TYPE = 'lead_processing'


LEAD_QUALIFICATION_PROMPT = """You are an expert lead qualification AI for Khanect Automation Agency, a company that provides AI automation services including workflow automation, AI chatbots, CRM integrations, and lead generation systems.

Analyze the provided contact submission and score the lead. Our target customers are businesses looking to automate their operations and scale efficiently.

## Scoring Criteria (0-100):

### Business Indicators (40 points max):
- Has a website: +10 points
- Website appears professional/established: +5-15 points
- Business name suggests an established company: +5-10 points
- Industry alignment with our services (Healthcare, Automobile, E-Commerce, Real Estate, Coaching, Agency): +5-10 points

### Contact Quality (30 points max):
- Professional email domain (not gmail/yahoo/hotmail): +15 points
- Complete phone number provided: +5 points
- Full name provided properly (not a single word): +5 points
- Website URL provided: +5 points

### Urgency/Intent Signals (30 points max):
- Business appears to have automation needs based on industry or message: +10-20 points
- Contact details are complete and professional: +5-10 points

## Categories:
- HOT (80-100): ready to buy, high-value potential — immediate follow-up
- WARM (50-79): good fit, needs nurturing — standard follow-up sequence
- COLD (25-49): potential future customer — nurture sequence
- UNQUALIFIED (0-24): poor fit or incomplete information — minimal follow-up

## Follow-up Sequences:
- immediate: HOT leads — same day response, demo offer
- standard: WARM leads — 3-email sequence over 1 week
- nurture: COLD leads — 5-email sequence over 3 weeks
- minimal: UNQUALIFIED — single acknowledgment email only

You MUST respond with a valid JSON object only, no additional text."""


LEAD_SCORE_SCHEMA = """{
  "score": <number 0-100>,
  "category": "<hot|warm|cold|unqualified>",
  "reasoning": "<brief explanation>",
  "budget_indicator": "<high|medium|low|unknown>",
  "urgency_indicator": "<high|medium|low>",
  "decision_maker_likelihood": <number 0-100>,
  "industry_fit_score": <number 0-100>,
  "recommended_followup_sequence": "<immediate|standard|nurture|minimal>",
  "key_talking_points": ["<point1>", "<point2>", "<point3>"]
}"""


def default_lead_score() -> Dict[str, Any]:
    """Score used whenever the model output cannot be parsed."""
    return {
        'score': 50,
        'category': 'warm',
        'reasoning': 'Unable to fully analyze - defaulting to warm lead',
        'budget_indicator': 'unknown',
        'urgency_indicator': 'medium',
        'decision_maker_likelihood': 50,
        'industry_fit_score': 50,
        'recommended_followup_sequence': 'standard',
        'key_talking_points': ['Follow up to learn more about their needs'],
    }


def build_lead_prompt(full_name, email, phone, business_name, website=None, message=None, now=None) -> str:
    now = now or datetime.now(timezone.utc)
    lines = [
        "## Lead Information:",
        f"- Full Name: {full_name or 'Not provided'}",
        f"- Email: {email}",
        f"- Phone: {phone or 'Not provided'}",
        f"- Business Name: {business_name or 'Not provided'}",
        f"- Website: {website or 'Not provided'}",
    ]
    if message:
        lines.append(f"- Message: {message}")
    lines.append(f"- Submission Time: {now.isoformat()}")
    lines.append("")
    lines.append("Analyze this lead and provide your assessment as a JSON object with the following structure:")
    lines.append(LEAD_SCORE_SCHEMA)
    return "\n".join(lines)


def _percent(data, key, required):
    value = data.get(key)
    if value is None:
        if required:
            raise ParseError(f"Missing field: {key}")
        return 50
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseError(f"Field {key} is not a number: {value!r}")
    if not 0 <= value <= 100:
        raise ParseError(f"Field {key} out of range: {value!r}")
    return int(round(value))


def _choice(data, key, allowed, default=None):
    value = data.get(key)
    if value is None and default is not None:
        return default
    if not isinstance(value, str) or value.lower() not in allowed:
        raise ParseError(f"Field {key} has invalid value: {value!r}")
    return value.lower()


def parse_lead_score(raw: str) -> Dict[str, Any]:
    """
    Extract and validate the lead score JSON from raw model output.

    Required: score, category, reasoning, recommended_followup_sequence.
    Optional fields get neutral defaults. Raises ParseError on anything else.
    """
    data = extract_json_object(raw)

    reasoning = data.get('reasoning')
    if not isinstance(reasoning, str) or not reasoning.strip():
        raise ParseError("Missing field: reasoning")

    points = data.get('key_talking_points') or []
    if not isinstance(points, list) or not all(isinstance(p, str) for p in points):
        raise ParseError("key_talking_points must be a list of strings")

    return {
        'score': _percent(data, 'score', required=True),
        'category': _choice(data, 'category', LEAD_CATEGORIES),
        'reasoning': reasoning.strip(),
        'budget_indicator': _choice(data, 'budget_indicator', BUDGET_INDICATORS, default='unknown'),
        'urgency_indicator': _choice(data, 'urgency_indicator', URGENCY_INDICATORS, default='medium'),
        'decision_maker_likelihood': _percent(data, 'decision_maker_likelihood', required=False),
        'industry_fit_score': _percent(data, 'industry_fit_score', required=False),
        'recommended_followup_sequence': _choice(data, 'recommended_followup_sequence', FOLLOWUP_SEQUENCE_NAMES),
        'key_talking_points': points,
    }


@dataclass
class LeadProcessingResult:
    success: bool
    lead_score: Optional[Dict[str, Any]] = None
    followups_scheduled: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        body = {'success': self.success, 'followupsScheduled': self.followups_scheduled}
        if self.lead_score:
            body['leadScore'] = {
                'score': self.lead_score['score'],
                'category': self.lead_score['category'],
                'reasoning': self.lead_score['reasoning'],
            }
        if self.error:
            body['error'] = self.error
        return body


class SubmissionNotFound(LookupError):
    pass


class LeadScorer:

    def __init__(self, gateway, store, ledger, dispatch):
        self.gateway = gateway
        self.store = store
        self.ledger = ledger
        self.dispatch = dispatch

    def process_lead(self, submission_id, full_name, email, phone, business_name,
                     website=None, message=None) -> LeadProcessingResult:
        """
        Score a stored submission and schedule its follow-ups.

        Raises:
            ValueError:          submission_id or email missing.
            ConfigError:         no model credential; nothing has been touched.
            SubmissionNotFound:  no stored submission with that id.
        """
        if not submission_id or not email:
            raise ValueError('Missing required fields: submissionId and email')

        self.gateway.ensure_configured()

        existing = self.store.get_lead_score_for_submission(submission_id)
        if existing:
            logger.info("Lead %s already scored (%s), returning existing score", submission_id, existing['id'])
            return self._resume_scored(submission_id, existing)

        if not self.store.set_submission_status(submission_id, 'processing'):
            raise SubmissionNotFound(submission_id)

        prompt = build_lead_prompt(full_name, email, phone, business_name, website, message)

        try:
            completion = self.gateway.complete_for(
                INTERACTION_TYPE,
                LEAD_QUALIFICATION_PROMPT,
                prompt,
                max_tokens=1024,
                temperature=0.3,
            )
        except ModelGatewayError as e:
            logger.error("Lead %s: model call failed: %s", submission_id, e)
            self._mark_failed(submission_id)
            self.ledger.record(INTERACTION_TYPE, submission_id, _quality_model(), success=False, error_message=str(e))
            return LeadProcessingResult(success=False, error='Failed to process lead')

        parse_error = None
        try:
            fields = parse_lead_score(completion.text)
        except ParseError as e:
            parse_error = str(e)
            logger.warning("Lead %s: unparseable model output (%s); using default score", submission_id, e)
            logger.debug("Raw model output: %s", completion.text)
            fields = default_lead_score()

        talking_points = fields.pop('key_talking_points')
        fields['ai_analysis'] = {
            'key_talking_points': talking_points,
            'recommended_followup_sequence': fields['recommended_followup_sequence'],
            'raw_response': completion.text,
            'fallback': parse_error is not None,
        }

        try:
            lead_score, created = self.store.insert_lead_score(submission_id, fields)
            self.store.set_submission_status(submission_id, 'completed', processed_at=datetime.now(timezone.utc))
        except PersistenceError as e:
            self._mark_failed(submission_id)
            self.ledger.record_completion(INTERACTION_TYPE, submission_id, completion, success=False, error_message=str(e))
            return LeadProcessingResult(success=False, error='Failed to process lead')

        self.ledger.record_completion(
            INTERACTION_TYPE, submission_id, completion,
            success=True,
            error_message=f"Fallback score used: {parse_error}" if parse_error else None,
        )

        scheduled = 0
        if created:
            scheduled = self._dispatch(submission_id, lead_score)

        logger.info(
            "Lead %s scored %s (%s), %d follow-ups scheduled",
            submission_id, lead_score['score'], lead_score['category'], scheduled,
        )
        return LeadProcessingResult(success=True, lead_score=lead_score, followups_scheduled=scheduled)

    def _resume_scored(self, submission_id, lead_score) -> LeadProcessingResult:
        """
        Finish a lead whose score was stored but whose completion was not,
        e.g. the status write failed after the insert. Scheduling is
        idempotent, so dispatching again never doubles a sequence.
        """
        submission = self.store.get_submission(submission_id)
        if submission is None:
            raise SubmissionNotFound(submission_id)
        if submission['processing_status'] == 'completed':
            return LeadProcessingResult(success=True, lead_score=lead_score, followups_scheduled=0)

        self.store.set_submission_status(submission_id, 'completed', processed_at=datetime.now(timezone.utc))
        scheduled = self._dispatch(submission_id, lead_score)
        logger.info("Lead %s completed from stored score, %d follow-ups scheduled", submission_id, scheduled)
        return LeadProcessingResult(success=True, lead_score=lead_score, followups_scheduled=scheduled)

    def _dispatch(self, submission_id, lead_score) -> int:
        try:
            return self.dispatch(submission_id, lead_score['id'], lead_score['recommended_followup_sequence'])
        except Exception:
            logger.error("Follow-up dispatch failed for lead %s", submission_id, exc_info=True)
            return 0

    def _mark_failed(self, submission_id):
        try:
            self.store.set_submission_status(submission_id, 'failed')
        except PersistenceError:
            logger.error("Could not mark lead %s as failed", submission_id, exc_info=True)


def _quality_model():
    from app.services.model_gateway import model_for_purpose
    return model_for_purpose(INTERACTION_TYPE)

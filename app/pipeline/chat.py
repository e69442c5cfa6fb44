"""
Website chat assistant. Economy tier, history kept per session.
"""
import logging
import uuid
from typing import Dict, List, Optional

from app.errors import ModelGatewayError, PersistenceError
from app.services.model_gateway import model_for_purpose

logger = logging.getLogger('pipeline.chat')

INTERACTION_TYPE = 'chat'
HISTORY_LIMIT = 10
EMPTY_REPLY = "I'm sorry, I couldn't generate a response."


CHAT_SYSTEM_PROMPT = """You are Khanect AI Assistant, a friendly and knowledgeable consultant for Khanect Automation Agency. Your role is to help potential clients understand how AI and automation can transform their business.

## About Khanect Automation Agency:
We specialize in AI-powered automation solutions that help businesses save time, reduce costs, and scale efficiently.

## Core Services:
1. Workflow Automation: multi-step processes connecting hundreds of applications, running 24/7
2. AI-Powered Chatbots: answer inquiries, qualify leads, book appointments
3. CRM Integrations: HubSpot, Salesforce, GoHighLevel and more, with automatic lead capture and scoring
4. Lead Generation Automation: landing pages, drip campaigns, analytics dashboards

## Industries We Serve:
Healthcare, Automobile, E-Commerce, Real Estate, Coaching & Consulting, Agency.

## Pricing Packages:
- Starter ($500/month): up to 3 workflow automations, basic CRM integration, 30 days of support
- Growth ($1,000/month, most popular): up to 7 automations, AI chatbot, lead generation, 60 days of support
- Scale ($2,000/month): up to 15 automations, custom chatbot with knowledge base, 90 days of priority support
- Enterprise (custom pricing): unlimited automations, dedicated engineer, SLA guarantees

## Our Process:
1. Discovery & Audit (Week 1)
2. Solution Design (Week 2-3)
3. Build & Integration (Week 3-6)
4. Launch & Optimize (Week 6+)

## Guidelines for Responses:
- Be helpful, professional, and conversational
- Focus on understanding the visitor's business needs
- Keep responses concise but informative (2-4 paragraphs max)
- If asked about specific pricing, mention packages but encourage a consultation for custom quotes
- If the user wants to book a demo or get started, direct them to the contact form on the website
- Always be honest about capabilities and limitations"""


def normalize_history(history: Optional[List[Dict]]) -> List[Dict[str, str]]:
    """Client history uses role 'model' for the assistant; the API wants 'assistant'."""
    messages = []
    for entry in history or []:
        role = entry.get('role')
        content = entry.get('content')
        if not content:
            continue
        if role == 'model':
            role = 'assistant'
        if role not in ('user', 'assistant'):
            continue
        messages.append({'role': role, 'content': content})
    return messages


class ChatAgent:

    def __init__(self, gateway, ledger, store):
        self.gateway = gateway
        self.ledger = ledger
        self.store = store

    def _load_history(self, session_id):
        try:
            return self.store.get_conversation(session_id, limit=HISTORY_LIMIT)
        except PersistenceError:
            logger.warning("Could not load chat history for %s", session_id, exc_info=True)
            return []

    def send_chat_message(self, message: str, history=None, session_id: Optional[str] = None) -> Dict:
        """
        Answer one chat message.

        Returns {'text', 'model', 'tokens': {'input', 'output'}, 'sessionId'}.
        Raises ModelGatewayError (after recording the failure) when the model call fails.
        """
        if not message or not message.strip():
            raise ValueError('Missing required field: message')
        session_id = session_id or str(uuid.uuid4())

        if history:
            messages = normalize_history(history)
        else:
            messages = self._load_history(session_id)

        try:
            completion = self.gateway.complete_for(
                INTERACTION_TYPE, CHAT_SYSTEM_PROMPT, message,
                history=messages, max_tokens=1024, temperature=0.7,
            )
        except ModelGatewayError as e:
            logger.error("Chat agent error for session %s: %s", session_id, e)
            self.ledger.record(
                INTERACTION_TYPE, None, model_for_purpose(INTERACTION_TYPE),
                success=False, error_message=str(e), session_id=session_id,
            )
            raise

        reply = completion.text or EMPTY_REPLY
        try:
            self.store.append_conversation(
                session_id, message, reply, completion.model,
                completion.input_tokens + completion.output_tokens,
            )
        except PersistenceError:
            logger.error("Error storing conversation for %s", session_id, exc_info=True)

        self.ledger.record_completion(INTERACTION_TYPE, None, completion, session_id=session_id)
        return {
            'text': reply,
            'model': completion.model,
            'tokens': {'input': completion.input_tokens, 'output': completion.output_tokens},
            'sessionId': session_id,
        }

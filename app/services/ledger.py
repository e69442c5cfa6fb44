"""
Interaction ledger — append-only cost/latency/success record of every model call.

Cost comes from the shared model cost table. A ledger write failure is
logged and swallowed: losing an audit row must never fail a lead or an email.
"""
import logging
from typing import Optional

from app.errors import PersistenceError
from app.pipeline.cost_config import calculate_cost

logger = logging.getLogger('services.ledger')


class InteractionLedger:

    def __init__(self, store):
        self.store = store

    def record(
        self,
        interaction_type: str,
        ref_id: Optional[str],
        model: Optional[str],
        input_tokens: int = 0,
        output_tokens: int = 0,
        success: bool = True,
        error_message: Optional[str] = None,
        session_id: Optional[str] = None,
        latency_ms: Optional[int] = None,
    ) -> float:
        """Append one interaction row and return its USD cost."""
        model = model or 'unknown'
        cost = calculate_cost(model, input_tokens, output_tokens)
        try:
            self.store.insert_interaction(
                interaction_type=interaction_type,
                contact_submission_id=ref_id,
                session_id=session_id,
                model_used=model,
                input_tokens=input_tokens or 0,
                output_tokens=output_tokens or 0,
                total_cost_usd=cost,
                latency_ms=latency_ms,
                success=success,
                error_message=(error_message or None) and str(error_message)[:1000],
            )
        except PersistenceError:
            logger.error("Failed to record %s interaction for %s", interaction_type, ref_id, exc_info=True)
        return cost

    def record_completion(self, interaction_type, ref_id, completion, success=True,
                          error_message=None, session_id=None) -> float:
        """record() with model, tokens and latency taken from a gateway Completion."""
        return self.record(
            interaction_type,
            ref_id,
            completion.model,
            completion.input_tokens,
            completion.output_tokens,
            success=success,
            error_message=error_message,
            session_id=session_id,
            latency_ms=completion.latency_ms,
        )

    def list_interactions(self, start=None, end=None, interaction_type=None, limit=500):
        return self.store.list_interactions(
            start=start, end=end, interaction_type=interaction_type, limit=limit,
        )

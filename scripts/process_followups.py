#!/usr/bin/env python3
"""
Send due follow-up emails — one executor pass. Run from cron.

Usage:
    python scripts/process_followups.py             # default batch (FOLLOWUP_BATCH_LIMIT)
    python scripts/process_followups.py --limit 25
    python scripts/process_followups.py --enqueue   # hand the pass to an RQ worker

Requires: DATABASE_URL, OPENAI_API_KEY, RESEND_API_KEY (and Redis for --enqueue).
"""
import sys
import os
import json
import argparse
import logging

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.config import FOLLOWUP_BATCH_LIMIT
from app.errors import PipelineError
from app.logging_config import configure_logging

logger = logging.getLogger('scripts.process_followups')


def main():
    parser = argparse.ArgumentParser(description='Process due follow-up emails')
    parser.add_argument('--limit', type=int, default=FOLLOWUP_BATCH_LIMIT, help='Max items to process')
    parser.add_argument('--enqueue', action='store_true', help='Enqueue an RQ job instead of running inline')
    args = parser.parse_args()

    configure_logging()

    from app.database import import_models
    from app.pipeline.manager import process_due_followups, _get_queue
    from app.pipeline.dispatch import process_due_followups_job
    from app.services.circuit_breaker import init_breakers
    from app.extensions import redis_client

    import_models()
    init_breakers(redis_client)

    if args.enqueue:
        job = _get_queue().enqueue(process_due_followups_job, args.limit)
        print(f'Enqueued follow-up run as job {job.id}')
        return 0

    try:
        summary = process_due_followups(args.limit)
    except PipelineError as e:
        logger.error("Follow-up run aborted: %s", e)
        return 1

    print(json.dumps(summary, indent=2))
    return 0


if __name__ == '__main__':
    sys.exit(main())

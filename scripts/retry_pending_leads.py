#!/usr/bin/env python3
"""
Re-score contact submissions stuck in pending/failed (e.g. the model was down
when the form was submitted).

Usage:
    python scripts/retry_pending_leads.py
    python scripts/retry_pending_leads.py --lookback-hours 24 --max 50

Requires: DATABASE_URL, OPENAI_API_KEY.
"""
import sys
import os
import argparse
import logging

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.config import LEAD_RETRY_LOOKBACK_HOURS, LEAD_RETRY_MAX_PER_RUN
from app.errors import PipelineError
from app.logging_config import configure_logging

logger = logging.getLogger('scripts.retry_pending_leads')


def main():
    parser = argparse.ArgumentParser(description='Retry pending or failed lead submissions')
    parser.add_argument('--lookback-hours', type=int, default=LEAD_RETRY_LOOKBACK_HOURS)
    parser.add_argument('--max', dest='max_per_run', type=int, default=LEAD_RETRY_MAX_PER_RUN)
    args = parser.parse_args()

    configure_logging()

    from app.database import import_models
    from app.pipeline.manager import retry_pending_leads
    from app.services.circuit_breaker import init_breakers
    from app.extensions import redis_client

    import_models()
    init_breakers(redis_client)

    try:
        stats = retry_pending_leads(args.lookback_hours, args.max_per_run)
    except PipelineError as e:
        logger.error("Lead retry aborted: %s", e)
        return 1

    print('Lead retry summary: ' + ', '.join(f'{k}={v}' for k, v in stats.items()))
    return 1 if stats['failed'] else 0


if __name__ == '__main__':
    sys.exit(main())

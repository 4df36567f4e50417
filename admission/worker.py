#!/usr/bin/env python3
"""
RQ Worker pool for the admission queues.

Each queue gets its own set of worker processes (queue concurrency from
config.yaml unless --concurrency is given). Workers run the RQ scheduler
so delayed retries are re-enqueued on time.

Usage:
    python -m admission.worker
    python -m admission.worker --queues verification --concurrency 2
    python -m admission.worker --burst --verbose
"""

import argparse
import logging
import multiprocessing
import sys
from typing import Dict, List, Optional

from rq import Worker

from core.cache.connection import create_redis_connection
from core.config_loader import AppConfig, load_config

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _queue_concurrency(config: AppConfig) -> Dict[str, int]:
    queues = config.queues
    return {
        queues.verification.name: queues.verification.concurrency,
        queues.refresh.name: queues.refresh.concurrency,
    }


def _run_worker(redis_url: str, password: Optional[str], queue_name: str, burst: bool, log_level: str):
    logging.getLogger().setLevel(log_level)
    redis_conn = create_redis_connection(redis_url, password, decode_responses=False)
    worker = Worker([queue_name], connection=redis_conn)
    worker.work(burst=burst, with_scheduler=True, logging_level=log_level)


def start_workers(
    config: AppConfig,
    queues: Optional[List[str]] = None,
    concurrency: Optional[int] = None,
    burst: bool = False,
    verbose: bool = False
) -> int:
    """Spawn the worker processes and wait for them. Returns an exit code."""
    configured = _queue_concurrency(config)
    queues = queues or list(configured.keys())

    unknown = [q for q in queues if q not in configured]
    if unknown:
        logger.error(f"Unknown queue(s): {', '.join(unknown)}. Available: {', '.join(configured)}")
        return 1

    redis_conn = create_redis_connection(
        config.redis.url, config.redis.password, decode_responses=False,
        socket_timeout=config.redis.socket_timeout_seconds
    )
    try:
        redis_conn.ping()
        logger.info("✓ Connected to Redis")
    except Exception as e:
        logger.error(f"Error connecting to Redis: {e}")
        return 1

    log_level = 'DEBUG' if verbose else 'INFO'
    processes = []
    for queue_name in queues:
        count = concurrency or configured[queue_name]
        logger.info(f"Starting {count} worker(s) for '{queue_name}' (burst: {burst})")
        for _ in range(count):
            process = multiprocessing.Process(
                target=_run_worker,
                args=(config.redis.url, config.redis.password, queue_name, burst, log_level),
            )
            process.start()
            processes.append(process)

    try:
        for process in processes:
            process.join()
    except KeyboardInterrupt:
        logger.info("Waiting for workers to finish current jobs...")
        for process in processes:
            process.join()

    logger.info("Workers stopped")
    return 0 if all(p.exitcode == 0 for p in processes) else 1


def main():
    parser = argparse.ArgumentParser(description='Admission scoring workers')
    parser.add_argument('--config', default='config.yaml', help='Path to config file')
    parser.add_argument('--queues', nargs='+', default=None, help='Queues to serve (default: all)')
    parser.add_argument('--concurrency', type=int, default=None, help='Worker processes per queue')
    parser.add_argument('--burst', action='store_true', help='Process all and exit')
    parser.add_argument('--verbose', action='store_true')

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(args.config)
    sys.exit(start_workers(
        config,
        queues=args.queues,
        concurrency=args.concurrency,
        burst=args.burst,
        verbose=args.verbose
    ))


if __name__ == '__main__':
    main()

import time
import logging
import signal
import sys
import json
import argparse

from core.app_context import AppContext
from core.config_loader import load_config
from core.exceptions import AdmissionException
from core.providers import PROVIDER_NAMES
from database.database import create_session_factory
from database.init_db import init_db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Global flag for graceful shutdown
running = True

def signal_handler(sig, frame):
    global running
    logger.info("Shutdown signal received")
    running = False


def _print_json(data):
    print(json.dumps(data, indent=2, default=str))


def cmd_init_db(config, args):
    session_factory = create_session_factory(config.database.url)
    seeded = init_db(session_factory, seed_weights=not args.no_seed)
    logger.info(f"Database ready ({seeded} weights seeded)")


def cmd_backfill(context, args):
    count = context.admission_service.backfill(status=args.status)
    print(f"Queued {count} {args.status} applications for re-verification")


def cmd_update_weight(context, args):
    updated = context.weight_admin.update_weight(
        args.key,
        updated_by=args.updated_by,
        weight=args.weight,
        threshold=args.threshold,
        minimum=args.minimum,
    )
    _print_json(updated)


def cmd_list_weights(context, args):
    _print_json(context.weight_admin.list_weights())


def cmd_refresh_user(context, args):
    providers = [args.provider] if args.provider else list(PROVIDER_NAMES)
    for provider in providers:
        job_id = context.admission_service.enqueue_refresh(args.user_id, provider)
        print(f"{provider}: queued job {job_id}")


def cmd_run_scheduler(context, args):
    """Queue a refresh cycle every refresh_interval_seconds until stopped."""
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    interval = args.interval or context.config.schedule.refresh_interval_seconds
    cycle_count = 0
    while running:
        cycle_count += 1
        cycle_start = time.time()
        logger.info(f"=== Starting refresh cycle #{cycle_count} ===")
        try:
            context.admission_service.schedule_refresh_cycle()
        except Exception as e:
            logger.error(f"Error in scheduler loop: {e}", exc_info=True)

        cycle_elapsed = time.time() - cycle_start
        if running:
            logger.info(f"=== Cycle #{cycle_count} completed in {cycle_elapsed:.2f}s. Sleeping for {interval} seconds... ===")
            # Sleep in chunks to allow responsive shutdown
            for _ in range(max(1, interval // 5)):
                if not running: break
                time.sleep(5)


def _select_queues(context, name=None):
    queues = [context.verification_queue, context.refresh_queue]
    if name:
        queues = [q for q in queues if q.name == name]
        if not queues:
            raise ValueError(f"Unknown queue: {name}")
    return queues


def cmd_dead_jobs(context, args):
    for queue in _select_queues(context, args.queue):
        job_ids = queue.dead_job_ids()
        print(f"{queue.name}: {len(job_ids)} dead job(s)")
        for job_id in job_ids:
            print(f"  {job_id}")


def cmd_requeue(context, args):
    queue = _select_queues(context, args.queue)[0]
    if queue.requeue_dead_job(args.job_id) is None:
        print(f"Skipped {args.job_id}: a job with the same key is already pending on {queue.name}")
        return
    print(f"Requeued {args.job_id} on {queue.name}")


def cmd_status(context, args):
    try:
        context.queue_conn.ping()
        redis_status = "connected"
    except Exception as e:
        redis_status = f"unavailable: {e}"

    status = {'redis': redis_status, 'queues': []}
    if redis_status == "connected":
        status['queues'] = [q.get_queue_status() for q in _select_queues(context)]
    _print_json(status)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="LockedIn Admission Scoring")
    parser.add_argument('--config', default='config.yaml', help='Path to config file')
    parser.add_argument('--verbose', action='store_true')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('init-db', help='Create tables and seed default weights')
    p.add_argument('--no-seed', action='store_true')
    p.set_defaults(handler=cmd_init_db, needs_context=False)

    p = sub.add_parser('backfill', help='Re-queue verification for applications in a status')
    p.add_argument('--status', default='UNDER_REVIEW',
                   choices=['PENDING', 'UNDER_REVIEW', 'APPROVED', 'REJECTED'])
    p.set_defaults(handler=cmd_backfill)

    p = sub.add_parser('update-weight', help='Change one scoring weight')
    p.add_argument('key')
    p.add_argument('--weight', type=float)
    p.add_argument('--threshold', type=float)
    p.add_argument('--minimum', type=float)
    p.add_argument('--updated-by', default=None, help='Admin user id')
    p.set_defaults(handler=cmd_update_weight)

    p = sub.add_parser('list-weights', help='Show scoring weights')
    p.set_defaults(handler=cmd_list_weights)

    p = sub.add_parser('refresh-user', help='Queue signal refresh for one user')
    p.add_argument('user_id')
    p.add_argument('--provider', choices=list(PROVIDER_NAMES))
    p.set_defaults(handler=cmd_refresh_user)

    p = sub.add_parser('run-scheduler', help='Periodically queue signal refreshes')
    p.add_argument('--interval', type=int, default=None, help='Seconds between cycles')
    p.set_defaults(handler=cmd_run_scheduler)

    p = sub.add_parser('dead-jobs', help='List jobs that exhausted their retries')
    p.add_argument('--queue')
    p.set_defaults(handler=cmd_dead_jobs)

    p = sub.add_parser('requeue', help='Requeue a dead job')
    p.add_argument('queue')
    p.add_argument('job_id')
    p.set_defaults(handler=cmd_requeue)

    p = sub.add_parser('status', help='Show Redis and queue status')
    p.set_defaults(handler=cmd_status)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(args.config)

    if not getattr(args, 'needs_context', True):
        args.handler(config, args)
        return 0

    context = AppContext.build(config)
    try:
        args.handler(context, args)
    except (AdmissionException, ValueError) as e:
        logger.error(str(e))
        return 1
    finally:
        context.close()
    return 0

if __name__ == "__main__":
    sys.exit(main())

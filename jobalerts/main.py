"""Main entry point for the job alert notification service."""

import argparse
import signal
import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from jobalerts.config.environment import EnvironmentConfig
from jobalerts.config.exceptions import ConfigurationError
from jobalerts.config.loader import load_config
from jobalerts.config.models import AppConfig
from jobalerts.domain.models import BATCH_FREQUENCIES
from jobalerts.logging import get_logger
from jobalerts.logging.config import configure_logging
from jobalerts.matching.engine import AlertMatchEngine
from jobalerts.notifications.dispatcher import EmailDispatcher
from jobalerts.notifications.service import NotificationService
from jobalerts.persistence.database import close_database, init_database
from jobalerts.pipeline import BatchAlertRunner, ImmediateNotifier
from jobalerts.scheduler import AlertScheduler

logger = get_logger(__name__, component="cli")


@dataclass
class Services:
    """The long-lived objects shared by every run mode."""

    notification_service: NotificationService
    batch_runner: BatchAlertRunner
    immediate_notifier: ImmediateNotifier


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and settle the effective log level.

    Priority: CLI flag, then LOG_LEVEL, then the config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level

    return app_config, env_config


def build_services(app_config: AppConfig, env_config: EnvironmentConfig) -> Services:
    dispatcher = EmailDispatcher(env_config, app_config.email)
    notification_service = NotificationService(
        dispatcher, frontend_url=app_config.notifications.frontend_url
    )
    match_engine = AlertMatchEngine()
    delay = app_config.notifications.dispatch_delay_seconds

    return Services(
        notification_service=notification_service,
        batch_runner=BatchAlertRunner(
            notification_service, match_engine=match_engine, dispatch_delay_seconds=delay
        ),
        immediate_notifier=ImmediateNotifier(
            notification_service,
            match_engine=match_engine,
            dispatch_delay_seconds=delay,
            max_workers=app_config.notifications.immediate_workers,
        ),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Job alert service - matches new job postings against saved alerts "
        "and company subscriptions and emails the matches"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--run-tier",
        choices=[tier.value for tier in BATCH_FREQUENCIES],
        help="Run one batch digest cycle for the tier and exit",
    )
    mode.add_argument(
        "--notify-job",
        metavar="JOB_ID",
        help="Send subscription and immediate-alert notifications for one job and exit",
    )
    return parser


def run_tier_once(services: Services, tier: str) -> int:
    result = services.batch_runner.run_batch_cycle(tier)
    logger.info(
        f"Batch run for {tier} finished: {result.processed} processed, "
        f"{result.matched} matched, {result.sent} sent, {result.errors} errors",
        extra={
            "event": "service.manual_run.completed",
            "frequency": tier,
            "skipped": result.skipped,
            "had_errors": result.had_errors,
            "duration_seconds": result.total_duration_seconds,
        },
    )
    return 1 if result.had_errors or result.skipped else 0


def notify_job_once(services: Services, job_id: str) -> int:
    try:
        result = services.immediate_notifier.process_job_created(job_id)
    finally:
        services.immediate_notifier.shutdown(wait=True)
    if result.skipped:
        logger.warning(
            f"Job {job_id} was not processed: {result.skip_reason}",
            extra={"event": "service.notify_job.skipped", "reason": result.skip_reason},
        )
        return 1
    return 1 if result.errors else 0


def run_daemon(services: Services, app_config: AppConfig) -> int:
    shutdown_event = threading.Event()
    scheduler = AlertScheduler(
        run_tier=services.batch_runner.run_batch_cycle,
        schedule_config=app_config.schedule,
    )

    def signal_handler(signum, frame):
        logger.info(
            f"Received signal {signum}, shutting down",
            extra={"event": "service.signal_received", "signal": signum},
        )
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    scheduler.start()
    logger.info(
        "Scheduler started. Press Ctrl+C to stop",
        extra={"event": "service.daemon_mode.started", "status": scheduler.get_status()},
    )

    try:
        shutdown_event.wait()
    except KeyboardInterrupt:
        logger.info(
            "Keyboard interrupt received, shutting down",
            extra={"event": "service.keyboard_interrupt"},
        )
    finally:
        scheduler.stop(wait=False)
        services.immediate_notifier.shutdown(wait=True)

    return 0


def main(argv=None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    load_dotenv()
    start_time = time.time()
    args = build_parser().parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
        )

        logger.info(
            "Job alert service starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "run_tier": args.run_tier,
                "notify_job": args.notify_job,
            },
        )

        init_database(env_config.database_url)
        services = build_services(app_config, env_config)
        logger.info(
            "Configuration loaded",
            extra={
                "event": "config.loaded",
                "enabled_tiers": list(app_config.schedule.enabled_tiers()),
                "timezone": app_config.schedule.timezone,
                "dispatch_delay_seconds": app_config.notifications.dispatch_delay_seconds,
            },
        )

        try:
            if args.run_tier:
                services.immediate_notifier.shutdown(wait=False)
                return run_tier_once(services, args.run_tier)
            if args.notify_job:
                return notify_job_once(services, args.notify_job)
            return run_daemon(services, app_config)
        finally:
            close_database()
            logger.info(
                "Job alert service stopped",
                extra={
                    "event": "service.stopping",
                    "uptime_seconds": round(time.time() - start_time, 2),
                },
            )

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())

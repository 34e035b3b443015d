import asyncio
import logging
import sys

import click
import httpx
import structlog

from task_notify.config import NotificationConfig, load_config, settings
from task_notify.output.base import NotificationRequest
from task_notify.output.feishu import FEISHU_SETUP_GUIDE
from task_notify.output.router import dispatch_config
from task_notify.output.summary import SummaryReport
from task_notify.project import detect_project_name

logger = structlog.get_logger()

DEFAULT_MESSAGE = "Task completed"


def configure_logging():
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            (
                structlog.dev.ConsoleRenderer()
                if settings.APP_ENV == "development"
                else structlog.processors.JSONRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        # stdout is reserved for the summary report
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def apply_overrides(
    config: NotificationConfig,
    webhook: str | None = None,
    no_sound: bool = False,
) -> NotificationConfig:
    """Fold command-line overrides into the loaded config."""
    if webhook:
        config = config.model_copy(
            update={"feishu": config.feishu.model_copy(update={"webhook_url": webhook, "enabled": True})}
        )
    if no_sound:
        config = config.model_copy(update={"sound": config.sound.model_copy(update={"enabled": False})})
    return config


async def run(
    request: NotificationRequest,
    config: NotificationConfig,
    grace_delay: float = 0.0,
    http: httpx.AsyncClient | None = None,
) -> SummaryReport:
    """Idle -> Dispatching -> Reported."""
    results = await dispatch_config(request, config, http=http)
    report = SummaryReport.from_results(results)

    # Give a just-launched sound time to become audible before exiting
    if grace_delay > 0 and any(r.channel == "sound" and r.success for r in results):
        await asyncio.sleep(grace_delay)
    return report


@click.command()
@click.option("--message", "-m", default=None, help="Task description to send.")
@click.option("--task", default=None, help="Alias for --message.")
@click.option("--webhook", default=None, help="Feishu webhook URL (overrides config and environment).")
@click.option("--project", default=None, help="Project name (detected from the working directory if omitted).")
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Path to the JSON config file.",
)
@click.option("--no-sound", is_flag=True, help="Skip the local sound cue.")
@click.option("--no-wait", is_flag=True, help="Exit right after dispatch, without the grace delay.")
def main(message, task, webhook, project, config_path, no_sound, no_wait):
    """Send a task-completion notification to every enabled channel."""
    configure_logging()

    config = apply_overrides(load_config(config_path), webhook=webhook, no_sound=no_sound)
    request = NotificationRequest(
        message=message or task or DEFAULT_MESSAGE,
        project_name=project or detect_project_name(),
    )

    click.echo(f"Sending task completion notification for {request.project_name}: {request.message}")
    grace_delay = 0.0 if no_wait else settings.GRACE_DELAY
    report = asyncio.run(run(request, config, grace_delay=grace_delay))

    click.echo(report.render())
    if "feishu" in report.needs_setup:
        click.echo(FEISHU_SETUP_GUIDE)

    logger.info("notify.finished", success=report.all_succeeded)
    sys.exit(0 if report.all_succeeded else 1)


if __name__ == "__main__":
    main()

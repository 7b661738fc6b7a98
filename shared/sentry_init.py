"""
Sentry error tracking for the notification functions.
Trigger handlers never raise; their ERROR log records become Sentry events.
"""
import logging

from shared.config import settings

logger = logging.getLogger(__name__)

# Device tokens are credentials for pushing to a user's phone
REDACTED_KEYS = {"fcmToken", "token"}


def scrub_tokens(value):
    """Recursively replace device token values with a placeholder."""
    if isinstance(value, dict):
        return {
            key: "[redacted]" if key in REDACTED_KEYS else scrub_tokens(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [scrub_tokens(item) for item in value]
    return value


def before_send(event, hint):
    return scrub_tokens(event)


def init_sentry():
    """Initialize Sentry when SENTRY_DSN is configured."""
    if not settings.SENTRY_DSN:
        logger.info("ℹ️ Sentry DSN not provided. Error tracking disabled.")
        return

    try:
        import sentry_sdk
        from sentry_sdk.integrations.logging import LoggingIntegration

        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.SENTRY_ENVIRONMENT,
            release=f"{settings.APP_NAME}@{settings.APP_VERSION}",
            traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
            integrations=[
                # Breadcrumbs from INFO, events from ERROR
                LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
            ],
            before_send=before_send,
            send_default_pii=False,
            max_breadcrumbs=50,
        )
        sentry_sdk.set_tag("functions_region", settings.FUNCTIONS_REGION)
        logger.info("✅ Sentry initialized")
    except Exception as e:
        logger.error(f"❌ Failed to initialize Sentry: {e}")

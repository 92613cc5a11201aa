"""Sentry error tracking.

No-op unless SENTRY_DSN is set, so both the API process and the Celery
worker call it unconditionally at startup.
"""

import logging

from app.core.config import settings

logger = logging.getLogger(__name__)


def init_sentry(component: str = "api") -> bool:
    """Initialize Sentry for ``component`` ("api" or "worker").

    Returns True when the SDK was initialized.
    """
    if not settings.sentry_dsn:
        logger.debug("Sentry DSN not configured, %s runs without error tracking", component)
        return False

    import sentry_sdk
    from sentry_sdk.integrations.celery import CeleryIntegration
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    integrations = [SqlalchemyIntegration()]
    if component == "worker":
        integrations.append(CeleryIntegration())
    else:
        integrations.append(FastApiIntegration(transaction_style="endpoint"))

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.app_env,
        traces_sample_rate=0.1 if settings.app_env == "production" else 1.0,
        send_default_pii=False,
        integrations=integrations,
    )
    sentry_sdk.set_tag("component", component)
    logger.info("Sentry initialized (env=%s, component=%s)", settings.app_env, component)
    return True

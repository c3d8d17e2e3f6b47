"""Startup-time logging of the effective routing configuration."""

from sqlalchemy.engine import make_url

from payroute.common.config import CommonSettings
from payroute.common.logging import logger

SECRET_MARKERS = ("KEY", "SECRET", "PASSWORD", "TOKEN")


def display_value(name: str, value) -> str:
    """Render one setting for logs; DSNs keep their host but lose the password."""

    if name == "database_dsn":
        return make_url(value).render_as_string(hide_password=True)
    if any(marker in name.upper() for marker in SECRET_MARKERS):
        return "<redacted>"
    return str(value)


def log_startup_config(config: CommonSettings, fields: list[str] | None = None) -> None:
    """Log the settings the router actually resolved from env and `.env`."""

    snapshot = {"service": config.service_name}
    for name in fields or list(CommonSettings.model_fields):
        snapshot[name] = display_value(name, getattr(config, name))
    logger.info("startup_config=%s", snapshot)

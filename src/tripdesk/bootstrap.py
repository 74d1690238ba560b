from __future__ import annotations

# isort: off
import tripdesk.models  # noqa: F401
# isort: on

from tripdesk.core.config import settings
from tripdesk.core.db import engine
from tripdesk.core.logging import get_logger, log_event
from tripdesk.core.models import Base

logger = get_logger(__name__)


def bootstrap() -> None:
    if settings.environment in {"dev", "test"} and str(settings.database_url).startswith("sqlite"):
        Base.metadata.create_all(engine)
        log_event(logger, "bootstrap.schema_created", database_url=settings.database_url)

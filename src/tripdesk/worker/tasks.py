from __future__ import annotations

# Ensure all models are registered before any task runs
# isort: off
import tripdesk.models  # noqa: F401
# isort: on

import time
from collections.abc import Callable
from decimal import Decimal
from typing import Any

from tripdesk.core.logging import (
    get_logger,
    log_event,
    log_exception,
    monotonic_ms,
    reset_task_context,
    set_task_context,
)
from tripdesk.worker.celery_app import celery_app

logger = get_logger(__name__)


def _run_logged(task, task_name: str, fn: Callable[[], Any], **fields: Any) -> Any:
    task_id = getattr(task.request, "id", None)
    token = set_task_context(task_id)
    start = time.monotonic()
    log_event(logger, "celery.task.start", task_name=task_name, celery_task_id=task_id, **fields)
    try:
        result = fn()
        log_event(
            logger,
            "celery.task.finish",
            task_name=task_name,
            celery_task_id=task_id,
            duration_ms=monotonic_ms(start),
            **fields,
        )
        return result
    except Exception:
        log_exception(
            logger,
            "celery.task.error",
            task_name=task_name,
            celery_task_id=task_id,
            duration_ms=monotonic_ms(start),
            **fields,
        )
        raise
    finally:
        reset_task_context(token)


@celery_app.task(name="send_proposal_sent_email", bind=True)
def send_proposal_sent_email_task(
    self, proposal_id: int, custom_message: str | None = None
) -> None:
    from tripdesk.modules.notifications.service import send_proposal_sent_email

    _run_logged(
        self,
        "send_proposal_sent_email",
        lambda: send_proposal_sent_email(proposal_id=proposal_id, custom_message=custom_message),
        proposal_id=proposal_id,
    )


@celery_app.task(name="send_proposal_accepted_email", bind=True)
def send_proposal_accepted_email_task(self, proposal_id: int) -> None:
    from tripdesk.modules.notifications.service import send_proposal_accepted_email

    _run_logged(
        self,
        "send_proposal_accepted_email",
        lambda: send_proposal_accepted_email(proposal_id=proposal_id),
        proposal_id=proposal_id,
    )


@celery_app.task(name="send_deposit_received_email", bind=True)
def send_deposit_received_email_task(self, proposal_id: int, amount: str) -> None:
    from tripdesk.modules.notifications.service import send_deposit_received_email

    # Amounts travel as strings so the JSON serializer keeps cents exact.
    _run_logged(
        self,
        "send_deposit_received_email",
        lambda: send_deposit_received_email(proposal_id=proposal_id, amount=Decimal(amount)),
        proposal_id=proposal_id,
        amount=amount,
    )

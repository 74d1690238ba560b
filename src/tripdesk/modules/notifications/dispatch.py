"""
Post-commit notification dispatch.

Workflows receive a notifier and call it once their transaction has committed.
The production notifier defers the Celery enqueue to FastAPI background tasks so
it runs after the response is sent; enqueue failures are logged and dropped.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Protocol

from fastapi import BackgroundTasks

from tripdesk.core.logging import get_logger, log_event, log_exception

logger = get_logger(__name__)


class Notifier(Protocol):
    def proposal_sent(self, proposal_id: int, custom_message: str | None = None) -> None: ...

    def proposal_accepted(self, proposal_id: int) -> None: ...

    def deposit_received(self, proposal_id: int, amount: Decimal) -> None: ...


def _enqueue(task_name: str, *args: Any) -> None:
    from tripdesk.worker import tasks

    task = {
        "send_proposal_sent_email": tasks.send_proposal_sent_email_task,
        "send_proposal_accepted_email": tasks.send_proposal_accepted_email_task,
        "send_deposit_received_email": tasks.send_deposit_received_email_task,
    }[task_name]
    try:
        task.delay(*args)
        log_event(logger, "notification.enqueued", task_name=task_name)
    except Exception:
        log_exception(logger, "notification.enqueue_failed", task_name=task_name)


class BackgroundNotifier:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def proposal_sent(self, proposal_id: int, custom_message: str | None = None) -> None:
        self._background_tasks.add_task(
            _enqueue, "send_proposal_sent_email", proposal_id, custom_message
        )

    def proposal_accepted(self, proposal_id: int) -> None:
        self._background_tasks.add_task(_enqueue, "send_proposal_accepted_email", proposal_id)

    def deposit_received(self, proposal_id: int, amount: Decimal) -> None:
        self._background_tasks.add_task(
            _enqueue, "send_deposit_received_email", proposal_id, str(amount)
        )


def get_notifier(background_tasks: BackgroundTasks) -> Notifier:
    return BackgroundNotifier(background_tasks)

"""
Best-effort email notifications.

A Notifier is created per request. notify() only schedules the delivery on
the request's BackgroundTasks, which run after the response has been sent.
Delivery is attempted once; a failure is logged and never reaches the
caller or changes the state transition that triggered it.
"""

import logging

from fastapi import BackgroundTasks

from unihub.services.mailers import OutgoingEmail

logger = logging.getLogger(__name__)


def deliver(mailer, email: OutgoingEmail) -> bool:
    try:
        mailer.send(email)
    except Exception:
        logger.exception("Failed to send email '%s' to %s", email.subject, email.to)
        return False
    logger.info("Email '%s' sent to %s", email.subject, email.to)
    return True


class Notifier:
    def __init__(self, mailer, tasks: BackgroundTasks):
        self.mailer = mailer
        self.tasks = tasks

    def notify(self, email: OutgoingEmail) -> None:
        self.tasks.add_task(deliver, self.mailer, email)

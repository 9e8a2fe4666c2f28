# app/services/handlers/notify_submission.py
from .base import SubmissionContext, SubmissionHandler


class NotifySubmissionHandler(SubmissionHandler):
    async def _handle(self, context: SubmissionContext):
        # NotificationService ya registra y absorbe sus fallos
        context.notifier.submission_received(context.response)

"""
Email backend that sends Django mail through the Postmark API instead of SMTP.
Selected in settings when POSTMARK_API_TOKEN is set.
"""
import logging

from django.core.mail.backends.base import BaseEmailBackend
from postmarker.core import PostmarkClient
from django.conf import settings

logger = logging.getLogger(__name__)


class EmailBackend(BaseEmailBackend):

    def send_messages(self, email_messages):
        """
        Sends EmailMessage instances one by one.

        Returns:
            int: The number of messages Postmark accepted.
        """
        if not email_messages:
            return 0

        client = PostmarkClient(server_token=settings.POSTMARK_API_TOKEN)
        sent_count = 0

        for message in email_messages:
            try:
                client.emails.send(
                    From=message.from_email,
                    To=', '.join(message.to),
                    Subject=message.subject,
                    TextBody=message.body,
                )
                sent_count += 1
            except Exception:
                logger.exception(f"Postmark rejected message to {', '.join(message.to)}")
                if not self.fail_silently:
                    raise

        return sent_count

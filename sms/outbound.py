"""
Best-effort removal of messages from the provider's message log, so that
respondents' numbers and texts cannot be read back from the dashboard.

Twilio refuses to delete a message that is still in flight, so deletion is
retried on a fixed delay from a daemon thread and never reported back to
the request that scheduled it.
"""
import logging
import threading
import time

from twilio.rest import Client

logger = logging.getLogger(__name__)


class OutboundCleaner:
    def __init__(self, account_sid=None, auth_token=None, delay=1.0, max_attempts=0, client=None):
        self.delay = delay
        # 0 means retry until it succeeds
        self.max_attempts = max_attempts
        self._client = client
        self._account_sid = account_sid
        self._auth_token = auth_token

    @property
    def client(self):
        if self._client is None and self._account_sid and self._auth_token:
            self._client = Client(self._account_sid, self._auth_token)
        return self._client

    def schedule(self, message_id):
        """Start deleting `message_id` in the background. Never raises."""
        if not message_id:
            return None

        if self.client is None:
            logger.warning("Twilio credentials not configured, not deleting %s", message_id)
            return None

        thread = threading.Thread(
            target=self._delete_until_done,
            args=(message_id,),
            name=f"delete-{message_id}",
            daemon=True,
        )
        thread.start()
        return thread

    def _delete_until_done(self, message_id):
        attempt = 0
        while True:
            attempt += 1
            try:
                self.client.messages(message_id).delete()
                logger.debug("Deleted message %s after %d attempt(s)", message_id, attempt)
                return True
            except Exception as e:
                if self.max_attempts and attempt >= self.max_attempts:
                    logger.warning("Giving up deleting message %s: %s", message_id, e)
                    return False
                logger.debug("Delete of %s failed (%s), retrying in %ss", message_id, e, self.delay)
                time.sleep(self.delay)

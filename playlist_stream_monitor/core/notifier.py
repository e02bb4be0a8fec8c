"""Report delivery to chat targets."""

import logging
import time
from typing import Optional, Sequence

import httpx

from ..errors import DeliveryError

TELEGRAM_API_URL = "https://api.telegram.org"
TELEGRAM_HARD_LIMIT = 4096


class Notifier:
    """Sends report chunks to a chat through the Telegram Bot API.

    Without a bot token the notifier falls back to writing messages to the
    log, which keeps dry runs usable.
    """

    def __init__(
        self,
        logger: logging.Logger,
        bot_token: Optional[str] = None,
        chunk_delay: float = 1.0,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None
    ):
        """Initialize notifier.

        Args:
            logger: Logger instance
            bot_token: Telegram bot token (log backend if None)
            chunk_delay: Pause in seconds between consecutive chunks
            timeout: Request timeout in seconds
            client: Optional preconfigured HTTP client
        """
        self.logger = logger
        self.bot_token = bot_token
        self.chunk_delay = chunk_delay
        self.timeout = timeout
        self.client = client

        self.backend = self._detect_backend()

    def _detect_backend(self) -> str:
        """Pick the delivery backend.

        Returns:
            Backend name ('telegram' or 'log')
        """
        if self.bot_token:
            self.logger.debug("Using Telegram for delivery")
            return 'telegram'

        self.logger.warning("No Telegram bot token configured, reports will only be logged")
        return 'log'

    def send(self, target_id: str, text: str) -> None:
        """Send one message.

        Args:
            target_id: Chat id to deliver to
            text: Message text

        Raises:
            DeliveryError: If the transport rejects or fails the request
        """
        if len(text) > TELEGRAM_HARD_LIMIT:
            self.logger.warning(
                f"Message of {len(text)} chars truncated to {TELEGRAM_HARD_LIMIT}"
            )
            text = text[:TELEGRAM_HARD_LIMIT]

        if self.backend == 'telegram':
            self._send_telegram(target_id, text)
        else:
            self.logger.info(f"Message for {target_id}:\n{text}")

    def _send_telegram(self, target_id: str, text: str) -> None:
        url = f"{TELEGRAM_API_URL}/bot{self.bot_token}/sendMessage"
        payload = {'chat_id': target_id, 'text': text}

        try:
            if self.client is not None:
                response = self.client.post(url, json=payload, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DeliveryError(f"Telegram send to {target_id} failed: {e}") from e

        self.logger.debug(f"Sent {len(text)} chars to chat {target_id}")

    def send_chunks(self, target_id: str, chunks: Sequence[str]) -> int:
        """Send chunks in order, pausing between them.

        Args:
            target_id: Chat id to deliver to
            chunks: Messages to send

        Returns:
            Number of chunks sent

        Raises:
            DeliveryError: On the first chunk that fails; later chunks are not sent
        """
        for i, chunk in enumerate(chunks):
            self.send(target_id, chunk)

            # Pause between chunks (except after the last one)
            if i < len(chunks) - 1 and self.chunk_delay > 0:
                time.sleep(self.chunk_delay)

        self.logger.info(f"Delivered {len(chunks)} message(s) to {target_id}")
        return len(chunks)

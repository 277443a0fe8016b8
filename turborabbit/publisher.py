"""Publishing letters on cached or transient channels, with optional confirmations."""

from __future__ import annotations

import queue
import threading
import time
from contextlib import suppress
from typing import Any

import pika
import pika.exceptions

from turborabbit.configs import RabbitSeasoning
from turborabbit.letter import Letter
from turborabbit.message import PublishReceipt

_BUFFER_SIZE = 1000
_DEFAULT_MAX_RETRY_COUNT = 5


def _timeout_error(letter: Letter, detail: str = "") -> TimeoutError:
    return TimeoutError(
        f"publish confirmation for LetterID: {letter.letter_id} wasn't received "
        f"in a timely manner{detail} - recommend retry/requeue"
    )


def _context_error(letter: Letter) -> TimeoutError:
    return TimeoutError(
        f"publish confirmation for LetterID: {letter.letter_id} wasn't received "
        "before context expired - recommend retry/requeue"
    )


class Publisher:
    """Publishes letters directly, with broker confirmations, or from a queue.

    Intervals and timeouts are in seconds. Every publish that asks for a
    receipt reports its outcome on ``publish_receipts()``.
    """

    def __init__(
        self,
        connection_pool: Any,
        sleep_on_idle_interval: float = 0.0,
        sleep_on_error_interval: float = 0.0,
        publish_timeout: float = 0.0,
        config: RabbitSeasoning | None = None,
    ) -> None:
        self.config = config
        self.connection_pool = connection_pool
        self._sleep_on_idle = sleep_on_idle_interval
        self._sleep_on_error = sleep_on_error_interval
        self._publish_timeout = publish_timeout
        self._letters: queue.Queue[Letter] = queue.Queue(_BUFFER_SIZE)
        self._letters_closed = False
        self._auto_stop: queue.Queue[bool] = queue.Queue(1)
        self._receipts: queue.Queue[PublishReceipt] = queue.Queue(_BUFFER_SIZE)
        self._auto_started = False
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: RabbitSeasoning, connection_pool: Any) -> Publisher:
        """Create a publisher from service configuration (intervals given in ms).

        A zero retry count in the configuration is raised to 5.
        """
        settings = config.publisher_config
        if settings.max_retry_count == 0:
            settings.max_retry_count = _DEFAULT_MAX_RETRY_COUNT
        return cls(
            connection_pool,
            sleep_on_idle_interval=settings.sleep_on_idle_interval / 1000,
            sleep_on_error_interval=settings.sleep_on_error_interval / 1000,
            publish_timeout=settings.publish_time_out_interval / 1000,
            config=config,
        )

    def _properties(self, letter: Letter) -> pika.BasicProperties:
        envelope = letter.envelope
        return pika.BasicProperties(
            content_type=envelope.content_type or None,
            headers=envelope.headers,
            delivery_mode=envelope.delivery_mode or None,
            priority=envelope.priority or None,
            message_id=str(letter.letter_id),
            correlation_id=envelope.correlation_id or None,
            type=envelope.type or None,
            timestamp=int(time.time()),
            app_id=self.connection_pool.config.application_name or None,
        )

    def _send(self, channel: Any, letter: Letter) -> None:
        envelope = letter.envelope
        channel.basic_publish(
            exchange=envelope.exchange,
            routing_key=envelope.routing_key,
            body=letter.body,
            properties=self._properties(letter),
            mandatory=envelope.mandatory,
        )

    def _confirm_on(
        self,
        channel: Any,
        letter: Letter,
        timeout: float | None,
        cancel_event: threading.Event | None,
    ) -> bool | None:
        """Publish until the broker acks (True), time runs out (False) or the channel fails (None)."""
        while True:
            started = time.monotonic()
            try:
                self._send(channel, letter)
                acked = True
            except pika.exceptions.UnroutableError:
                acked = True
            except pika.exceptions.NackError:
                acked = False
            except Exception:
                return None

            if timeout is not None and time.monotonic() - started >= timeout:
                return False
            if acked:
                return True
            if cancel_event is not None and cancel_event.is_set():
                return False

    def _publish_on_cached(
        self,
        letter: Letter,
        timeout: float | None,
        cancel_event: threading.Event | None,
    ) -> bool:
        while True:
            chan_host = self.connection_pool.get_channel_from_pool()
            chan_host.flush_confirms()
            outcome = self._confirm_on(chan_host.channel, letter, timeout, cancel_event)
            if outcome is None:
                self.connection_pool.return_channel(chan_host, True)
                continue
            self.connection_pool.return_channel(chan_host, False)
            return outcome

    def publish(self, letter: Letter, skip_receipt: bool) -> None:
        """Publish once on a cached channel, reporting the outcome as a receipt."""
        with suppress(Exception):
            self.publish_with_error(letter, skip_receipt)

    def publish_with_error(self, letter: Letter, skip_receipt: bool) -> None:
        """Publish once on a cached channel, raising any publishing error."""
        chan_host = self.connection_pool.get_channel_from_pool()
        error: Exception | None = None
        try:
            self._send(chan_host.channel, letter)
        except Exception as exc:
            error = exc

        if not skip_receipt:
            self._publish_receipt(letter, error)
        self.connection_pool.return_channel(chan_host, error is not None)
        if error is not None:
            raise error

    def publish_with_transient(self, letter: Letter) -> None:
        """Publish once on a new channel that is closed afterwards."""
        channel = self.connection_pool.get_transient_channel(False)
        try:
            self._send(channel, letter)
        finally:
            with suppress(Exception):
                channel.close()

    def publish_with_confirmation(self, letter: Letter, timeout: float) -> None:
        """Publish until confirmed, republishing on nacks; report the outcome as a receipt."""
        try:
            self.publish_with_confirmation_error(letter, timeout)
        except TimeoutError as exc:
            self._publish_receipt(letter, exc)
        else:
            self._publish_receipt(letter, None)

    def publish_with_confirmation_error(self, letter: Letter, timeout: float) -> None:
        """Publish until confirmed, raising TimeoutError when an attempt takes too long."""
        if not timeout:
            timeout = self._publish_timeout
        if not self._publish_on_cached(letter, timeout, None):
            raise _timeout_error(letter)

    def publish_with_confirmation_context(
        self, cancel_event: threading.Event, letter: Letter
    ) -> None:
        """Publish until confirmed or ``cancel_event`` is set; report the outcome as a receipt."""
        try:
            self.publish_with_confirmation_context_error(cancel_event, letter)
        except TimeoutError as exc:
            self._publish_receipt(letter, exc)
        else:
            self._publish_receipt(letter, None)

    def publish_with_confirmation_context_error(
        self, cancel_event: threading.Event, letter: Letter
    ) -> None:
        """Publish until confirmed, raising TimeoutError once ``cancel_event`` is set."""
        if not self._publish_on_cached(letter, None, cancel_event):
            raise _context_error(letter)

    def publish_with_confirmation_transient(self, letter: Letter, timeout: float) -> None:
        """Publish with confirmations on new channels; report the outcome as a receipt."""
        if not timeout:
            timeout = self._publish_timeout
        while True:
            channel = self.connection_pool.get_transient_channel(True)
            outcome = self._confirm_on(channel, letter, timeout, None)
            with suppress(Exception):
                channel.close()
            if outcome is None:
                if self._sleep_on_error > 0:
                    time.sleep(self._sleep_on_error)
                continue
            if outcome:
                self._publish_receipt(letter, None)
            else:
                detail = f" ({int(timeout * 1000)}ms)"
                self._publish_receipt(letter, _timeout_error(letter, detail))
            return

    def publish_receipts(self) -> queue.Queue:
        """The queue of receipts for every publish that asked for one."""
        return self._receipts

    def start_auto_publishing(self) -> None:
        """Start publishing queued letters in the background, if not already running."""
        with self._lock:
            if self._auto_started:
                return
            self._auto_started = True
            threading.Thread(target=self._auto_publishing_loop, daemon=True).start()

    def _stop_requested(self) -> bool:
        try:
            return self._auto_stop.get_nowait()
        except queue.Empty:
            return False

    def _auto_publishing_loop(self) -> None:
        if not self._stop_requested():
            self._deliver_letters()
        with self._lock:
            self._auto_started = False

    def _deliver_letters(self) -> None:
        slots = threading.BoundedSemaphore(
            self.connection_pool.config.max_cache_channel_count // 2 + 1
        )

        def publish_one(item: Letter) -> None:
            try:
                self.publish_with_confirmation(item, self._publish_timeout)
            finally:
                slots.release()

        while True:
            while True:
                try:
                    letter = self._letters.get_nowait()
                except queue.Empty:
                    if self._sleep_on_idle > 0:
                        time.sleep(self._sleep_on_idle)
                    break
                slots.acquire()
                threading.Thread(target=publish_one, args=(letter,), daemon=True).start()

            if self._stop_requested():
                self._letters_closed = True
                return

    def _stop_auto_publish(self) -> None:
        with self._lock:
            if not self._auto_started:
                return
        threading.Thread(target=self._auto_stop.put, args=(True,), daemon=True).start()

    def queue_letters(self, letters: list[Letter]) -> bool:
        """Queue letters for background publishing; False once publishing has shut down."""
        return all(self.queue_letter(letter) for letter in letters)

    def queue_letter(self, letter: Letter) -> bool:
        """Queue a letter for background publishing; False once publishing has shut down."""
        if self._letters_closed:
            return False
        self._letters.put(letter)
        return True

    def _publish_receipt(self, letter: Letter, error: BaseException | None) -> None:
        receipt = PublishReceipt(letter_id=letter.letter_id, error=error)
        if error is None:
            receipt.success = True
        else:
            receipt.failed_letter = letter
        try:
            self._receipts.put_nowait(receipt)
        except queue.Full:
            threading.Thread(target=self._receipts.put, args=(receipt,), daemon=True).start()

    def shutdown(self, shutdown_pools: bool) -> None:
        """Stop background publishing and, if asked, shut the connection pool down."""
        self._stop_auto_publish()
        if shutdown_pools:
            self.connection_pool.shutdown()
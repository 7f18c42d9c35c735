# pylint: disable=broad-exception-caught
import enum
import logging
import threading

import pika

from common.config import MiddlewareConfig
from middleware.errors import BrokerConnectionError, NotInitializedError


class ConnectionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    CLOSING = "closing"
    CLOSED = "closed"
    FAILED = "failed"


class BrokerConnection:
    """
    Owns the single RabbitMQ connection and the single channel of the process.

    Lifecycle:
    1. initialize() once at startup: open TCP connection, open one channel
    2. get_channel() from any request thread while READY
    3. shutdown() once at process stop: close channel, then connection

    A failed initialize() is terminal, there is no reconnection. Every
    operation on the shared channel must hold channel_lock, since pika's
    BlockingChannel is not thread-safe.
    """

    def __init__(self, middleware_config: MiddlewareConfig, connection_factory=None):
        self.config = middleware_config
        self.connection = None
        self.channel = None
        self.channel_lock = threading.RLock()
        self.logger = logging.getLogger(__name__)
        self._connection_factory = connection_factory or pika.BlockingConnection
        self._state = ConnectionState.UNINITIALIZED
        self._state_lock = threading.Lock()
        self._pump_stop = threading.Event()
        self._pump_thread = None

    @property
    def state(self):
        return self._state

    def initialize(self):
        """Connect to RabbitMQ and open the process channel (single attempt)"""
        with self._state_lock:
            if self._state is not ConnectionState.UNINITIALIZED:
                raise RuntimeError(
                    f"initialize() called in state {self._state.value}, it may only run once"
                )
            self._state = ConnectionState.INITIALIZING

        self.logger.info(
            "action: rabbitmq_connect | result: in_progress | host: %s | port: %s",
            self.config.host,
            self.config.port,
        )

        try:
            self.connection = self._connection_factory(self._connection_parameters())
            self.channel = self.connection.channel()

            if self.config.confirm_delivery:
                self.channel.confirm_delivery()

        except Exception as e:
            self.logger.error(f"action: rabbitmq_connect | result: fail | error: {e}")
            self._release()
            with self._state_lock:
                self._state = ConnectionState.FAILED
            raise BrokerConnectionError(
                f"Could not connect to RabbitMQ at {self.config.host}:{self.config.port}: {e}"
            ) from e

        with self._state_lock:
            self._state = ConnectionState.READY
        self.logger.info("action: rabbitmq_connect | result: success")
        self._start_event_pump()

    def _connection_parameters(self):
        credentials = pika.PlainCredentials(self.config.username, self.config.password)
        return pika.ConnectionParameters(
            host=self.config.host,
            port=self.config.port,
            credentials=credentials,
            heartbeat=self.config.heartbeat,
            blocked_connection_timeout=300,
            connection_attempts=1,
        )

    def get_channel(self):
        """Return the process channel, only available while READY"""
        state = self._state
        if state is not ConnectionState.READY:
            raise NotInitializedError(f"Channel not initialized (state: {state.value})")
        return self.channel

    def shutdown(self):
        """Close channel then connection. Never raises, safe to call repeatedly"""
        with self._state_lock:
            if self._state is ConnectionState.UNINITIALIZED:
                # Nothing to close, but the single lifecycle is over
                self._state = ConnectionState.CLOSED
                self.logger.debug(
                    "action: rabbitmq_shutdown | result: skipped | state: uninitialized"
                )
                return
            if self._state is not ConnectionState.READY:
                self.logger.debug(
                    "action: rabbitmq_shutdown | result: skipped | state: %s",
                    self._state.value,
                )
                return
            self._state = ConnectionState.CLOSING

        self.logger.info("action: rabbitmq_shutdown | result: in_progress")
        self._pump_stop.set()
        with self.channel_lock:
            self._release()

        with self._state_lock:
            self._state = ConnectionState.CLOSED
        self.logger.info("action: rabbitmq_shutdown | result: success")

    def _release(self):
        """Best-effort close of whatever is open, errors are only logged"""
        try:
            if self.channel is not None and self.channel.is_open:
                self.channel.close()
                self.logger.debug("action: channel_close | result: success")
        except Exception as e:
            self.logger.error(f"action: channel_close | result: fail | error: {e}")

        try:
            if self.connection is not None and self.connection.is_open:
                self.connection.close()
                self.logger.debug("action: connection_close | result: success")
        except Exception as e:
            self.logger.error(f"action: connection_close | result: fail | error: {e}")

        self.channel = None
        self.connection = None

    def is_connected(self):
        """Check if the channel and its connection are usable"""
        return bool(
            self._state is ConnectionState.READY
            and self.channel is not None
            and self.channel.is_open
            and self.connection is not None
            and self.connection.is_open
        )

    def _start_event_pump(self):
        # BlockingConnection only answers heartbeats while I/O is driven
        if not self.config.heartbeat:
            return
        self._pump_thread = threading.Thread(
            target=self._pump_events,
            args=(self.config.heartbeat / 2,),
            name="RabbitMQ-EventPump",
            daemon=True,
        )
        self._pump_thread.start()

    def _pump_events(self, interval):
        while not self._pump_stop.wait(interval):
            with self.channel_lock:
                if self._state is not ConnectionState.READY:
                    return
                try:
                    self.connection.process_data_events(time_limit=0)
                except Exception as e:
                    self.logger.error(
                        f"action: rabbitmq_event_pump | result: fail | error: {e}"
                    )
                    return

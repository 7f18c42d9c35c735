import os
import socket
import threading
import time
import uuid

import pytest
from pika.exceptions import (
    AMQPConnectionError,
    ChannelClosedByBroker,
    ChannelWrongStateError,
)

from common.config import MiddlewareConfig, ServerConfig
from middleware import BrokerConnection, RabbitMQPublisher


# --------- In-memory stand-ins for pika's BlockingConnection ----------


class FakeBroker:
    """Broker-side state shared by every FakeConnection: queues and their messages"""

    def __init__(self):
        self.queues = {}  # name -> durable flag
        self.messages = {}  # name -> list of bodies
        self.declare_calls = 0
        self._lock = threading.Lock()

    def declare(self, name, durable):
        with self._lock:
            self.declare_calls += 1
            if name in self.queues:
                if self.queues[name] != durable:
                    raise ChannelClosedByBroker(
                        406,
                        f"PRECONDITION_FAILED - inequivalent arg 'durable' for queue '{name}'",
                    )
                return
            self.queues[name] = durable
            self.messages[name] = []

    def enqueue(self, name, body):
        with self._lock:
            # The default exchange silently drops messages for unknown queues
            if name in self.messages:
                self.messages[name].append(body)


class FakeChannel:
    def __init__(self, broker):
        self.broker = broker
        self.is_open = True
        self.confirms = False
        self.publish_delay = 0.0
        self.fail_close = False
        self.fail_publish = None
        self._in_use = threading.Lock()

    @property
    def is_closed(self):
        return not self.is_open

    def confirm_delivery(self):
        self.confirms = True

    def queue_declare(self, queue, durable=False, **_kwargs):
        self._guard()
        try:
            self.broker.declare(queue, durable)
        except ChannelClosedByBroker:
            self.is_open = False
            raise

    def basic_publish(self, exchange, routing_key, body, properties=None, mandatory=False):
        self._guard()
        assert exchange == ""
        assert properties is None
        if self.fail_publish is not None:
            raise self.fail_publish
        # pika's BlockingChannel is not thread-safe: detect concurrent use
        if not self._in_use.acquire(blocking=False):
            raise AssertionError("channel used concurrently")
        try:
            if self.publish_delay:
                time.sleep(self.publish_delay)
            self.broker.enqueue(routing_key, body)
        finally:
            self._in_use.release()

    def close(self):
        if self.fail_close:
            raise AMQPConnectionError("close failed")
        self.is_open = False

    def _guard(self):
        if not self.is_open:
            raise ChannelWrongStateError("Channel is closed.")


class FakeConnection:
    def __init__(self, broker, parameters=None, fail_channel=False):
        self.broker = broker
        self.parameters = parameters
        self.is_open = True
        self.fail_close = False
        self.fail_channel = fail_channel
        self.channels = []
        self.events_processed = 0

    @property
    def is_closed(self):
        return not self.is_open

    def process_data_events(self, time_limit=None):
        self.events_processed += 1

    def channel(self):
        if self.fail_channel:
            raise AMQPConnectionError("channel open failed")
        ch = FakeChannel(self.broker)
        self.channels.append(ch)
        return ch

    def close(self):
        if self.fail_close:
            raise AMQPConnectionError("close failed")
        self.is_open = False


class FakeConnectionFactory:
    """Callable replacing pika.BlockingConnection; records what it created"""

    def __init__(self, broker, fail_connect=False, fail_channel=False):
        self.broker = broker
        self.fail_connect = fail_connect
        self.fail_channel = fail_channel
        self.connections = []

    def __call__(self, parameters):
        if self.fail_connect:
            raise AMQPConnectionError("connection refused")
        conn = FakeConnection(self.broker, parameters, fail_channel=self.fail_channel)
        self.connections.append(conn)
        return conn


# --------- Fixtures ----------


@pytest.fixture
def middleware_config():
    return MiddlewareConfig(
        host="localhost", port=5672, username="guest", password="guest"
    )


@pytest.fixture
def server_config():
    # Port 0 lets grpc pick a free port
    return ServerConfig(host="127.0.0.1", port=0, max_workers=16, logging_level="DEBUG")


@pytest.fixture
def fake_broker():
    return FakeBroker()


@pytest.fixture
def connection_factory(fake_broker):
    return FakeConnectionFactory(fake_broker)


@pytest.fixture
def broker(middleware_config, connection_factory):
    conn = BrokerConnection(middleware_config, connection_factory=connection_factory)
    yield conn
    conn.shutdown()


@pytest.fixture
def ready_broker(broker):
    broker.initialize()
    return broker


@pytest.fixture
def publisher(ready_broker):
    return RabbitMQPublisher(ready_broker)


# --------- Live broker helpers ----------


@pytest.fixture(scope="session")
def host():
    return os.environ.get("MW_HOST", "localhost")


def broker_reachable(host, port=5672, timeout=0.5):
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def unique_name(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}"


def wait_until(predicate, timeout: float, check_interval: float = 0.05) -> bool:
    """
    Evaluate predicate() every check_interval until timeout.
    Returns True if it held, False if time ran out.
    """
    end = time.time() + timeout
    while time.time() < end:
        if predicate():
            return True
        time.sleep(check_interval)
    return False

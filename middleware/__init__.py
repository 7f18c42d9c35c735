"""
RabbitMQ publish pipeline.

- BrokerConnection: the single connection/channel of the process, with an
  explicit initialize()/shutdown() lifecycle
- RabbitMQPublisher: declares a durable queue and enqueues a payload on it

Usage:
    broker = BrokerConnection(middleware_config)
    broker.initialize()  # fatal on failure, no retry

    publisher = RabbitMQPublisher(broker)
    publisher.publish("sum_queue", "8")

    broker.shutdown()  # never raises
"""

from .connection import BrokerConnection, ConnectionState
from .errors import (
    BrokerConnectionError,
    BrokerOperationError,
    MiddlewareError,
    NotInitializedError,
)
from .publisher import RabbitMQPublisher

__all__ = [
    "BrokerConnection",
    "ConnectionState",
    "RabbitMQPublisher",
    "MiddlewareError",
    "BrokerConnectionError",
    "NotInitializedError",
    "BrokerOperationError",
]

import logging

from pika.exceptions import AMQPError

from middleware.errors import BrokerOperationError


class RabbitMQPublisher:
    """
    Publishes payloads to named durable queues over the shared process channel.

    Stateless apart from the BrokerConnection it borrows the channel from.
    Fire-and-forget: publish() returns once pika has written the frame, no
    broker acknowledgment is awaited unless the connection was configured
    with publisher confirms. Nothing is retried.
    """

    def __init__(self, broker_connection):
        self.broker = broker_connection
        self.logger = logging.getLogger(__name__)

    def declare_queue(self, queue_name, durable=True):
        """Declare a queue; a no-op on the broker if it already exists alike"""
        with self.broker.channel_lock:
            channel = self.broker.get_channel()
            self._declare(channel, queue_name, durable)

    def publish(self, queue_name, payload):
        """Ensure queue_name exists as durable and enqueue payload on it"""
        body = self._to_bytes(payload)

        # Fetched under the lock so a concurrent shutdown is seen as NotInitializedError
        with self.broker.channel_lock:
            channel = self.broker.get_channel()
            self._declare(channel, queue_name, True)
            try:
                channel.basic_publish(exchange="", routing_key=queue_name, body=body)
            except AMQPError as e:
                self.logger.error(
                    f"action: publish | result: fail | queue: {queue_name} | error: {e!r}"
                )
                raise BrokerOperationError(
                    f"Failed to publish message to queue {queue_name}: {e!r}"
                ) from e

        self.logger.info(
            "action: publish | result: success | queue: %s | message: %s",
            queue_name,
            body.decode("utf-8", errors="replace"),
        )

    def _declare(self, channel, queue_name, durable):
        try:
            channel.queue_declare(queue=queue_name, durable=durable)
        except AMQPError as e:
            self.logger.error(
                f"action: declare_queue | result: fail | queue: {queue_name} | error: {e!r}"
            )
            raise BrokerOperationError(
                f"Failed to declare queue {queue_name} (durable={durable}): {e!r}"
            ) from e

        self.logger.debug(
            "action: declare_queue | result: success | queue: %s | durable: %s",
            queue_name,
            durable,
        )

    @staticmethod
    def _to_bytes(payload):
        if isinstance(payload, (bytes, bytearray)):
            return bytes(payload)
        return str(payload).encode("utf-8")

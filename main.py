#!/usr/bin/env python3

from common.config import initialize_config
from middleware import BrokerConnection, MiddlewareError, RabbitMQPublisher
from server.handler import ComputeHandler
from server.server import Server, ServerBindError
import logging
import sys


def initialize_log(logging_level):
    """
    Python custom logging initialization

    Current timestamp is added to be able to identify in docker
    compose logs the date when the log has arrived
    """
    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s %(message)s",
        level=logging_level,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # pika logs every frame at DEBUG/INFO
    logging.getLogger("pika").setLevel(logging.WARNING)


def main():
    try:
        server_config, middleware_config = initialize_config()
    except KeyError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Configuration Parse Error: {e}", file=sys.stderr)
        return 1

    initialize_log(server_config.logging_level)

    # Log config parameters at the beginning of the program to verify the configuration
    # of the component
    logging.debug(
        "action: config | result: success | host: %s | port: %s | max_workers: %s | "
        "rabbitmq: %s:%s | confirm_delivery: %s | logging_level: %s",
        server_config.host,
        server_config.port,
        server_config.max_workers,
        middleware_config.host,
        middleware_config.port,
        middleware_config.confirm_delivery,
        server_config.logging_level,
    )

    broker = BrokerConnection(middleware_config)
    publisher = RabbitMQPublisher(broker)
    handler = ComputeHandler(publisher)
    server = Server(server_config, broker, publisher, handler)
    server.install_signal_handlers()

    try:
        server.run()
    except (MiddlewareError, ServerBindError) as e:
        logging.critical("action: server_startup | result: fail | error: %s", e)
        return 1

    logging.info("action: shutdown | result: success")
    return 0


if __name__ == "__main__":
    sys.exit(main())

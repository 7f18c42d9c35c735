# pylint: disable=broad-exception-caught
import logging
import signal
import threading
from concurrent import futures

import grpc

from common.utils import SUM_QUEUE
from middleware.errors import NotInitializedError
from protocol.sum_service import add_servicer_to_server


class ServerBindError(RuntimeError):
    """The gRPC endpoint could not bind its address"""


class Server:
    """
    Process lifecycle around the gRPC endpoint.

    run() binds the endpoint and connects to RabbitMQ before accepting any
    RPC; a bind or connection failure propagates and the endpoint is never
    started. stop() drains in-flight calls, then tears the broker connection
    down. A stop() that arrives while start() is still connecting wins:
    serving never begins and the broker is closed once it is up.
    """

    DEFAULT_GRACE = 5.0

    def __init__(self, server_config, broker, publisher, handler):
        self.server_config = server_config
        self._broker = broker
        self._publisher = publisher
        # A second process must not silently share the port
        self._grpc_server = grpc.server(
            futures.ThreadPoolExecutor(max_workers=server_config.max_workers),
            options=[("grpc.so_reuseport", 0)],
        )
        add_servicer_to_server(handler, self._grpc_server)
        self.port = None

        self._started = False
        self._stop_requested = False
        self._stop_lock = threading.Lock()
        self._stopped = threading.Event()

        logging.info("action: server_init | result: success")

    @property
    def started(self):
        return self._started

    def install_signal_handlers(self):
        """Stop gracefully on SIGTERM/SIGINT (main thread only)"""
        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

    def _signal_handler(self, signum, _frame):
        logging.info(
            "action: shutdown | result: in_progress | msg: received signal %s", signum
        )
        threading.Thread(target=self.stop, name="ServerStopper", daemon=True).start()

    def _bind(self):
        address = f"{self.server_config.host}:{self.server_config.port}"
        try:
            port = self._grpc_server.add_insecure_port(address)
        except RuntimeError as e:
            raise ServerBindError(f"Could not bind {address}: {e}") from e
        if not port:
            raise ServerBindError(f"Could not bind {address}")
        self.port = port

    def start(self):
        """
        Bind, connect to RabbitMQ, declare the sum queue and start serving.

        Returns False when stop() was requested before serving began.
        """
        if self._stop_requested:
            return False

        self._bind()
        self._broker.initialize()

        try:
            self._publisher.declare_queue(SUM_QUEUE, durable=True)
        except NotInitializedError:
            if self._stop_requested:
                return False
            raise

        with self._stop_lock:
            if self._stop_requested:
                logging.info(
                    "action: server_start | result: cancelled | msg: stop requested during startup"
                )
                self._broker.shutdown()
                return False

            self._grpc_server.start()
            self._started = True

        logging.info(
            "action: server_start | result: success | msg: listening on %s:%s",
            self.server_config.host,
            self.port,
        )
        return True

    def run(self):
        """Start, then block until stop() completes"""
        try:
            if not self.start():
                return
        except Exception:
            self.stop()
            raise

        self._grpc_server.wait_for_termination()
        self._stopped.wait()

    def stop(self, grace=DEFAULT_GRACE):
        """Stop serving (in-flight calls finish within grace), then close the broker"""
        with self._stop_lock:
            if self._stop_requested:
                return
            self._stop_requested = True

            if self._started:
                self._grpc_server.stop(grace).wait()
                logging.info("action: server_stop | result: success")

            # No-op while the broker is still connecting; start() closes it then
            self._broker.shutdown()
            self._stopped.set()

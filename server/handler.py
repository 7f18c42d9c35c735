import logging

import grpc

from common.utils import SUM_QUEUE, wrap_int32
from middleware.errors import BrokerOperationError, NotInitializedError
from protocol.sum_service import AddResponse


class ComputeHandler:
    """
    SumService implementation.

    Every Add publishes its result to the sum queue and only answers once
    that publish has returned. If the publish fails the call fails and the
    caller never sees the result.
    """

    def __init__(self, publisher, queue_name=SUM_QUEUE):
        self._publisher = publisher
        self._queue_name = queue_name
        self.logger = logging.getLogger(__name__)

    def add(self, a, b):
        """Compute a + b (int32 wraparound) and publish it before returning"""
        result = wrap_int32(a + b)

        # Blocks until the publish is done; failures propagate to the caller
        self._publisher.publish(self._queue_name, str(result))

        self.logger.debug(
            "action: add | result: success | a: %s | b: %s | sum: %s", a, b, result
        )
        return result

    def Add(self, request, context):  # pylint: disable=invalid-name
        try:
            result = self.add(request.a, request.b)
        except BrokerOperationError as e:
            self.logger.error(
                "action: add | result: fail | a: %s | b: %s | error: %s",
                request.a,
                request.b,
                e,
            )
            context.abort(grpc.StatusCode.UNAVAILABLE, f"publish failed: {e}")
        except NotInitializedError as e:
            self.logger.error(
                "action: add | result: fail | a: %s | b: %s | error: %s",
                request.a,
                request.b,
                e,
            )
            context.abort(grpc.StatusCode.FAILED_PRECONDITION, str(e))

        return AddResponse(result=result)

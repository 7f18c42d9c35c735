class MiddlewareError(Exception):
    """Base class for every broker middleware failure"""


class BrokerConnectionError(MiddlewareError, ConnectionError):
    """Opening the broker connection or its channel failed (fatal at startup)"""


class NotInitializedError(MiddlewareError):
    """The channel was requested outside of the READY state"""


class BrokerOperationError(MiddlewareError):
    """The broker rejected a queue declaration or a publish"""

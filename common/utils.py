# Queue consumed by the downstream sum consumer service
SUM_QUEUE = "sum_queue"

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


def wrap_int32(value):
    """
    Wrap an integer into the signed 32-bit range (two's complement).

    The RPC carries int32 fields, so a sum that leaves the range wraps
    around the same way a native int32 addition would.
    """
    return ((value - INT32_MIN) % 2**32) + INT32_MIN

#!/usr/bin/env python3

import sys

import grpc

from protocol.sum_service import AddRequest, SumServiceStub


def add(a, b, target="localhost:50051"):
    """
    Call SumService.Add on a running server and print the outcome
    """
    with grpc.insecure_channel(target) as channel:
        stub = SumServiceStub(channel)
        try:
            response = stub.Add(AddRequest(a=a, b=b), timeout=10)
        except grpc.RpcError as e:
            print(f"action: add | result: fail | code: {e.code().name} | error: {e.details()}")
            return None

    print(f"action: add | result: success | a: {a} | b: {b} | sum: {response.result}")
    return response.result


if __name__ == "__main__":
    if len(sys.argv) not in (3, 4):
        print("usage: add_client.py A B [HOST:PORT]", file=sys.stderr)
        sys.exit(2)
    outcome = add(int(sys.argv[1]), int(sys.argv[2]), *sys.argv[3:])
    sys.exit(0 if outcome is not None else 1)

import pytest

from protocol.sum_service import (
    ADD_METHOD,
    SERVICE_NAME,
    AddRequest,
    AddResponse,
)


def test_service_path():
    assert SERVICE_NAME == "sum.SumService"
    assert ADD_METHOD == "/sum.SumService/Add"


def test_add_request_wire_format():
    # field 1 (a) and field 2 (b) as varints
    assert AddRequest(a=5, b=3).SerializeToString() == b"\x08\x05\x10\x03"


def test_add_response_parses_result():
    assert AddResponse.FromString(b"\x08\x08").result == 8
    # proto3 default is omitted on the wire
    assert AddResponse.FromString(b"").result == 0


def test_negative_int32_round_trips_through_ten_byte_varint():
    data = AddResponse(result=-1).SerializeToString()

    assert len(data) == 11
    assert AddResponse.FromString(data).result == -1


def test_int32_range_is_enforced():
    with pytest.raises(ValueError):
        AddResponse(result=2**31)

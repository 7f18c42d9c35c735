"""
gRPC contract of SumService (see sum.proto).

The message classes are built at import time from a FileDescriptorProto
equivalent to sum.proto, so no protoc code generation step is needed.
"""

import grpc
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory


PACKAGE = "sum"
SERVICE_NAME = f"{PACKAGE}.SumService"
ADD_METHOD_NAME = "Add"
ADD_METHOD = f"/{SERVICE_NAME}/{ADD_METHOD_NAME}"


def _int32_field(message_proto, name, number):
    field = message_proto.field.add()
    field.name = name
    field.number = number
    field.type = descriptor_pb2.FieldDescriptorProto.TYPE_INT32
    field.label = descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL


def _build_file_descriptor_proto():
    file_proto = descriptor_pb2.FileDescriptorProto()
    file_proto.name = "sum.proto"
    file_proto.package = PACKAGE
    file_proto.syntax = "proto3"

    request = file_proto.message_type.add()
    request.name = "AddRequest"
    _int32_field(request, "a", 1)
    _int32_field(request, "b", 2)

    response = file_proto.message_type.add()
    response.name = "AddResponse"
    _int32_field(response, "result", 1)

    service = file_proto.service.add()
    service.name = "SumService"
    method = service.method.add()
    method.name = ADD_METHOD_NAME
    method.input_type = f".{PACKAGE}.AddRequest"
    method.output_type = f".{PACKAGE}.AddResponse"

    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file_descriptor_proto().SerializeToString())

AddRequest = message_factory.GetMessageClass(
    _pool.FindMessageTypeByName(f"{PACKAGE}.AddRequest")
)
AddResponse = message_factory.GetMessageClass(
    _pool.FindMessageTypeByName(f"{PACKAGE}.AddResponse")
)


def add_servicer_to_server(servicer, server):
    """Register a servicer exposing Add(request, context) on a grpc server"""
    rpc_method_handlers = {
        ADD_METHOD_NAME: grpc.unary_unary_rpc_method_handler(
            servicer.Add,
            request_deserializer=AddRequest.FromString,
            response_serializer=AddResponse.SerializeToString,
        ),
    }
    generic_handler = grpc.method_handlers_generic_handler(
        SERVICE_NAME, rpc_method_handlers
    )
    server.add_generic_rpc_handlers((generic_handler,))


class SumServiceStub:
    """Client side of SumService"""

    def __init__(self, channel):
        self.Add = channel.unary_unary(
            ADD_METHOD,
            request_serializer=AddRequest.SerializeToString,
            response_deserializer=AddResponse.FromString,
        )

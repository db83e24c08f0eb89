"""
TensorFlow Serving gRPC inference client.

Calls PredictionService/Predict with one uint8 image tensor. Requires the
tensorflow-serving-api package for the request/response protobufs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import grpc
import numpy as np

from errors import InferenceError
from models.tensor import DT_UINT8, InferenceResult, ModelSpec, TensorDescriptor
from .backend import InferenceService, OutputNames, result_from_outputs


@dataclass(frozen=True)
class GrpcClientConfig:
    address: str = "localhost:8500"
    model: ModelSpec = ModelSpec()
    outputs: OutputNames = OutputNames()
    timeout: Optional[float] = 30.0
    max_message_bytes: int = 0x800000

    @classmethod
    def from_inference_config(cls, d: Dict[str, Any]) -> "GrpcClientConfig":
        return cls(
            address=d.get("address", "localhost:8500"),
            model=ModelSpec(
                name=d.get("model_name", "face_detection"),
                signature_name=d.get("signature_name", "serving_default"),
                version=int(d.get("model_version", 1)),
            ),
            outputs=OutputNames.from_inference_config(d),
            timeout=d.get("timeout", 30.0),
            max_message_bytes=int(d.get("max_message_bytes", 0x800000)),
        )


def tensor_proto_values(proto: Any) -> np.ndarray:
    """
    Read the float values of an output TensorProto.

    Servers either fill the repeated float_val field or pack the values
    into tensor_content as little-endian float32.
    """
    if proto.tensor_content:
        return np.frombuffer(proto.tensor_content, dtype="<f4")
    return np.asarray(proto.float_val, dtype=np.float32)


class GrpcPredictionClient(InferenceService):
    def __init__(self, cfg: GrpcClientConfig, channel: Optional[grpc.Channel] = None):
        self.cfg = cfg
        try:
            from tensorflow.core.framework import types_pb2  # type: ignore
            from tensorflow_serving.apis import predict_pb2, prediction_service_pb2_grpc  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "tensorflow-serving-api is not installed. Install with "
                "`pip install tensorflow-serving-api` or switch inference.backend to 'rest'."
            ) from e

        self._types_pb2 = types_pb2
        self._predict_pb2 = predict_pb2
        self._owns_channel = channel is None
        self._channel = channel or grpc.insecure_channel(
            cfg.address,
            options=[
                ("grpc.max_send_message_length", cfg.max_message_bytes),
                ("grpc.max_receive_message_length", cfg.max_message_bytes),
            ],
        )
        self._stub = prediction_service_pb2_grpc.PredictionServiceStub(self._channel)
        logging.info(
            f"gRPC prediction client ready: address={cfg.address}, "
            f"model={cfg.model.name}:{cfg.model.version} ({cfg.model.signature_name})"
        )

    def build_request(self, tensor: TensorDescriptor):
        """Wrap one tensor into a model-scoped PredictRequest."""
        if tensor.dtype != DT_UINT8:
            raise ValueError(f"Unsupported tensor dtype: {tensor.dtype}")

        request = self._predict_pb2.PredictRequest()
        request.model_spec.name = self.cfg.model.name
        request.model_spec.signature_name = self.cfg.model.signature_name
        request.model_spec.version.value = self.cfg.model.version

        proto = request.inputs[tensor.name]
        proto.dtype = self._types_pb2.DT_UINT8
        for size in tensor.shape:
            proto.tensor_shape.dim.add(size=size)
        proto.tensor_content = tensor.content
        return request

    def infer(self, tensor: TensorDescriptor) -> InferenceResult:
        request = self.build_request(tensor)
        try:
            response = self._stub.Predict(request, timeout=self.cfg.timeout)
        except grpc.RpcError as e:
            code = e.code() if hasattr(e, "code") else None
            details = e.details() if hasattr(e, "details") else str(e)
            raise InferenceError(f"Predict call failed ({code}): {details}") from e

        outputs = {name: tensor_proto_values(proto) for name, proto in response.outputs.items()}
        return result_from_outputs(outputs, self.cfg.outputs)

    def close(self) -> None:
        if self._owns_channel:
            self._channel.close()

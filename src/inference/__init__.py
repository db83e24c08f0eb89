"""
Inference clients for the remote detection model.
"""

from typing import Any, Dict

from .backend import InferenceService, OutputNames, result_from_outputs
from .rest_backend import RestClientConfig, RestPredictionClient

INFERENCE_BACKENDS = ("grpc", "rest")


def create_inference_from_config(inference_cfg: Dict[str, Any]) -> InferenceService:
    """
    Factory: build the client selected by inference_cfg["backend"].

    Raises:
        ValueError: For an unknown backend name.
    """
    backend = inference_cfg.get("backend", "grpc")
    if backend == "grpc":
        from .grpc_backend import GrpcClientConfig, GrpcPredictionClient

        return GrpcPredictionClient(GrpcClientConfig.from_inference_config(inference_cfg))
    if backend == "rest":
        return RestPredictionClient(RestClientConfig.from_inference_config(inference_cfg))
    raise ValueError(f"Unknown inference backend: {backend!r} (expected one of {INFERENCE_BACKENDS})")


__all__ = [
    "InferenceService",
    "OutputNames",
    "result_from_outputs",
    "RestClientConfig",
    "RestPredictionClient",
    "INFERENCE_BACKENDS",
    "create_inference_from_config",
]

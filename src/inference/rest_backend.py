"""
TensorFlow Serving REST inference client.

Uses the :predict endpoint in columnar ("inputs") format. Slower than gRPC
for large frames since the tensor travels as JSON, but needs no protobuf
stack.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from errors import InferenceError
from models.tensor import InferenceResult, ModelSpec, TensorDescriptor
from .backend import InferenceService, OutputNames, result_from_outputs


@dataclass(frozen=True)
class RestClientConfig:
    address: str = "localhost:8501"
    model: ModelSpec = ModelSpec()
    outputs: OutputNames = OutputNames()
    timeout: Optional[float] = 30.0

    @classmethod
    def from_inference_config(cls, d: Dict[str, Any]) -> "RestClientConfig":
        return cls(
            address=d.get("address", "localhost:8501"),
            model=ModelSpec(
                name=d.get("model_name", "face_detection"),
                signature_name=d.get("signature_name", "serving_default"),
                version=int(d.get("model_version", 1)),
            ),
            outputs=OutputNames.from_inference_config(d),
            timeout=d.get("timeout", 30.0),
        )

    @property
    def base_url(self) -> str:
        if self.address.startswith(("http://", "https://")):
            return self.address.rstrip("/")
        return f"http://{self.address}"

    @property
    def predict_path(self) -> str:
        return f"/v1/models/{self.model.name}/versions/{self.model.version}:predict"


class RestPredictionClient(InferenceService):
    def __init__(self, cfg: RestClientConfig, client: Optional[httpx.Client] = None):
        self.cfg = cfg
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=cfg.base_url, timeout=cfg.timeout)
        logging.info(f"REST prediction client ready: {cfg.base_url}{cfg.predict_path}")

    def build_payload(self, tensor: TensorDescriptor) -> Dict[str, Any]:
        return {
            "signature_name": self.cfg.model.signature_name,
            "inputs": {tensor.name: tensor.to_numpy().tolist()},
        }

    def infer(self, tensor: TensorDescriptor) -> InferenceResult:
        payload = self.build_payload(tensor)
        try:
            response = self._client.post(self.cfg.predict_path, json=payload)
        except httpx.HTTPError as e:
            raise InferenceError(f"Predict request failed: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise InferenceError(
                f"Predict reply is not JSON (status {response.status_code})"
            ) from e

        if not isinstance(body, dict):
            raise InferenceError(f"Unexpected predict reply (status {response.status_code})")
        if response.status_code != 200 or "error" in body:
            raise InferenceError(
                f"Predict failed (status {response.status_code}): {body.get('error', body)}"
            )

        outputs = body.get("outputs")
        if not isinstance(outputs, dict):
            raise InferenceError(f"Predict reply has no named outputs: {sorted(body)}")
        return result_from_outputs(outputs, self.cfg.outputs)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

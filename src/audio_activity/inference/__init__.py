"""Model inference.

Contains:
- ModelBackend: Runtime-agnostic model interface (ONNX, TFLite, callable)
- ModelLoader: Opens model artifacts
- InferenceEngine: Tensor shape adaptation, timeout and serialization
"""

from .backends import CallableBackend, ModelBackend, OnnxBackend, TFLiteBackend
from .engine import InferenceEngine
from .loader import ModelLoader

__all__ = [
    "ModelBackend",
    "OnnxBackend",
    "TFLiteBackend",
    "CallableBackend",
    "ModelLoader",
    "InferenceEngine",
]

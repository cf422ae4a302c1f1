"""Model loading."""

import logging
from pathlib import Path
from typing import Union

from ..errors import ModelLoadError
from .backends import ModelBackend, OnnxBackend, TFLiteBackend

logger = logging.getLogger(__name__)


class ModelLoader:
    """Opens model artifacts and wraps them in a ModelBackend."""

    SUPPORTED_SUFFIXES = (".onnx", ".tflite")

    def model_exists(self, model_path: Union[str, Path]) -> bool:
        """Check whether a model artifact exists at ``model_path``."""
        exists = Path(model_path).is_file()
        if not exists:
            logger.warning(f"Model not found at: {model_path}")
        return exists

    def load_model(self, model_path: Union[str, Path]) -> ModelBackend:
        """Load a classification model.

        Args:
            model_path: Path to model file (.onnx or .tflite)

        Returns:
            Backend ready for inference

        Raises:
            ModelLoadError: If the file is missing, unsupported or unreadable
        """
        path = Path(model_path)

        if not self.model_exists(path):
            raise ModelLoadError(
                "Model file does not exist", context={"path": str(path)}
            )

        suffix = path.suffix.lower()
        logger.info(f"Loading model from {path}")

        if suffix == ".onnx":
            backend = self._load_onnx(path)
        elif suffix == ".tflite":
            backend = self._load_tflite(path)
        else:
            raise ModelLoadError(
                f"Unsupported model format: {suffix}",
                context={"path": str(path), "supported": self.SUPPORTED_SUFFIXES},
            )

        logger.info(
            f"Loaded {backend.name} model "
            f"(input width {backend.input_width}, output width {backend.output_width})"
        )
        return backend

    def _load_onnx(self, path: Path) -> ModelBackend:
        """Load ONNX model."""
        import onnxruntime as ort

        try:
            session = ort.InferenceSession(
                str(path), providers=["CPUExecutionProvider"]
            )
        except Exception as e:
            raise ModelLoadError(
                f"Failed to load ONNX model: {e}", context={"path": str(path)}
            ) from e
        return OnnxBackend(session)

    def _load_tflite(self, path: Path) -> ModelBackend:
        """Load TFLite model."""
        try:
            import tflite_runtime.interpreter as tflite
        except ImportError:
            try:
                import tensorflow.lite as tflite
            except ImportError as e:
                raise ModelLoadError(
                    "TFLite not installed. Install with: "
                    "pip install tflite-runtime or pip install tensorflow",
                    context={"path": str(path)},
                ) from e

        try:
            interpreter = tflite.Interpreter(model_path=str(path))
            interpreter.allocate_tensors()
        except Exception as e:
            raise ModelLoadError(
                f"Failed to load TFLite model: {e}", context={"path": str(path)}
            ) from e
        return TFLiteBackend(interpreter)

"""Inference engine: shape adaptation around a model backend."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional

import numpy as np

from ..errors import InferenceError, InferenceTimeout, ModelNotLoaded
from .backends import ModelBackend

logger = logging.getLogger(__name__)


class InferenceEngine:
    """Runs a feature vector through a model and returns raw class scores.

    The engine does not load models; it receives a ready backend. Calls
    into a backend that is not thread safe are serialized.
    """

    def __init__(
        self,
        backend: Optional[ModelBackend] = None,
        timeout: Optional[float] = None,
        max_workers: int = 4,
    ):
        """Initialize inference engine.

        Args:
            backend: Loaded model backend (None means not ready)
            timeout: Default inference timeout in seconds (None disables)
            max_workers: Worker threads used for timed inference
        """
        self._backend = backend
        self.timeout = timeout
        self._max_workers = max_workers
        self._run_lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    def is_ready(self) -> bool:
        """Check if a model is available for inference."""
        return self._backend is not None

    @property
    def backend(self) -> Optional[ModelBackend]:
        return self._backend

    @property
    def output_width(self) -> Optional[int]:
        """Number of raw classes, as declared by the model."""
        if self._backend is None:
            return None
        return self._backend.output_width

    def infer(
        self,
        features: np.ndarray,
        timeout: Optional[float] = None,
    ) -> np.ndarray:
        """Run inference.

        Args:
            features: Flat feature vector of length F
            timeout: Seconds to wait (falls back to the engine default)

        Returns:
            Flat float32 vector of per-class scores

        Raises:
            ModelNotLoaded: If no model is available
            InferenceTimeout: If the model did not answer in time
            InferenceError: If the backend failed or shapes disagree
        """
        if not self.is_ready():
            raise ModelNotLoaded("Inference requested but no model is loaded")

        tensor = self._pack(features)
        timeout = timeout if timeout is not None else self.timeout

        if not timeout:
            output = self._run(tensor)
        else:
            future = self._get_executor().submit(self._run, tensor)
            try:
                output = future.result(timeout=timeout)
            except FutureTimeoutError as e:
                future.cancel()
                raise InferenceTimeout(
                    f"Inference exceeded {timeout}s",
                    context={"backend": self._backend.name},
                ) from e

        return self._unpack(output)

    def _pack(self, features: np.ndarray) -> np.ndarray:
        """Shape the feature vector as a [1, F] float32 tensor."""
        vector = np.asarray(features, dtype=np.float32).reshape(-1)
        expected = self._backend.input_width
        if expected is not None and vector.size != expected:
            raise InferenceError(
                "Feature length does not match model input",
                context={"features": vector.size, "model_input": expected},
            )
        return vector[np.newaxis, :]

    def _run(self, tensor: np.ndarray) -> np.ndarray:
        backend = self._backend
        try:
            if backend.thread_safe:
                return backend.run(tensor)
            with self._run_lock:
                return backend.run(tensor)
        except Exception as e:
            raise InferenceError(
                f"{backend.name} inference failed: {e}",
                context={"backend": backend.name},
            ) from e

    def _unpack(self, output: np.ndarray) -> np.ndarray:
        """Flatten a [1, C] output into a length-C vector."""
        scores = np.asarray(output, dtype=np.float32)
        if scores.ndim >= 2:
            scores = scores[0]
        scores = scores.reshape(-1)

        expected = self._backend.output_width
        if expected is not None and scores.size != expected:
            raise InferenceError(
                "Model output width differs from its declared width",
                context={"output": scores.size, "declared": expected},
            )
        return scores

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="audio-inference",
                )
            return self._executor

    def close(self) -> None:
        """Release worker threads without waiting for running inference."""
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False)
                self._executor = None

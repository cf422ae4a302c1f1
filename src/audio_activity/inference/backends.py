"""Model backends.

A backend is the only place that knows about a concrete inference
runtime. Everything downstream sees plain numpy arrays.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

import numpy as np

logger = logging.getLogger(__name__)

INPUT_NAME = "input"
OUTPUT_NAME = "output"


def _static_dim(shape) -> Optional[int]:
    """Last dimension of a declared shape, if it is a fixed integer."""
    if shape is None or len(shape) == 0:
        return None
    last = shape[-1]
    if isinstance(last, (int, np.integer)) and last > 0:
        return int(last)
    return None


class ModelBackend(ABC):
    """Capability interface: run a [1, F] tensor, get a [1, C] tensor."""

    # Backends whose run() may not be entered from several threads at once
    thread_safe: bool = True

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    def input_width(self) -> Optional[int]:
        """Feature length F declared by the model, if known."""
        return None

    @property
    def output_width(self) -> Optional[int]:
        """Number of raw classes C declared by the model, if known."""
        return None

    @abstractmethod
    def run(self, tensor: np.ndarray) -> np.ndarray:
        """Run inference on a float32 tensor of shape [1, F]."""
        pass


class OnnxBackend(ModelBackend):
    """Backend over an ``onnxruntime.InferenceSession``."""

    thread_safe = True

    def __init__(self, session):
        self._session = session
        inputs = session.get_inputs()
        outputs = session.get_outputs()

        self._input = next((i for i in inputs if i.name == INPUT_NAME), inputs[0])
        self._output = next((o for o in outputs if o.name == OUTPUT_NAME), outputs[0])

        logger.debug(
            f"ONNX input {self._input.name}{self._input.shape}, "
            f"output {self._output.name}{self._output.shape}"
        )

    @property
    def name(self) -> str:
        return "onnx"

    @property
    def input_width(self) -> Optional[int]:
        return _static_dim(self._input.shape)

    @property
    def output_width(self) -> Optional[int]:
        return _static_dim(self._output.shape)

    def run(self, tensor: np.ndarray) -> np.ndarray:
        outputs = self._session.run([self._output.name], {self._input.name: tensor})
        return outputs[0]


class TFLiteBackend(ModelBackend):
    """Backend over a TFLite ``Interpreter`` (tensors already allocated)."""

    thread_safe = False

    def __init__(self, interpreter):
        self._interpreter = interpreter
        input_details = interpreter.get_input_details()
        output_details = interpreter.get_output_details()

        self._input = next(
            (d for d in input_details if d["name"] == INPUT_NAME), input_details[0]
        )
        self._output = next(
            (d for d in output_details if d["name"] == OUTPUT_NAME), output_details[0]
        )

    @property
    def name(self) -> str:
        return "tflite"

    @property
    def input_width(self) -> Optional[int]:
        return _static_dim(list(self._input["shape"]))

    @property
    def output_width(self) -> Optional[int]:
        return _static_dim(list(self._output["shape"]))

    def run(self, tensor: np.ndarray) -> np.ndarray:
        tensor = tensor.astype(self._input["dtype"])
        self._interpreter.set_tensor(self._input["index"], tensor)
        self._interpreter.invoke()
        # get_tensor returns a view into the interpreter's buffer
        return np.array(self._interpreter.get_tensor(self._output["index"]))


class CallableBackend(ModelBackend):
    """Backend wrapping any ``callable(tensor) -> tensor``."""

    def __init__(
        self,
        fn: Callable[[np.ndarray], np.ndarray],
        output_width: Optional[int] = None,
        input_width: Optional[int] = None,
        thread_safe: bool = True,
        name: str = "callable",
    ):
        self._fn = fn
        self._output_width = output_width
        self._input_width = input_width
        self._name = name
        self.thread_safe = thread_safe

    @property
    def name(self) -> str:
        return self._name

    @property
    def input_width(self) -> Optional[int]:
        return self._input_width

    @property
    def output_width(self) -> Optional[int]:
        return self._output_width

    def run(self, tensor: np.ndarray) -> np.ndarray:
        return np.asarray(self._fn(tensor))

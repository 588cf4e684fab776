"""Inference backends which turn batches of patches into score vectors.

- `ModelInterface`: common interface of all backends
- `TorchModelInterface`: in-process TorchScript model (needs `torch`)
- `TritonModelInterface`: model served by a Triton server (needs
  `tritonclient[grpc]`)
- `model_factory`: builds a backend from a file path or a configuration block
"""

from .base import *
from .factories import *
from .torch_model import *
from .triton_model import *

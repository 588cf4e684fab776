"""Module that handles conditional imports for optional packages.

Currently wraps the following packages:
- torch: only needed when running in-process PyTorch models
- tritonclient: only needed when running inference on a remote Triton server
"""

from warnings import warn

# If torch is available, load it
try:
    import torch

    TORCH_AVAILABLE = True
except ModuleNotFoundError:
    warn("PyTorch could not be found, in-process models disabled.")
    torch = None
    TORCH_AVAILABLE = False


# If the Triton gRPC client is available, load it
try:
    import tritonclient.grpc as grpcclient
    from tritonclient.utils import InferenceServerException

    TRITON_AVAILABLE = True
except ModuleNotFoundError:
    warn("tritonclient could not be found, cannot run remote inference.")
    grpcclient = None
    InferenceServerException = None
    TRITON_AVAILABLE = False

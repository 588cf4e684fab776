"""Construct a model interface from its configuration."""

import os

from larimg.errors import ModelLoadError
from larimg.utils.factory import instantiate, module_dict

from . import torch_model, triton_model
from .base import ModelInterface

__all__ = ["model_factory"]

# Build a dictionary of available model interfaces
MODEL_DICT = {}
for module in [torch_model, triton_model]:
    MODEL_DICT.update(**module_dict(module, pattern="ModelInterface"))

# Model file extensions which can be loaded by each backend
TORCH_EXTENSIONS = (".pt", ".pth", ".ts")


def model_factory(cfg, **kwargs):
    """Instantiates a model interface.

    Parameters
    ----------
    cfg : Union[str, dict, ModelInterface]
        Path to a model file, model interface configuration or model
        interface instance
    **kwargs : dict, optional
        Additional parameters to pass to the model interface

    Returns
    -------
    ModelInterface
        Initialized model interface
    """
    # Already built
    if isinstance(cfg, ModelInterface):
        return cfg

    # Path to a model file: dispatch on its extension
    if isinstance(cfg, str):
        ext = os.path.splitext(cfg)[1].lower()
        if ext in TORCH_EXTENSIONS:
            return torch_model.TorchModelInterface(cfg, **kwargs)

        raise ModelLoadError(
            f"Cannot infer the backend of model file {cfg}. Known extensions: "
            f"{list(TORCH_EXTENSIONS)}."
        )

    return instantiate(MODEL_DICT, cfg, **kwargs)

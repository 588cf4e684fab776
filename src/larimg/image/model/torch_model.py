"""In-process inference with a TorchScript model."""

import numpy as np

from larimg.errors import ModelLoadError
from larimg.utils.conditional import TORCH_AVAILABLE, torch
from larimg.utils.logger import logger

from .base import ModelInterface, find_file

__all__ = ["TorchModelInterface"]


class TorchModelInterface(ModelInterface):
    """Runs a serialized TorchScript model in the current process.

    The model receives a `(B, 1, W, D)` tensor (or `(B, W, D, 1)` if
    `channels_first` is `False`). If it returns several tensors, they are
    flattened and concatenated into a single score vector per patch.
    """

    name = "torch"

    def __init__(
        self,
        model_path,
        num_outputs=None,
        input_shape=None,
        device="cpu",
        channels_first=True,
        softmax=False,
    ):
        """Load the model.

        Parameters
        ----------
        model_path : str
            Path to the TorchScript file
        num_outputs : int, optional
            Width of the score vectors
        input_shape : Tuple[int, int], optional
            (W, D) Shape of the input patches
        device : str, default 'cpu'
            Device on which to run the model
        channels_first : bool, default True
            Whether the channel axis comes before the patch axes
        softmax : bool, default False
            Whether to apply a softmax to the model output
        """
        if not TORCH_AVAILABLE:
            raise ModelLoadError("PyTorch is required to run TorchScript models.")

        super().__init__(num_outputs, input_shape)

        self.model_path = find_file(model_path)
        self.device = torch.device(device)
        self.channels_first = channels_first
        self.softmax = softmax

        try:
            self.model = torch.jit.load(self.model_path, map_location=self.device)
        except (RuntimeError, ValueError) as err:
            raise ModelLoadError(
                f"Could not load the TorchScript model from {self.model_path}."
            ) from err

        self.model.eval()
        logger.info("Loaded TorchScript model from %s", self.model_path)

    def forward(self, batch):
        """Runs the model on a batch of patches.

        Parameters
        ----------
        batch : np.ndarray
            (B, W, D) Batch of patches

        Returns
        -------
        np.ndarray
            (B, N) Batch of score vectors
        """
        data = torch.from_numpy(batch).to(self.device)
        data = data.unsqueeze(1) if self.channels_first else data.unsqueeze(-1)

        with torch.no_grad():
            output = self.model(data)
            if isinstance(output, (list, tuple)):
                output = torch.cat([o.reshape(len(batch), -1) for o in output], dim=1)
            else:
                output = output.reshape(len(batch), -1)

            if self.softmax:
                output = torch.softmax(output, dim=1)

        return output.cpu().numpy().astype(np.float32)

"""Remote inference on a Triton inference server over gRPC.

Every error reported by the Triton client is converted into an
:class:`InferenceServerError` by :func:`throw_if_error`. Calls which are only
used to report diagnostics go through :func:`warn_if_error` instead, which
logs the failure and carries on.
"""

import numpy as np

from larimg.errors import InferenceServerError, ModelLoadError
from larimg.utils.conditional import (
    TRITON_AVAILABLE,
    InferenceServerException,
    grpcclient,
)
from larimg.utils.logger import logger

from .base import ModelInterface

__all__ = [
    "TritonModelInterface",
    "throw_if_error",
    "warn_if_error",
    "print_coll",
]


def throw_if_error(func, msg, *args, **kwargs):
    """Calls a client function, escalating client errors.

    Parameters
    ----------
    func : callable
        Client function to call
    msg : str
        Message to prepend to the error
    *args : list
        Positional arguments of the function
    **kwargs : dict
        Keyword arguments of the function

    Returns
    -------
    object
        Return value of the function
    """
    try:
        return func(*args, **kwargs)
    except InferenceServerException as err:
        raise InferenceServerError(f"{msg}: {err}") from err


def warn_if_error(func, msg, *args, **kwargs):
    """Calls a client function, logging client errors as warnings.

    Parameters
    ----------
    func : callable
        Client function to call
    msg : str
        Message to prepend to the warning
    *args : list
        Positional arguments of the function
    **kwargs : dict
        Keyword arguments of the function

    Returns
    -------
    object
        Return value of the function, `None` if the call failed
    """
    try:
        return func(*args, **kwargs)
    except InferenceServerException as err:
        logger.warning("%s: %s", msg, err)
        return None


def print_coll(coll, delim=", "):
    """Formats a collection for messages.

    Parameters
    ----------
    coll : Iterable
        Collection to format
    delim : str, default ', '
        Delimiter between the elements

    Returns
    -------
    str
        Formatted collection
    """
    return delim.join(str(c) for c in coll)


class TritonModelInterface(ModelInterface):
    """Sends batches of patches to a model served by a Triton server.

    Patches are sent as a single `FP32` tensor of shape `(B, W, D, 1)`. The
    requested output tensors are flattened and concatenated into a single
    score vector per patch.
    """

    name = "triton"

    def __init__(
        self,
        url,
        model_name,
        model_version="",
        num_outputs=None,
        input_shape=None,
        input_name=None,
        output_names=None,
        verbose=False,
        ssl=False,
    ):
        """Connect to the server and check that the model is ready.

        Parameters
        ----------
        url : str
            Address of the server (e.g. 'localhost:8001')
        model_name : str
            Name of the model on the server
        model_version : str, default ''
            Version of the model (latest if empty)
        num_outputs : int, optional
            Width of the score vectors
        input_shape : Tuple[int, int], optional
            (W, D) Shape of the input patches
        input_name : str, optional
            Name of the input tensor. Fetched from the model metadata if not
            provided.
        output_names : List[str], optional
            Names of the output tensors to request. Fetched from the model
            metadata if not provided.
        verbose : bool, default False
            Whether the client should be verbose
        ssl : bool, default False
            Whether to use an encrypted channel
        """
        if not TRITON_AVAILABLE:
            raise ModelLoadError("tritonclient is required to run remote inference.")

        super().__init__(num_outputs, input_shape)

        self.url = url
        self.model_name = model_name
        self.model_version = str(model_version)

        # Connect to the server
        self.client = throw_if_error(
            grpcclient.InferenceServerClient,
            f"Unable to create client for inference server at {url}",
            url=url,
            verbose=verbose,
            ssl=ssl,
        )

        # Check that the server and the model are available
        live = throw_if_error(
            self.client.is_server_live, f"Unable to get server liveness at {url}"
        )
        if not live:
            raise InferenceServerError(f"Inference server at {url} is not live.")

        ready = throw_if_error(
            self.client.is_model_ready,
            f"Unable to get readiness of model {model_name}",
            model_name,
            self.model_version,
        )
        if not ready:
            raise InferenceServerError(
                f"Model {model_name} (version '{self.model_version}') is not ready "
                f"on the server at {url}."
            )

        # Report the server description
        server_metadata = warn_if_error(
            self.client.get_server_metadata, "Unable to get server metadata"
        )
        if server_metadata is not None:
            logger.info(
                "Connected to inference server %s (version %s)",
                server_metadata.name,
                server_metadata.version,
            )

        # Fetch the tensor names from the model metadata, if needed
        if input_name is None or output_names is None:
            metadata = throw_if_error(
                self.client.get_model_metadata,
                f"Unable to get metadata of model {model_name}",
                model_name,
                self.model_version,
            )
            if input_name is None:
                if len(metadata.inputs) != 1:
                    raise InferenceServerError(
                        f"Model {model_name} should have exactly one input, "
                        f"got: {print_coll(i.name for i in metadata.inputs)}."
                    )
                input_name = metadata.inputs[0].name
            if output_names is None:
                output_names = [o.name for o in metadata.outputs]

        self.input_name = input_name
        self.output_names = list(output_names)
        logger.info(
            "Model %s inputs: %s, outputs: %s",
            model_name,
            self.input_name,
            print_coll(self.output_names),
        )

    def forward(self, batch):
        """Runs the remote model on a batch of patches.

        Parameters
        ----------
        batch : np.ndarray
            (B, W, D) Batch of patches

        Returns
        -------
        np.ndarray
            (B, N) Batch of score vectors
        """
        data = batch.reshape(*batch.shape, 1).astype(np.float32)

        # Prepare the input and the requested outputs
        infer_input = throw_if_error(
            grpcclient.InferInput,
            "Unable to set up input",
            self.input_name,
            list(data.shape),
            "FP32",
        )
        throw_if_error(
            infer_input.set_data_from_numpy, "Unable to set input data", data
        )
        requested = [grpcclient.InferRequestedOutput(name) for name in self.output_names]

        # Run the inference
        result = throw_if_error(
            self.client.infer,
            f"Unable to run inference with model {self.model_name}",
            self.model_name,
            [infer_input],
            model_version=self.model_version,
            outputs=requested,
        )

        # Concatenate the outputs
        outputs = []
        for name in self.output_names:
            output = result.as_numpy(name)
            if output is None:
                raise InferenceServerError(
                    f"Output {name} missing from the response of {self.model_name}."
                )
            outputs.append(output.reshape(len(batch), -1))

        return np.concatenate(outputs, axis=1)

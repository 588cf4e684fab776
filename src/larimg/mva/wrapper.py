"""Shared functionality of the MVA output writer and reader."""

import numpy as np

from larimg.errors import MVALookupError

__all__ = ["MVAWrapperBase", "kind_name"]

# Bounds on the probabilities entering a geometric mean
GEO_MEAN_EPS = 1e-6


def kind_name(kind):
    """Name of a product kind.

    Parameters
    ----------
    kind : Union[type, object, str]
        Data product class (or instance), or a plain product name

    Returns
    -------
    str
        Product name
    """
    if isinstance(kind, str):
        name = kind
    else:
        name = getattr(kind, "product_name", "")

    if not name:
        raise MVALookupError(f"Cannot infer a product name from {kind!r}.")

    return name


class MVAWrapperBase:
    """Base class of the MVA output writer and reader.

    Provides the accumulation of the output vectors of a set of items into a
    single vector (e.g. the hits of a cluster into a cluster score).
    """

    @staticmethod
    def accumulate(
        outputs, items, weights=None, weight_fn=None, mode="arithmetic", num_outputs=None
    ):
        """Combines the output vectors of a list of items.

        Three weighting schemes are supported:
        - no weights: all items count the same;
        - `weights`: one weight per item;
        - `weight_fn`: weight computed from each item.

        Items with a null weight are skipped. If there are no items, or if
        the weights sum to zero, the uniform vector `1/N` is returned.

        Parameters
        ----------
        outputs : np.ndarray
            (M, N) Output vectors of the whole collection
        items : List[Union[int, object]]
            Items to combine, either as indexes or as objects with an `id`
            attribute which points to their index in the collection
        weights : List[float], optional
            Weight of each item
        weight_fn : callable, optional
            Function which computes the weight of an item
        mode : str, default 'arithmetic'
            Combination mode, one of 'arithmetic' or 'geometric'. In the
            geometric mode, the output vectors are treated as probabilities:
            their weighted geometric mean is normalized to sum to one.
        num_outputs : int, optional
            Width of the output vectors (if `outputs` is empty)

        Returns
        -------
        np.ndarray
            (N) Combined output vector
        """
        assert weights is None or weight_fn is None, (
            "Provide either a list of weights or a weighting function, not both."
        )
        if mode not in ("arithmetic", "geometric"):
            raise ValueError(
                f"Accumulation mode not recognized: {mode}. Must be one of "
                "'arithmetic' or 'geometric'."
            )

        outputs = np.asarray(outputs, dtype=np.float32)
        if num_outputs is None:
            num_outputs = outputs.shape[1] if outputs.ndim == 2 else 0
        uniform = np.full(num_outputs, 1.0 / max(num_outputs, 1), dtype=np.float32)
        if len(items) == 0:
            return uniform

        # Fetch the weight of each item
        if weights is not None:
            assert len(weights) == len(items), (
                f"Got {len(weights)} weights for {len(items)} items."
            )
            weights = np.asarray(weights, dtype=np.float64)
        elif weight_fn is not None:
            weights = np.array([weight_fn(item) for item in items], dtype=np.float64)
        else:
            weights = np.ones(len(items), dtype=np.float64)

        # Fetch the output vectors of the items with a non-zero weight
        keys = np.array([int(getattr(item, "id", item)) for item in items], dtype=np.int64)
        mask = weights != 0.0
        keys, weights = keys[mask], weights[mask]
        if len(keys) == 0 or weights.sum() == 0.0:
            return uniform

        if np.any(keys < 0) or np.any(keys >= len(outputs)):
            raise MVALookupError(
                f"Item index out of range of the {len(outputs)} stored outputs."
            )

        vectors = outputs[keys].astype(np.float64)
        norm = weights.sum()
        if mode == "arithmetic":
            result = np.dot(weights, vectors) / norm
        else:
            probs = np.clip(vectors, GEO_MEAN_EPS, 1.0 - GEO_MEAN_EPS)
            result = np.exp(np.dot(weights, np.log(probs)) / norm)
            result /= result.sum()

        return result.astype(np.float32)

"""Builds components from their configuration block.

Each component family (model backends, reconstruction modules) keeps a
registry which maps names onto classes. A YAML block which names the class
and lists its parameters is then enough to instantiate it.
"""

from copy import deepcopy

from .logger import logger


def module_dict(module, pattern=None):
    """Registers the public classes of a module under their names.

    A class is registered under its class name and, if it defines a
    non-empty `name` attribute, under that short name too.

    Parameters
    ----------
    module : module
        Module which holds the classes
    pattern : str, optional
        Only register classes whose name contains this pattern

    Returns
    -------
    dict
        Mapping from names to classes
    """
    registry = {}
    for attr in getattr(module, "__all__", dir(module)):
        if attr.startswith("_"):
            continue

        cls = getattr(module, attr)
        if pattern is not None and pattern not in cls.__name__:
            continue

        # Skip objects imported into the module from elsewhere
        if module.__name__ not in getattr(cls, "__module__", ""):
            continue

        registry[attr] = cls
        if getattr(cls, "name", None):
            registry[cls.name] = cls

    return registry


def instantiate(module_dict, cfg, alt_name=None, **kwargs):
    """Instantiates a class from its configuration block.

    The block names the class under `name` (or under `alt_name`) and lists
    the keyword arguments of its constructor:

    .. code-block:: yaml

        model:
          name: torch
          model_path: emtrack.pt
          device: cpu

    Parameters
    ----------
    module_dict : dict
        Mapping from names to classes
    cfg : Union[str, dict]
        Configuration block, or the bare name of a class without parameters
    alt_name : str, optional
        Alternative key under which the class can be named
    **kwargs : dict, optional
        Additional keyword arguments, which must not repeat a parameter of
        the block

    Returns
    -------
    object
        Instantiated object
    """
    if isinstance(cfg, str):
        cfg = {"name": cfg}

    # Find which key holds the class name
    params = deepcopy(cfg)
    if alt_name is not None:
        assert (alt_name in params) != (
            "name" in params
        ), f"Should specify exactly one of `name` or `{alt_name}`."
        key = alt_name if alt_name in params else "name"
    else:
        assert "name" in params, "The class must be named under `name`."
        key = "name"

    class_name = params.pop(key)
    if class_name not in module_dict:
        raise ValueError(
            f"Unknown class '{class_name}'. Available names: "
            f"{list(module_dict.keys())}"
        )

    for param in params:
        assert param not in kwargs, (
            f"The parameter `{param}` is provided both in the configuration "
            "and by the caller. Ambiguous."
        )
    kwargs.update(params)

    cls = module_dict[class_name]
    try:
        return cls(**kwargs)

    except Exception as err:
        logger.error("Failed to instantiate %s with: %s", cls.__name__, kwargs)

        raise err

"""Construct a reconstruction module class from its name."""

from larimg.utils.factory import instantiate, module_dict

from . import hit_classifier, wire_cluster

__all__ = ["reco_factory"]

# Build a dictionary of available reconstruction modules
RECO_DICT = {}
for module in [hit_classifier, wire_cluster]:
    RECO_DICT.update(**module_dict(module))


def reco_factory(name, cfg):
    """Instantiates a reconstruction module from a configuration dictionary.

    Parameters
    ----------
    name : str
        Name of the reconstruction module
    cfg : dict
        Reconstruction module configuration

    Returns
    -------
    object
         Initialized reconstruction module
    """
    # The module configuration may itself use the `name` key, pass it through
    return instantiate(RECO_DICT, {"name": name}, **cfg)

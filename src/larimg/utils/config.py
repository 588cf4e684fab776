"""Loads the YAML configuration of the algorithms and reconstruction modules.

On top of plain YAML, configuration files support three directives:
- `include: base.yaml` (or a list of files) at the top level, merged in order
  below the content of the including file;
- `key: !include block.yaml`, which inlines a file as one block;
- dotted keys such as `point_id.patch_size_w: 48`, which override a single
  nested parameter once everything else is merged.
"""

import os
import re
from copy import deepcopy

import yaml

from larimg.errors import ConfigCycleError, ConfigError, ConfigIncludeError

__all__ = ["load_config", "load_config_string"]

# Keys of the form `block.sub_block.parameter`
DOTTED_KEY = re.compile(r"^[a-zA-Z_]\w*(?:\.[a-zA-Z_]\w*)+$")


class ConfigLoader(yaml.SafeLoader):
    """Safe YAML loader which understands the `!include` tag.

    Included paths are relative to the directory of the file being loaded
    (or to `root_dir` when loading from a string). Included files are
    resolved like any other configuration file, with their own directives.
    """

    def __init__(self, stream, root_dir=None, stack=()):
        """Initialize the loader.

        Parameters
        ----------
        stream : Union[_io.TextIOWrapper, str]
            Open YAML file or YAML string
        root_dir : str, optional
            Directory included files are relative to
        stack : List[str], optional
            Files being loaded, outermost first
        """
        if root_dir is None:
            name = getattr(stream, "name", None)
            root_dir = os.path.dirname(name) if name else os.getcwd()

        self._root = root_dir
        self._stack = list(stack)

        super().__init__(stream)

    def include(self, node):
        """Parses the file named by an `!include` tag.

        Parameters
        ----------
        node : yaml.ScalarNode
            Node which holds the path to the included file

        Returns
        -------
        object
            Content of the included file
        """
        path = os.path.abspath(os.path.join(self._root, self.construct_scalar(node)))
        if path in self._stack:
            raise ConfigCycleError(self._stack + [path])
        if not os.path.isfile(path):
            raise ConfigIncludeError(f"Included file not found: {path}")

        return _load_file(path, self._stack)


ConfigLoader.add_constructor("!include", ConfigLoader.include)


def _parse(stream, root_dir, stack):
    """Parses one YAML document with the configuration loader."""
    loader = ConfigLoader(stream, root_dir, stack)
    try:
        return loader.get_single_data()
    finally:
        loader.dispose()


def merge(base, update):
    """Merges two configuration dictionaries, recursing into common blocks.

    Parameters
    ----------
    base : dict
        Lower-priority configuration
    update : dict
        Higher-priority configuration

    Returns
    -------
    dict
        New merged configuration
    """
    result = deepcopy(base)
    for key, value in update.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = merge(result[key], value)
        else:
            result[key] = value

    return result


def set_dotted(cfg, key, value):
    """Sets one nested parameter from its dotted key, in place."""
    *blocks, param = key.split(".")
    block = cfg
    for name in blocks:
        block = block.setdefault(name, {})
        if not isinstance(block, dict):
            raise ConfigError(f"Cannot set '{key}': '{name}' is not a block.")

    # Overrides given as strings are parsed as YAML scalars where possible
    if isinstance(value, str):
        try:
            value = yaml.safe_load(value)
        except yaml.YAMLError:
            pass

    block[param] = value


def _resolve(cfg, root_dir, stack):
    """Applies the include and override directives of a parsed configuration.

    Parameters
    ----------
    cfg : object
        Parsed configuration. Only mappings hold directives, other blocks
        are returned as is.
    root_dir : str
        Directory included files are relative to
    stack : List[str]
        Files being loaded, outermost first

    Returns
    -------
    object
        Resolved configuration
    """
    if cfg is None:
        return {}
    if not isinstance(cfg, dict):
        return cfg

    # Sort the top-level keys into directives and parameters
    includes, overrides, params = cfg.pop("include", []), {}, {}
    for key, value in cfg.items():
        if DOTTED_KEY.match(key):
            overrides[key] = value
        else:
            params[key] = value

    if isinstance(includes, str):
        includes = [includes]
    elif not isinstance(includes, list):
        raise ConfigError(
            f"`include` must be a file name or a list of file names, got "
            f"{type(includes)}."
        )

    # Included files come first, in order
    result = {}
    for name in includes:
        path = os.path.abspath(os.path.join(root_dir, name))
        if path in stack:
            raise ConfigCycleError(stack + [path])
        if not os.path.isfile(path):
            raise ConfigIncludeError(f"Included file not found: {path}")
        result = merge(result, _check_mapping(_load_file(path, stack), path))

    result = merge(result, params)
    for key, value in overrides.items():
        set_dotted(result, key, value)

    return result


def _check_mapping(cfg, source):
    """Checks that a resolved configuration is a mapping."""
    if not isinstance(cfg, dict):
        raise ConfigError(
            f"The configuration in {source} must be a mapping, got {type(cfg)}."
        )

    return cfg


def _load_file(path, stack):
    """Loads and resolves one configuration file."""
    root_dir, stack = os.path.dirname(path), stack + [path]
    with open(path, "r", encoding="utf-8") as f:
        cfg = _parse(f, root_dir, stack)

    return _resolve(cfg, root_dir, stack)


def load_config(cfg_path):
    """Loads a configuration file into a dictionary.

    Parameters
    ----------
    cfg_path : str
        Path to the configuration file

    Returns
    -------
    dict
        Resolved configuration
    """
    cfg_path = os.path.abspath(cfg_path)
    if not os.path.isfile(cfg_path):
        raise ConfigError(f"Configuration file not found: {cfg_path}")

    return _check_mapping(_load_file(cfg_path, []), cfg_path)


def load_config_string(cfg_str, root_dir=None):
    """Loads a configuration from a YAML string.

    Parameters
    ----------
    cfg_str : str
        YAML configuration
    root_dir : str, optional
        Directory included files are relative to. Defaults to the current
        directory.

    Returns
    -------
    dict
        Resolved configuration
    """
    root_dir = root_dir if root_dir is not None else os.getcwd()
    cfg = _parse(cfg_str, root_dir, [])

    return _check_mapping(_resolve(cfg, root_dir, []), "the configuration string")

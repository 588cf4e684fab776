"""Tests for the config loader functionality."""

import pytest

from larimg.errors import ConfigCycleError, ConfigError, ConfigIncludeError
from larimg.utils.config import load_config, load_config_string


class TestConfigLoader:
    """Test suite for the YAML config loader."""

    def test_basic_load(self, tmp_path):
        """Test basic YAML loading without any special features."""
        config_file = tmp_path / "basic.yaml"
        config_file.write_text("""
point_id:
  patch_size_w: 44
  patch_size_d: 48
  outputs: [track, em, none]
""")

        cfg = load_config(str(config_file))

        assert cfg["point_id"]["patch_size_w"] == 44
        assert cfg["point_id"]["patch_size_d"] == 48
        assert cfg["point_id"]["outputs"] == ["track", "em", "none"]

    def test_missing_file(self, tmp_path):
        """Test that a missing configuration file raises."""
        with pytest.raises(ConfigError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_empty_file(self, tmp_path):
        """Test that an empty file loads as an empty dictionary."""
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        assert load_config(str(config_file)) == {}

    def test_top_level_include(self, tmp_path):
        """Test including another YAML file at the top level."""
        base_config = tmp_path / "base.yaml"
        base_config.write_text("""
point_id:
  patch_size_w: 32
  patch_size_d: 32
  drift_window: 6
""")

        main_config = tmp_path / "main.yaml"
        main_config.write_text("""
include: base.yaml

point_id:
  patch_size_w: 44
""")

        cfg = load_config(str(main_config))

        # Base values should be loaded, local values win
        assert cfg["point_id"]["patch_size_d"] == 32
        assert cfg["point_id"]["drift_window"] == 6
        assert cfg["point_id"]["patch_size_w"] == 44

    def test_multiple_includes(self, tmp_path):
        """Test including multiple YAML files, later ones win."""
        (tmp_path / "first.yaml").write_text("""
provider:
  adc_min: -10
  adc_max: 250
""")
        (tmp_path / "second.yaml").write_text("""
provider:
  adc_max: 100
""")
        main_config = tmp_path / "main.yaml"
        main_config.write_text("include: [first.yaml, second.yaml]\n")

        cfg = load_config(str(main_config))

        assert cfg["provider"]["adc_min"] == -10
        assert cfg["provider"]["adc_max"] == 100

    def test_include_tag(self, tmp_path):
        """Test the `!include` tag within a block."""
        (tmp_path / "model.yaml").write_text("""
name: torch
model_path: emtrack.pt
""")
        main_config = tmp_path / "main.yaml"
        main_config.write_text("""
point_id:
  model: !include model.yaml
""")

        cfg = load_config(str(main_config))

        assert cfg["point_id"]["model"] == {"name": "torch", "model_path": "emtrack.pt"}

    def test_include_tag_missing(self, tmp_path):
        """Test that a missing file in an `!include` tag raises."""
        main_config = tmp_path / "main.yaml"
        main_config.write_text("model: !include missing.yaml\n")

        with pytest.raises(ConfigIncludeError):
            load_config(str(main_config))

    def test_missing_include(self, tmp_path):
        """Test that a missing included file raises."""
        main_config = tmp_path / "main.yaml"
        main_config.write_text("include: missing.yaml\n")

        with pytest.raises(ConfigIncludeError):
            load_config(str(main_config))

    def test_include_cycle(self, tmp_path):
        """Test that cyclic includes are detected."""
        (tmp_path / "a.yaml").write_text("include: b.yaml\nkey: 1\n")
        (tmp_path / "b.yaml").write_text("include: a.yaml\nkey: 2\n")

        with pytest.raises(ConfigCycleError) as excinfo:
            load_config(str(tmp_path / "a.yaml"))

        assert isinstance(excinfo.value, ConfigError)

    @pytest.mark.parametrize(
        "files",
        [
            {"a.yaml": "block: !include a.yaml\n"},
            {"a.yaml": "block: !include b.yaml\n", "b.yaml": "other: !include a.yaml\n"},
            {"a.yaml": "block: !include b.yaml\n", "b.yaml": "include: a.yaml\n"},
        ],
    )
    def test_include_tag_cycle(self, tmp_path, files):
        """Test that cyclic `!include` tags are detected."""
        for name, content in files.items():
            (tmp_path / name).write_text(content)

        with pytest.raises(ConfigCycleError):
            load_config(str(tmp_path / "a.yaml"))

    def test_include_tag_directives(self, tmp_path):
        """Test that files included with a tag have their directives resolved."""
        (tmp_path / "base.yaml").write_text("patch_size_w: 32\npatch_size_d: 32\n")
        (tmp_path / "model.yaml").write_text(
            "include: base.yaml\nprovider.drift_window: 6\npatch_size_w: 44\n"
        )
        main_config = tmp_path / "main.yaml"
        main_config.write_text("point_id: !include model.yaml\n")

        cfg = load_config(str(main_config))

        assert cfg["point_id"] == {
            "patch_size_w": 44,
            "patch_size_d": 32,
            "provider": {"drift_window": 6},
        }

    def test_include_tag_in_string(self, tmp_path):
        """Test that `!include` tags in a string are relative to the root."""
        (tmp_path / "model.yaml").write_text("name: torch\n")

        cfg = load_config_string("model: !include model.yaml\n", root_dir=str(tmp_path))

        assert cfg["model"] == {"name": "torch"}

    def test_not_a_mapping(self, tmp_path):
        """Test that a configuration must be a mapping."""
        main_config = tmp_path / "main.yaml"
        main_config.write_text("- 1\n- 2\n")

        with pytest.raises(ConfigError):
            load_config(str(main_config))

    def test_dot_override(self, tmp_path):
        """Test overriding nested parameters with dot notation."""
        (tmp_path / "base.yaml").write_text("""
point_id:
  patch_size_w: 32
  provider:
    adc_max: 250
""")
        main_config = tmp_path / "main.yaml"
        main_config.write_text("""
include: base.yaml
point_id.patch_size_w: 48
point_id.provider.adc_max: 120
point_id.margin_w: 4
""")

        cfg = load_config(str(main_config))

        assert cfg["point_id"]["patch_size_w"] == 48
        assert cfg["point_id"]["provider"]["adc_max"] == 120
        assert cfg["point_id"]["margin_w"] == 4

    def test_dot_override_not_a_dict(self, tmp_path):
        """Test that overriding below a scalar value raises."""
        main_config = tmp_path / "main.yaml"
        main_config.write_text("""
point_id: 3
point_id.patch_size_w: 48
""")

        with pytest.raises(ConfigError):
            load_config(str(main_config))

    def test_invalid_include_type(self, tmp_path):
        """Test that a malformed include directive raises."""
        main_config = tmp_path / "main.yaml"
        main_config.write_text("include: 3\n")

        with pytest.raises(ConfigError):
            load_config(str(main_config))

    def test_load_string(self, tmp_path):
        """Test loading a configuration from a string."""
        (tmp_path / "base.yaml").write_text("writer:\n  overwrite: false\n")

        cfg = load_config_string(
            "include: base.yaml\nwriter.overwrite: true\n", root_dir=str(tmp_path)
        )

        assert cfg["writer"]["overwrite"] is True

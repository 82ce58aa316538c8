"""
Unit tests for configuration loading and logging setup.
"""

import logging

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pill_vision.utils import config
from pill_vision.utils.logging import setup_logging, get_logger


class TestConfigDefaults:

    def test_get_config_is_copy(self):
        cfg = config.get_config()
        cfg["gamma"] = 9.9
        assert config.CONFIG["gamma"] == 1.2

    def test_get(self):
        assert config.get("circularity_threshold") == 0.65
        assert config.get("missing", 42) == 42

    def test_merge(self):
        merged = config.merge({"gamma": 1.0})
        assert merged["gamma"] == 1.0
        assert merged["contrast"] == config.CONFIG["contrast"]
        assert config.CONFIG["gamma"] == 1.2

    def test_merge_custom_base(self):
        assert config.merge({"b": 2}, base={"a": 1}) == {"a": 1, "b": 2}

    def test_modes(self):
        assert config.CONFIG["boundary_mode"] in ("edge", "saturation")
        assert config.CONFIG["classifier_mode"] in ("binary", "clustering")


class TestConfigFiles:
    """Tests for YAML load/save."""

    def test_load_overrides_defaults(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        path.write_text("gamma: 1.5\nclassifier_mode: clustering\ncolor_normal: [1, 2, 3]\n")

        cfg = config.load_config(path)

        assert cfg["gamma"] == 1.5
        assert cfg["classifier_mode"] == "clustering"
        assert cfg["color_normal"] == (1, 2, 3)
        assert cfg["contrast"] == config.CONFIG["contrast"]

    def test_load_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert config.load_config(path) == config.CONFIG

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            config.load_config(tmp_path / "nope.yaml")

    def test_load_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            config.load_config(path)

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "out" / "cfg.yaml"
        cfg = config.merge({"gamma": 0.9, "cluster_threshold": 0.2})
        config.save_config(cfg, path)

        reloaded = config.load_config(path)
        assert reloaded["gamma"] == 0.9
        assert reloaded["cluster_threshold"] == 0.2
        assert reloaded["color_broken"] == (255, 140, 0)
        assert reloaded["cluster_palette"] == config.CONFIG["cluster_palette"]

    def test_sample_config_loads(self):
        sample = Path(__file__).parent.parent / "configs" / "sample.config.yaml"
        cfg = config.load_config(sample)
        assert cfg["classifier_mode"] == "clustering"


class TestLogging:

    def test_level_by_name(self):
        logger = setup_logging("PillVisionTest", level="debug")
        assert logger.level == logging.DEBUG
        setup_logging(level=logging.INFO)

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            setup_logging(level="loud")

    def test_log_file_not_duplicated(self, tmp_path):
        log_file = tmp_path / "run.log"
        setup_logging(log_file=str(log_file))
        setup_logging(log_file=str(log_file))

        root = logging.getLogger()
        handlers = [h for h in root.handlers if isinstance(h, logging.FileHandler)
                    and h.baseFilename == str(log_file.resolve())]
        assert len(handlers) == 1

        get_logger("pill_vision.test").info("written")
        handlers[0].flush()
        assert "written" in log_file.read_text()

        root.removeHandler(handlers[0])
        handlers[0].close()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

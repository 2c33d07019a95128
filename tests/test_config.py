"""Tests for src/config.py."""

import pytest
import yaml

from src.config import default_config, load_config, validate_config


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(str(tmp_path / "absent.yaml"))
        assert config["clustering"]["n_clusters"] == 3
        assert config["model"]["max_rounds"] == 2500
        assert config["evaluation"]["threshold"] == 0.5

    def test_partial_override_is_deep_merged(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"clustering": {"n_clusters": 4}}))
        config = load_config(str(path))
        assert config["clustering"]["n_clusters"] == 4
        assert config["clustering"]["max_k"] == 10
        assert config["split"]["seed"] == 2

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(str(path)) == default_config()

    def test_defaults_are_independent_copies(self):
        a = default_config()
        a["clustering"]["n_clusters"] = 7
        assert default_config()["clustering"]["n_clusters"] == 3


class TestValidateConfig:
    def test_ratios_must_sum_to_one(self):
        config = default_config()
        config["split"]["train_ratio"] = 0.8
        with pytest.raises(ValueError, match="sum to 1"):
            validate_config(config)

    def test_unknown_threshold_policy(self):
        config = default_config()
        config["evaluation"]["threshold_policy"] = "best"
        with pytest.raises(ValueError, match="threshold policy"):
            validate_config(config)

    def test_unknown_elbow_policy(self):
        config = default_config()
        config["clustering"]["elbow_policy"] = "eyeball"
        with pytest.raises(ValueError, match="elbow policy"):
            validate_config(config)

    def test_cluster_count_positive(self):
        config = default_config()
        config["clustering"]["n_clusters"] = 0
        with pytest.raises(ValueError, match="n_clusters"):
            validate_config(config)

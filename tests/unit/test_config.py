"""Tests for merge configuration and YAML loading."""

import pytest
import yaml

from quotemerge.core.models import Branding
from quotemerge.core.pipeline import MergeConfig, MergeEngine
from quotemerge.utils.config_loader import (
    get_default_config, load_config, merge_dicts, save_config
)


class TestMergeConfig:

    def test_defaults_are_valid(self):
        assert MergeConfig().validate() == []

    def test_invalid_values_reported(self):
        config = MergeConfig(
            table_style="three_column",
            min_font_size=0,
            garbage_level=9,
            fallback_candidates=[[1, 2, 3]],
        )
        issues = config.validate()
        assert any("table_style" in i for i in issues)
        assert any("min_font_size" in i for i in issues)
        assert any("garbage_level" in i for i in issues)
        assert any("fallback_candidates[0]" in i for i in issues)

    def test_empty_fallback_candidates(self):
        assert any("at least one" in i for i in MergeConfig(fallback_candidates=[]).validate())

    def test_missing_font_file(self, tmp_path):
        config = MergeConfig(regular_font_file=str(tmp_path / "missing.ttf"))
        assert any("regular_font_file" in i for i in config.validate())

    def test_bad_branding_template(self):
        config = MergeConfig(branding=Branding(title_template="{vendor} for {customer}"))
        assert any("title_template" in i for i in config.validate())

    def test_engine_rejects_invalid_config(self):
        with pytest.raises(ValueError, match="Configuration issues"):
            MergeEngine(MergeConfig(table_style="nope"))

    def test_dict_round_trip(self):
        config = MergeConfig(table_style="two_column", branding=Branding(vendor_name="Initech"))
        restored = MergeConfig.from_dict(config.to_dict())
        assert restored == config
        assert restored.branding.vendor_name == "Initech"

    def test_unknown_keys_ignored(self):
        config = MergeConfig.from_dict({"min_font_size": 7, "color_scheme": "dark"})
        assert config.min_font_size == 7
        assert not hasattr(config, "color_scheme")

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "quotemerge.yaml"
        path.write_text(yaml.safe_dump({
            "merge": {"table_style": "two_column", "fallback_font_size": 10},
            "branding": {"vendor_name": "Initech", "address_lines": ["1 Main St"]},
        }))
        config = MergeConfig.from_yaml(path)
        assert config.table_style == "two_column"
        assert config.fallback_font_size == 10
        assert config.x_tolerance == 1.5
        assert config.branding.vendor_name == "Initech"
        assert config.branding.address_lines == ("1 Main St",)
        assert config.branding.sales_email == "sales@cloudfuze.com"


class TestConfigLoader:

    def test_defaults_match_merge_config(self):
        merge = get_default_config()["merge"]
        assert MergeConfig.from_dict(merge) == MergeConfig()

    def test_merge_dicts_is_deep(self):
        base = {"a": {"b": 1, "c": 2}, "d": [1]}
        merged = merge_dicts(base, {"a": {"c": 3}, "d": [2]})
        assert merged == {"a": {"b": 1, "c": 3}, "d": [2]}
        assert base == {"a": {"b": 1, "c": 2}, "d": [1]}

    def test_load_overrides_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("logging:\n  level: DEBUG\n")
        config = load_config(path)
        assert config["logging"]["level"] == "DEBUG"
        assert config["logging"]["use_loguru"] is True
        assert config["merge"]["table_style"] == "four_column"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == get_default_config()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            load_config(path)

    def test_save_and_reload(self, tmp_path):
        config = get_default_config()
        config["storage"]["directory"] = "/var/lib/quotemerge"
        path = tmp_path / "nested" / "saved.yaml"
        save_config(config, path)
        assert load_config(path)["storage"]["directory"] == "/var/lib/quotemerge"

"""Tests for config loading, validation and feature resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from solosite.config import (
    active_kinds,
    feature_label,
    feature_mode,
    load_config,
    resolve_features,
    site_domain,
    validate_config,
)


class TestLoadConfig:
    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert load_config(tmp_path / "missing.json") == {}

    def test_json(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text('{"site_title": "J"}', encoding="utf-8")
        assert load_config(path) == {"site_title": "J"}

    def test_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text('site_title = "T"\n[features.blog]\nmode = "internal"\n', encoding="utf-8")
        assert load_config(path) == {"site_title": "T", "features": {"blog": {"mode": "internal"}}}

    def test_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("site_title: Y\nnav_links: []\n", encoding="utf-8")
        assert load_config(path) == {"site_title": "Y", "nav_links": []}

    def test_invalid_json_exits(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = tmp_path / "config.json"
        path.write_text("{nope", encoding="utf-8")
        with pytest.raises(SystemExit):
            load_config(path)
        assert "Invalid JSON" in capsys.readouterr().err

    def test_yaml_list_exits(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yml"
        path.write_text("- a\n", encoding="utf-8")
        with pytest.raises(SystemExit):
            load_config(path)


class TestValidateConfig:
    def test_valid(self, site_config: dict) -> None:
        validate_config(site_config)

    def test_missing_nav_links(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit):
            validate_config({"site_title": "X"})
        assert "nav_links" in capsys.readouterr().err

    def test_nav_link_without_url(self) -> None:
        with pytest.raises(SystemExit):
            validate_config({"nav_links": [{"label": "Home"}]})

    def test_features_must_be_mapping(self) -> None:
        with pytest.raises(SystemExit):
            validate_config({"nav_links": [], "features": ["blog"]})


class TestFeatures:
    def test_absent_features_means_all_internal(self) -> None:
        assert active_kinds({"nav_links": []}) == ["blog", "events", "podcast"]

    def test_missing_kind_is_disabled(self) -> None:
        config = {"features": {"blog": {"mode": "internal"}}}
        assert feature_mode(config, "events") == "disabled"
        assert active_kinds(config) == ["blog"]

    def test_unknown_mode_is_disabled(self) -> None:
        assert feature_mode({"features": {"blog": {"mode": "sometimes"}}}, "blog") == "disabled"

    def test_label_default(self) -> None:
        assert feature_label({"features": {"blog": {"mode": "internal"}}}, "blog") == "Blog"

    def test_resolve_disables_kinds_without_content(self, site_config: dict, tmp_path: Path) -> None:
        (tmp_path / "blog").mkdir()
        resolved = resolve_features(site_config, tmp_path)
        assert active_kinds(resolved) == ["blog"]
        assert resolved["features"]["events"]["mode"] == "disabled"
        assert site_config["features"]["events"]["mode"] == "internal"

    def test_resolve_keeps_external(self, site_config: dict, tmp_path: Path) -> None:
        site_config["features"]["podcast"] = {"mode": "external", "external_url": "https://pod.test"}
        resolved = resolve_features(site_config, tmp_path)
        assert resolved["features"]["podcast"]["mode"] == "external"
        assert resolved["features"]["podcast"]["label"] == "Podcast"


def test_site_domain_strips_trailing_slash() -> None:
    assert site_domain({"domain": "https://a.test/"}) == "https://a.test"
    assert site_domain({}) == "https://example.com"

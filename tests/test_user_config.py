"""Tests for the per-user config loader."""
import logging

from hmpact.user_config import UserConfig, load_user_config, user_config_path


CONFIG = """{
  // language packs
  "lang": {
    "default": "en",
    "packs": {"core": {"en": "https://example.com/core/en.json"}},
  },
}
"""


class TestLoadUserConfig:
    """Tests for load_user_config."""

    def test_load(self, tmp_path):
        path = tmp_path / "configs.jsonc"
        path.write_text(CONFIG, encoding="utf-8")

        config = load_user_config(path)
        assert isinstance(config, UserConfig)
        assert config.lang.default == "en"
        assert config.lang.packs["core"]["en"] == "https://example.com/core/en.json"

    def test_default_path_uses_home(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HMPACT_HOME", str(tmp_path))
        assert user_config_path() == tmp_path / "configs.jsonc"

        (tmp_path / "configs.jsonc").write_text(CONFIG, encoding="utf-8")
        assert load_user_config().lang.default == "en"

    def test_missing_file(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="hmpact"):
            assert load_user_config(tmp_path / "configs.jsonc") is None
        assert "User config file not found" in caplog.text

    def test_invalid_config(self, tmp_path, caplog):
        path = tmp_path / "configs.jsonc"
        path.write_text('{"lang": {"default": "en"}}', encoding="utf-8")

        with caplog.at_level(logging.ERROR, logger="hmpact"):
            assert load_user_config(path) is None
        assert "lang.packs" in caplog.text

    def test_malformed_config(self, tmp_path, caplog):
        path = tmp_path / "configs.jsonc"
        path.write_text("{", encoding="utf-8")

        with caplog.at_level(logging.ERROR, logger="hmpact"):
            assert load_user_config(path) is None
        assert "Failed to load user config" in caplog.text

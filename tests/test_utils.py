"""Tests for settings loading, env placeholders, auth headers and text cleaners."""

import base64
import logging
from pathlib import Path

import pytest

from seo_machine.utils.utils import (
    configure_logging,
    first_set,
    get_auth_header,
    load_config,
    load_settings,
    remove_zero_width,
    resolve_env_vars,
    section,
    strip_html,
)


class TestResolveEnvVars:
    def test_placeholder_with_default(self, monkeypatch):
        monkeypatch.delenv("SEO_TEST_MISSING", raising=False)
        assert resolve_env_vars("${SEO_TEST_MISSING:fallback}") == "fallback"

    def test_values_stay_strings(self, monkeypatch):
        monkeypatch.setenv("SEO_TEST_PASSWORD", "007123")
        monkeypatch.setenv("SEO_TEST_FLAG", "true")
        resolved = resolve_env_vars({"password": "${SEO_TEST_PASSWORD}", "f": ["${SEO_TEST_FLAG}"]})
        assert resolved == {"password": "007123", "f": ["true"]}

    @pytest.mark.parametrize("secret", ["pa$word1", "$HOME", "a${B}c", "x$$y"])
    def test_dollar_in_env_value_is_kept(self, monkeypatch, secret):
        monkeypatch.setenv("SEO_TEST_SECRET", secret)
        assert resolve_env_vars({"password": "${SEO_TEST_SECRET}"}) == {"password": secret}

    def test_embedded_token_stays_string(self, monkeypatch):
        monkeypatch.setenv("SEO_TEST_HOST", "example.com")
        assert resolve_env_vars("https://${SEO_TEST_HOST}/blog") == "https://example.com/blog"

    def test_escaped_dollar(self):
        assert resolve_env_vars("costs \\$5") == "costs $5"


class TestLoadConfig:
    def test_jsonc_comments_and_trailing_commas(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AHREFS_API_KEY", "abc")
        path = tmp_path / "settings.json"
        path.write_text(
            '{\n  // data sources\n  "ahrefs": {"api_key": "${AHREFS_API_KEY}",},\n  /* block */\n}\n',
            encoding="utf-8",
        )
        assert load_config(path) == {"ahrefs": {"api_key": "abc"}}

    def test_invalid_json_raises_value_error_with_excerpt(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"a": 1,\n "b": }', encoding="utf-8")
        with pytest.raises(ValueError, match="line 2"):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.json")

    def test_non_object_rejected(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(TypeError):
            load_config(path)

    def test_unknown_section_is_reported(self, tmp_path, caplog):
        path = tmp_path / "settings.json"
        path.write_text('{"ahrefs": {}, "wordpress": {}}', encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="seo_machine.utils.utils"):
            assert load_config(path) == {"ahrefs": {}, "wordpress": {}}
        assert "wordpress" in caplog.text

    def test_load_settings_without_file_is_empty(self, tmp_path):
        assert load_settings(tmp_path / "settings.json") == {}

    def test_shipped_example_settings_parse(self):
        settings = load_settings(Path(__file__).resolve().parent.parent / "config" / "settings.json")
        assert settings["keyword_analysis"]["target_density"] == 1.5
        assert settings["dataforseo"]["base_url"] == "https://api.dataforseo.com"
        assert settings["google_analytics"]["property_id"] == ""


class TestAuthHeader:
    def test_basic_from_config(self):
        headers = get_auth_header({"username": "user", "password": "pass"})
        token = headers["Authorization"].split(" ", 1)[1]
        assert headers["Authorization"].startswith("Basic ")
        assert base64.b64decode(token).decode() == "user:pass"
        assert headers["Content-Type"] == "application/json"

    def test_basic_from_env(self, monkeypatch):
        monkeypatch.setenv("MY_LOGIN", "u")
        monkeypatch.setenv("MY_PASS", "p")
        headers = get_auth_header({"username_env_var": "MY_LOGIN", "password_env_var": "MY_PASS"})
        assert base64.b64decode(headers["Authorization"][6:]).decode() == "u:p"

    def test_bearer(self):
        headers = get_auth_header({"auth_type": "bearer", "token": "t0k"})
        assert headers["Authorization"] == "Bearer t0k"
        assert headers["Accept"] == "application/json"

    def test_missing_basic_credentials(self, monkeypatch):
        monkeypatch.delenv("API_LOGIN", raising=False)
        monkeypatch.delenv("API_PASSWORD", raising=False)
        with pytest.raises(EnvironmentError):
            get_auth_header({})

    def test_missing_bearer_token(self, monkeypatch):
        monkeypatch.delenv("API_TOKEN", raising=False)
        with pytest.raises(EnvironmentError):
            get_auth_header({"auth_type": "bearer"})


class TestSmallHelpers:
    def test_section_never_none(self):
        assert section(None, "ahrefs") == {}
        assert section({"ahrefs": None}, "ahrefs") == {}
        assert section({"ahrefs": {"a": 1}}, "ahrefs") == {"a": 1}

    def test_first_set_skips_blank(self):
        assert first_set(None, "", "x", "y") == "x"
        assert first_set(None, "") is None

    def test_strip_html(self):
        assert strip_html("<b>Best</b>&nbsp;tools  <i>2024</i>") == "Best tools 2024"

    def test_remove_zero_width(self):
        assert remove_zero_width("seo\u200b tools\ufeff") == "seo tools"


class TestConfigureLogging:
    def test_writes_log_file_once(self, tmp_path):
        pkg_logger = logging.getLogger("seo_machine")
        saved = list(pkg_logger.handlers)
        pkg_logger.handlers = []
        try:
            configure_logging(log_dir=tmp_path)
            configure_logging(log_dir=tmp_path)
            assert len(pkg_logger.handlers) == 2
            assert (tmp_path / "seo_machine.log").exists()
        finally:
            for handler in pkg_logger.handlers:
                handler.close()
            pkg_logger.handlers = saved

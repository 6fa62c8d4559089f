"""Tests for app_backup.config — YAML configuration loading."""
import pytest

from app_backup.config import AppConfig, ConfigError, load_config, save_config


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "config.yaml")
        assert config.apps_dir == "/home/master/applications"
        assert config.web_root == "public_html"
        assert config.scan_extensions == [".php"]
        assert config.storage.secondary_mount == "/mnt/BLOCKSTORAGE"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == AppConfig()

    def test_overrides_and_extra_keys(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "apps_dir: /srv/apps\n"
            "scan_extensions: [.PHP, .inc]\n"
            "tools:\n  wp: /usr/local/bin/wp\n"
            "cloudways:\n  api_base: https://api.example.test/v1/\n"
            "notes: keep me\n"
        )
        config = load_config(path)
        assert config.apps_dir == "/srv/apps"
        assert config.scan_extensions == [".php", ".inc"]
        assert config.tools.wp == "/usr/local/bin/wp"
        assert config.tools.mysql == "mysql"
        assert config.cloudways.api_base == "https://api.example.test/v1"
        assert config.extra == {"notes": "keep me"}

    def test_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"
        original = AppConfig(apps_dir="/srv/apps", extra={"owner": "ops"})
        save_config(original, path)
        assert load_config(path) == original

    @pytest.mark.parametrize(
        "content",
        [
            "storage: [1, 2]\n",
            "scan_extensions: 5\n",
            "scan_extensions: [php]\n",
            "backup:\n  archive_filename: same\n  dump_filename: same\n",
            "apps_dir: ''\n",
            "apps_dir: [unclosed\n",
        ],
    )
    def test_invalid(self, tmp_path, content):
        path = tmp_path / "config.yaml"
        path.write_text(content)
        with pytest.raises(ConfigError):
            load_config(path)

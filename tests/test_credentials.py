"""Tests for app_backup.credentials — DB credential inference and trust rule."""
from app_backup.credentials import (
    CredentialSet,
    Provenance,
    credentials_accepted,
    find_db_creds,
    first_define_value,
    iter_source_files,
)

WP_CONFIG = """<?php
define('DB_NAME', 'shop42');
define( 'IGNORED', 'x' );
define("DB_USER", "shopuser");
define('DB_PASSWORD', 's3cret');
define('DB_HOST', 'db.internal:3307');
"""


def _write(root, rel_path, content):
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestPrimaryConfig:
    def test_all_fields_from_wp_config(self, tmp_path):
        _write(tmp_path, "wp-config.php", WP_CONFIG)
        creds = find_db_creds(tmp_path)
        assert (creds.name, creds.user, creds.password, creds.host) == (
            "shop42",
            "shopuser",
            "s3cret",
            "db.internal:3307",
        )
        assert creds.provenance is Provenance.PRIMARY

    def test_commented_out_definitions_match(self, tmp_path):
        _write(
            tmp_path,
            "wp-config.php",
            "// define('DB_NAME', 'old_db');\n# define('DB_USER', 'old');\n/* define('DB_PASSWORD', 'pw'); */\n",
        )
        creds = find_db_creds(tmp_path)
        assert (creds.name, creds.user, creds.password) == ("old_db", "old", "pw")
        assert creds.provenance is Provenance.PRIMARY

    def test_host_defaults_to_localhost(self, tmp_path):
        _write(tmp_path, "wp-config.php", "define('DB_NAME', 'a');define('DB_USER', 'b');\ndefine('DB_PASSWORD', 'c');\n")
        assert find_db_creds(tmp_path).host == "localhost"


class TestSecondaryScan:
    def test_scan_hit_matching_directory_is_accepted(self, tmp_path):
        web_root = tmp_path / "shop42" / "public_html"
        _write(web_root, "includes/config.php", "<?php define('DB_NAME', 'shop42');\n")
        creds = find_db_creds(web_root)
        assert creds.name == "shop42"
        assert creds.provenance is Provenance.SCAN
        assert credentials_accepted(creds, "shop42")

    def test_scan_hit_with_other_name_is_rejected(self, tmp_path):
        web_root = tmp_path / "shop42" / "public_html"
        _write(web_root, "includes/config.php", "<?php define('DB_NAME', 'prod_shared');\n")
        creds = find_db_creds(web_root)
        assert creds.name == "prod_shared"
        assert not credentials_accepted(creds, "shop42")

    def test_fields_come_from_different_files(self, tmp_path):
        _write(tmp_path, "a/db.php", "define('DB_NAME', 'from_a');\n")
        _write(tmp_path, "b/user.php", "define('DB_USER', 'from_b');\ndefine('DB_NAME', 'later');\n")
        creds = find_db_creds(tmp_path)
        assert creds.name == "from_a"
        assert creds.user == "from_b"
        assert creds.provenance is Provenance.SCAN

    def test_primary_fields_are_kept(self, tmp_path):
        _write(tmp_path, "wp-config.php", "define('DB_NAME', 'primary');\n")
        _write(tmp_path, "lib/settings.php", "define('DB_NAME', 'other');\ndefine('DB_USER', 'scanned');\n")
        creds = find_db_creds(tmp_path)
        assert creds.name == "primary"
        assert creds.user == "scanned"
        assert creds.provenance is Provenance.PRIMARY

    def test_unrecognised_extensions_are_ignored(self, tmp_path):
        _write(tmp_path, "notes.txt", "define('DB_NAME', 'nope');\n")
        assert find_db_creds(tmp_path).name == ""

    def test_first_hit_decides_even_without_value(self, tmp_path):
        first = _write(tmp_path, "a.php", "define('DB_NAME', getenv(DB));\n")
        second = _write(tmp_path, "b.php", "define('DB_NAME', 'real');\n")
        assert first_define_value([first, second], "DB_NAME") == ""

    def test_value_is_last_quoted_string(self, tmp_path):
        path = _write(tmp_path, "a.php", "define(\"DB_USER\", 'admin'); // was 'root'\n")
        assert first_define_value([path], "DB_USER") == "root"

    def test_iter_source_files_is_sorted(self, tmp_path):
        _write(tmp_path, "b.php", "")
        _write(tmp_path, "a/z.PHP", "")
        _write(tmp_path, "c.js", "")
        names = [path.relative_to(tmp_path).as_posix() for path in iter_source_files(tmp_path, [".php"])]
        assert names == ["b.php", "a/z.PHP"]


class TestDotenv:
    def test_dotenv_fallback(self, tmp_path):
        _write(
            tmp_path,
            ".env",
            "APP_NAME=demo\nDB_HOST=10.0.0.5\nDB_DATABASE=laravel\nDB_USERNAME=lv\nDB_PASSWORD=pw\nDB_DATABASE=second\n",
        )
        creds = find_db_creds(tmp_path)
        assert (creds.name, creds.user, creds.password, creds.host) == ("laravel", "lv", "pw", "10.0.0.5")
        assert creds.provenance is Provenance.DOTENV
        assert credentials_accepted(creds, "unrelated_dir")

    def test_dotenv_keys_must_start_the_line(self, tmp_path):
        _write(tmp_path, ".env", "#DB_DATABASE=commented\n DB_USERNAME=indented\n")
        creds = find_db_creds(tmp_path)
        assert creds.name == ""
        assert creds.user == ""
        assert creds.provenance is Provenance.NONE

    def test_dotenv_fills_missing_fields_only(self, tmp_path):
        _write(tmp_path, "wp-config.php", "define('DB_NAME', 'app1');\n")
        _write(tmp_path, ".env", "DB_DATABASE=env_db\nDB_USERNAME=env_user\nDB_PASSWORD=env_pw\n")
        creds = find_db_creds(tmp_path)
        assert (creds.name, creds.user, creds.password) == ("app1", "env_user", "env_pw")
        assert creds.provenance is Provenance.PRIMARY

    def test_complete_source_skips_dotenv(self, tmp_path):
        _write(tmp_path, "wp-config.php", WP_CONFIG)
        _write(tmp_path, ".env", "DB_HOST=ignored\n")
        assert find_db_creds(tmp_path).host == "db.internal:3307"


class TestAcceptance:
    def test_nothing_found(self, tmp_path):
        creds = find_db_creds(tmp_path)
        assert creds == CredentialSet()
        assert not credentials_accepted(creds, "")

    def test_password_not_in_repr(self):
        assert "hunter2" not in repr(CredentialSet(name="a", user="b", password="hunter2"))

import sys
import pathlib

import pytest

# Ensure project root is on sys.path so 'import app_backup' works when pytest
# runs from a different working directory.
_ROOT = pathlib.Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from app_backup.config import AppConfig


@pytest.fixture
def apps_root(tmp_path):
    root = tmp_path / "applications"
    root.mkdir()
    return root


@pytest.fixture
def app_config(apps_root):
    return AppConfig(apps_dir=str(apps_root))


@pytest.fixture
def make_app(apps_root):
    """Create ``<apps_root>/<name>`` with a web root and optional vhost config."""

    def _make(name, server_name_line=None, files=None):
        app = apps_root / name
        web_root = app / "public_html"
        web_root.mkdir(parents=True)
        (app / "logs").mkdir()
        if server_name_line is not None:
            (app / "conf").mkdir()
            (app / "conf" / "server.nginx").write_text(
                "server {\n    listen 80;\n    %s\n}\n" % server_name_line, encoding="utf-8"
            )
        for rel_path, content in (files or {}).items():
            target = web_root / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return app

    return _make

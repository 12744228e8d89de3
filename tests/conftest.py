import zipfile
from pathlib import Path

import pytest


def write_war(path: Path, files: dict) -> Path:
    """Write a zip-format archive holding files (name -> bytes or str)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return path


@pytest.fixture
def war_factory(tmp_path):
    def make(name="myapp.war", files=None):
        files = files if files is not None else {
            "index.html": "<h1>hello</h1>",
            "WEB-INF/web.xml": "<web-app/>",
            "WEB-INF/classes/com/example/App.class": b"\xca\xfe\xba\xbe",
            "WEB-INF/lib/util.jar": b"PK",
        }
        return write_war(tmp_path / "apps" / name, files)
    return make


@pytest.fixture(autouse=True)
def _no_home(monkeypatch):
    monkeypatch.delenv("WEBUNPACK_HOME", raising=False)
    for name in ("WEBUNPACK_STRATEGY", "WEBUNPACK_EXTRACT", "WEBUNPACK_COPY_WEBINF"):
        monkeypatch.delenv(name, raising=False)

from __future__ import annotations

from importlib import resources
from pathlib import Path

from core.settings import DEFAULT_STATIC_DIR, Settings


def test_root_serves_index_document(client):
    response = client.get("/")

    assert response.status_code == 200
    assert "query log" in response.text
    assert response.headers["content-type"].startswith("text/html")


def test_serves_files_from_static_dir(client):
    response = client.get("/styles.css")

    assert response.status_code == 200
    assert "margin" in response.text


def test_missing_file_is_404(client):
    assert client.get("/nope.txt").status_code == 404


def test_unknown_api_path_is_404(client):
    assert client.get("/api/unknown").status_code == 404


def test_missing_index_document_is_404(make_client, tmp_path):
    empty = tmp_path / "empty"
    empty.mkdir()
    client = make_client(Settings(static_dir=empty))

    assert client.get("/").status_code == 404


def test_bundled_static_dir_has_index():
    assert (DEFAULT_STATIC_DIR / "index.html").is_file()


def test_default_static_dir_ships_inside_core_package():
    # Resolved through the installed package, not the source checkout.
    packaged = resources.files("core").joinpath("static")

    assert packaged.joinpath("index.html").is_file()
    assert Path(str(packaged)).resolve() == DEFAULT_STATIC_DIR


def test_default_settings_serve_bundled_index(make_client):
    client = make_client(Settings())

    response = client.get("/")

    assert response.status_code == 200
    assert "<title>Query log</title>" in response.text

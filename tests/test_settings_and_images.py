from core.settings import DEFAULT_REDIRECT_URI, load_settings
from slideshow.images import scan_images, slide_path


def test_settings_defaults():
    settings = load_settings({})
    assert settings.redirect_uri == DEFAULT_REDIRECT_URI
    assert settings.images_dir == "img"
    assert settings.admin_user == "admin"
    assert settings.log_level == "INFO"
    assert not settings.spotify_configured


def test_settings_from_environment():
    settings = load_settings({
        "SPOTIFY_CLIENT_ID": " id ",
        "SPOTIFY_CLIENT_SECRET": "secret",
        "NOWPLAYING_IMAGES_DIR": "/srv/slides",
        "NOWPLAYING_LOG_LEVEL": "debug",
    })
    assert settings.client_id == "id"
    assert settings.spotify_configured
    assert settings.images_dir == "/srv/slides"
    assert settings.log_level == "DEBUG"


def test_unknown_log_level_falls_back():
    assert load_settings({"NOWPLAYING_LOG_LEVEL": "chatty"}).log_level == "INFO"


def test_scan_images_lists_only_images(tmp_path):
    for name in ("b.PNG", "a.jpg", "notes.txt"):
        (tmp_path / name).write_bytes(b"x")
    (tmp_path / "sub.jpg").mkdir()

    assert scan_images(str(tmp_path)) == ["a.jpg", "b.PNG"]
    assert scan_images(str(tmp_path / "missing")) == []


def test_slide_path_stays_inside_folder(tmp_path):
    images = tmp_path / "img"
    images.mkdir()
    (images / "a.jpg").write_bytes(b"x")
    (tmp_path / "secret.jpg").write_bytes(b"x")

    assert slide_path(str(images), "a.jpg") == str((images / "a.jpg").resolve())
    assert slide_path(str(images), "../secret.jpg") is None
    assert slide_path(str(images), "missing.jpg") is None

from pathlib import Path

from config.loader import ConfigLoader


def test_defaults_used_when_unset(tmp_path, monkeypatch):
    monkeypatch.delenv("SPOTIFY_TEST_PORT", raising=False)
    loader = ConfigLoader(str(tmp_path / "missing.env"))

    assert loader.get("SPOTIFY_TEST_PORT", 8888) == 8888


def test_environment_values_parsed_by_default_type(tmp_path, monkeypatch):
    monkeypatch.setenv("SPOTIFY_TEST_PORT", "9999")
    monkeypatch.setenv("SPOTIFY_TEST_TIMEOUT", "12.5")
    monkeypatch.setenv("SPOTIFY_TEST_FLAG", "yes")
    monkeypatch.setenv("SPOTIFY_TEST_HOST", " localhost ")
    loader = ConfigLoader(str(tmp_path / "missing.env"))

    assert loader.get("SPOTIFY_TEST_PORT", 8888) == 9999
    assert loader.get("SPOTIFY_TEST_TIMEOUT", 300.0) == 12.5
    assert loader.get("SPOTIFY_TEST_FLAG", False) is True
    assert loader.get("SPOTIFY_TEST_HOST", "127.0.0.1") == "localhost"


def test_unparseable_number_falls_back_to_default(tmp_path, monkeypatch):
    monkeypatch.setenv("SPOTIFY_TEST_PORT", "eighty")
    loader = ConfigLoader(str(tmp_path / "missing.env"))

    assert loader.get("SPOTIFY_TEST_PORT", 8888) == 8888


def test_env_file_does_not_override_environment(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("SPOTIFY_TEST_CLIENT=from-file\nSPOTIFY_TEST_MODE=paste\n")
    monkeypatch.setenv("SPOTIFY_TEST_CLIENT", "from-env")
    # Registered so the value loaded from the file is removed afterwards
    monkeypatch.delenv("SPOTIFY_TEST_MODE", raising=False)

    loader = ConfigLoader(str(env_file))

    assert loader.get("SPOTIFY_TEST_CLIENT", "") == "from-env"
    assert loader.get("SPOTIFY_TEST_MODE", "listener") == "paste"


def test_home_relative_paths_are_expanded(tmp_path, monkeypatch):
    monkeypatch.setenv("SPOTIFY_TEST_STATE", "~/spotify/state.json")
    loader = ConfigLoader(str(tmp_path / "missing.env"))

    assert loader.get("SPOTIFY_TEST_STATE", "") == str(Path.home() / "spotify" / "state.json")


def test_env_file_location_from_environment(tmp_path, monkeypatch):
    env_file = tmp_path / "spotify.env"
    env_file.write_text("SPOTIFY_TEST_CLIENT=from-custom-file\n")
    monkeypatch.setenv("SPOTIFY_AUTH_ENV_FILE", str(env_file))
    monkeypatch.delenv("SPOTIFY_TEST_CLIENT", raising=False)

    loader = ConfigLoader()

    assert loader.env_path == env_file
    assert loader.get("SPOTIFY_TEST_CLIENT", "") == "from-custom-file"

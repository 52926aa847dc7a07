from pathlib import Path

from pyembed.config import default_root, load_config, log_level


def test_load_config_from_environment(tmp_path):
    config = load_config(
        {
            "PYEMBED_ROOT": str(tmp_path / "runtime"),
            "PYEMBED_DISTRIBUTION_URL": "https://mirror.example.com/python.zip",
        }
    )

    assert config.root == tmp_path / "runtime"
    assert config.distribution_url == "https://mirror.example.com/python.zip"


def test_load_config_defaults():
    config = load_config({"PYEMBED_ROOT": "  "})

    assert config.root == default_root()
    assert config.distribution_url == config.layout.default_distribution_url()


def test_default_root_is_per_user():
    root = default_root()
    assert root.is_absolute()
    assert root.name == "runtime"
    assert "pyembed" in root.parts[-2].lower()


def test_relative_root_is_made_absolute(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    config = load_config({"PYEMBED_ROOT": "runtime"})

    assert config.root == Path(tmp_path / "runtime").absolute()


def test_log_level():
    assert log_level({}) == "INFO"
    assert log_level({"PYEMBED_LOG_LEVEL": "debug"}) == "DEBUG"
    assert log_level({"PYEMBED_LOG_LEVEL": " "}) == "INFO"

# tests/test_config.py
import pytest

from libdeps.modules.config import LibDepsConfig

SAMPLE = """\
[ldd]
command = /opt/glibc/bin/ldd
timeout = 2.5
keep_path = yes

[output]
sort_order = time_desc

[logging]
level = debug
"""


@pytest.fixture
def conf_file(tmp_path):
    path = tmp_path / "libdeps.conf"
    path.write_text(SAMPLE)
    return str(path)


def test_first_existing_location_wins(tmp_path, conf_file):
    cfg = LibDepsConfig([str(tmp_path / "missing.conf"), conf_file])

    assert cfg.loaded_from == conf_file
    assert cfg.get("ldd", "command") == "/opt/glibc/bin/ldd"
    assert cfg.getfloat("ldd", "timeout") == 2.5
    assert cfg.getboolean("ldd", "keep_path") is True
    assert cfg.get("output", "sort_order") == "time_desc"


def test_missing_file_means_defaults(tmp_path):
    cfg = LibDepsConfig([str(tmp_path / "missing.conf")])

    assert cfg.loaded_from is None
    assert cfg.get("ldd", "command", fallback="/usr/bin/ldd") == "/usr/bin/ldd"
    assert cfg.getint("ldd", "timeout", fallback=30) == 30
    assert not cfg.config.has_section("ldd")


def test_bad_values_fall_back(conf_file):
    cfg = LibDepsConfig([conf_file])

    assert cfg.getint("ldd", "command", fallback=7) == 7
    assert cfg.getboolean("output", "sort_order", fallback=False) is False


def test_load_explicit_file(tmp_path, conf_file):
    cfg = LibDepsConfig([str(tmp_path / "missing.conf")])
    cfg.load(conf_file)

    assert cfg.loaded_from == conf_file
    with pytest.raises(FileNotFoundError):
        cfg.load(str(tmp_path / "still-missing.conf"))

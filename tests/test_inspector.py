# tests/test_inspector.py
import os
import shutil
import stat
import sys

import pytest

from libdeps.modules.cache import ResolutionCache
from libdeps.modules.inspector import HISTORY_SIZE, InspectionFailed, InspectionTimeout, LddInspector

pytestmark = pytest.mark.skipif(not sys.platform.startswith("linux"), reason="needs a Unix shell")


@pytest.fixture
def fake_ldd(tmp_path):
    """Write an executable shell script that plays ldd."""

    def _make(body: str) -> str:
        script = tmp_path / "ldd"
        script.write_text("#!/bin/sh\n" + body + "\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return os.fspath(script)

    return _make


# -----------------------------------------------------------------------------
# Subprocess handling
# -----------------------------------------------------------------------------

def test_returns_stripped_non_empty_lines(fake_ldd):
    ldd = fake_ldd(
        "printf '\\tlinux-vdso.so.1 (0x00007ffd)\\n\\n\\tlibc.so.6 => /lib/libc.so.6 (0x00007f0)\\n'"
    )
    inspector = LddInspector(command=ldd, timeout=5)

    lines = inspector("/bin/true")

    assert lines == ["linux-vdso.so.1 (0x00007ffd)", "libc.so.6 => /lib/libc.so.6 (0x00007f0)"]
    assert inspector.history[-1].ok()
    assert inspector.history[-1].command == [ldd, "/bin/true"]


def test_non_zero_exit_raises(fake_ldd):
    ldd = fake_ldd("echo '\tnot a dynamic executable' >&2\nexit 1")
    inspector = LddInspector(command=ldd, timeout=5)

    with pytest.raises(InspectionFailed) as exc:
        inspector("/etc/hostname")

    assert "not a dynamic executable" in exc.value.reason
    assert exc.value.result.returncode == 1


def test_empty_output_raises(fake_ldd):
    inspector = LddInspector(command=fake_ldd("exit 0"), timeout=5)

    with pytest.raises(InspectionFailed):
        inspector("/bin/true")


def test_missing_command_raises(tmp_path):
    inspector = LddInspector(command=str(tmp_path / "no-such-ldd"), timeout=5)

    with pytest.raises(InspectionFailed):
        inspector("/bin/true")


def test_timeout_kills_the_child(fake_ldd):
    ldd = fake_ldd("exec sleep 10")
    inspector = LddInspector(command=ldd, timeout=0.2, keep_path=True)

    with pytest.raises(InspectionTimeout):
        inspector("/bin/true")


def test_zero_timeout_means_no_timeout():
    assert LddInspector(command="/usr/bin/ldd", timeout=0).timeout is None


def test_path_is_dropped_from_environment(monkeypatch):
    monkeypatch.setenv("PATH", "/usr/bin:/bin")

    assert "PATH" not in LddInspector(command="/usr/bin/ldd", keep_path=False)._environment()
    assert LddInspector(command="/usr/bin/ldd", keep_path=True)._environment()["PATH"] == "/usr/bin:/bin"


def test_history_keeps_only_recent_runs(fake_ldd):
    inspector = LddInspector(command=fake_ldd("echo 'libc.so.6 => /lib/libc.so.6 (0x1)'"), timeout=5)

    for _ in range(HISTORY_SIZE + 3):
        inspector("/bin/true")

    assert len(inspector.history) == HISTORY_SIZE


def test_undecodable_bytes_in_report_survive(fake_ldd, tmp_path):
    """Paths are bytes on Linux; a non UTF-8 library path must not abort resolution."""
    ldd = fake_ldd("printf 'libx.so => /opt/\\377x/libx.so (0x1)\\n'")
    target = tmp_path / "prog"
    target.write_text("")
    cache = ResolutionCache(inspector=LddInspector(command=ldd, timeout=5))

    deps = cache.resolve(os.fspath(target))

    assert [d.path for d in deps] == ["/opt/\udcffx/libx.so"]
    assert os.fsencode(deps[0].path) == b"/opt/\xffx/libx.so"
    assert not deps[0].inspected


# -----------------------------------------------------------------------------
# Against the real ldd
# -----------------------------------------------------------------------------

@pytest.mark.skipif(not os.path.exists("/usr/bin/ldd") or shutil.which("ls") is None,
                    reason="needs glibc ldd")
def test_resolve_real_binary():
    binary = os.path.realpath(shutil.which("ls"))
    cache = ResolutionCache(inspector=LddInspector(command="/usr/bin/ldd", timeout=30))

    try:
        deps = cache.resolve(binary)
    except InspectionFailed:
        pytest.skip(f"{binary} is not a dynamic executable")

    assert deps
    for entity in cache.all_entities():
        assert entity.path not in entity.forward_deps
        for dep in entity.forward_deps:
            other = cache.lookup(dep)
            assert other is not None
            assert entity.path in other.reverse_deps

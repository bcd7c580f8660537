"""
Shared test fixtures and configuration.
"""

import io
import stat
import tarfile
from pathlib import Path

import pytest

from graalpack.adapters.layers.local import LayerAdapter
from graalpack.adapters.mock import MockAdapter
from graalpack.adapters.registry import AdapterRegistry

SDK_TOP_DIR = "graalvm-ce-java11-21.0.0.2"

GU_SCRIPT = """#!/bin/sh
echo "gu $@" >> "$(dirname "$0")/../gu.log"
echo "Installing native-image"
"""


def _add_file(tar: tarfile.TarFile, name: str, content: str, mode: int = 0o644) -> None:
    data = content.encode("utf-8")
    info = tarfile.TarInfo(name=name)
    info.size = len(data)
    info.mode = mode
    tar.addfile(info, io.BytesIO(data))


def _add_dir(tar: tarfile.TarFile, name: str) -> None:
    info = tarfile.TarInfo(name=name)
    info.type = tarfile.DIRTYPE
    info.mode = 0o755
    tar.addfile(info)


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    """Return an empty application directory."""
    path = tmp_path / "app"
    path.mkdir()
    return path


@pytest.fixture
def layers_dir(tmp_path: Path) -> Path:
    """Return an empty layers directory."""
    path = tmp_path / "layers"
    path.mkdir()
    return path


@pytest.fixture
def sdk_tarball(tmp_path: Path) -> Path:
    """A small GraalVM-shaped tarball with a working bin/gu script."""
    path = tmp_path / "dist" / f"{SDK_TOP_DIR}.tar.gz"
    path.parent.mkdir()
    with tarfile.open(path, "w:gz") as tar:
        _add_dir(tar, f"{SDK_TOP_DIR}/")
        _add_dir(tar, f"{SDK_TOP_DIR}/bin")
        _add_file(tar, f"{SDK_TOP_DIR}/release", 'JAVA_VERSION="11.0.10"\n')
        _add_file(tar, f"{SDK_TOP_DIR}/bin/gu", GU_SCRIPT, mode=0o755)
    return path


@pytest.fixture
def sdk_url(sdk_tarball: Path) -> str:
    """file:// URL of the test tarball."""
    return sdk_tarball.as_uri()


@pytest.fixture
def fake_mvn(tmp_path: Path) -> Path:
    """An executable standing in for mvn; records its argv and JAVA_HOME."""
    path = tmp_path / "bin" / "mvn"
    path.parent.mkdir()
    path.write_text(
        "#!/bin/sh\n"
        'echo "$@" >> mvn.log\n'
        'echo "$JAVA_HOME" > java_home.log\n'
    )
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def mock_registry() -> tuple[AdapterRegistry, dict[str, MockAdapter]]:
    """Registry with a real layer adapter and mocked archive/shell adapters."""
    mocks = {
        "archive": MockAdapter(adapter_name="archive"),
        "shell": MockAdapter(adapter_name="shell"),
    }
    registry = AdapterRegistry([LayerAdapter(), *mocks.values()])
    return registry, mocks

"""Shared fixtures for bundle list tests."""

import zipfile
from pathlib import Path

import pytest

from common import http_client
from registry.maven.local import LocalRepository


def bundle_xml(*levels):
    """Render a bundle list document.

    Each level is ``(level, [(group, artifact, version), ...])``; a bundle
    tuple may carry a fourth element with extra child elements.
    """
    parts = ["<bundles>"]
    for level, bundles in levels:
        parts.append(f'<startLevel level="{level}">')
        for bundle in bundles:
            group_id, artifact_id, version = bundle[:3]
            extra = bundle[3] if len(bundle) > 3 else ""
            parts.append(
                f"<bundle><groupId>{group_id}</groupId><artifactId>{artifact_id}</artifactId>"
                f"<version>{version}</version>{extra}</bundle>"
            )
        parts.append("</startLevel>")
    parts.append("</bundles>")
    return "".join(parts)


def write_zip(path: Path, files: dict) -> Path:
    """Create a zip archive at ``path`` holding ``{name: text}``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, text in files.items():
            zf.writestr(name, text)
    return path


@pytest.fixture(autouse=True)
def _clear_http_cache():
    http_client.clear_cache()
    yield
    http_client.clear_cache()


@pytest.fixture
def local_repo(tmp_path):
    return LocalRepository(tmp_path / "m2")


def install_artifact(repo, coordinate, version, data: bytes = b"payload") -> Path:
    """Place an artifact into a local repository."""
    with repo.install(coordinate, version) as sink:
        sink.write(data)
    return repo.path_for(coordinate, version)

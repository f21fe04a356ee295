"""
Pytest fixtures for FilePi tests.

Every test gets its own served root under ``tmp_path`` and a fake frame
extractor, so nothing here needs ffmpeg installed.
"""

from pathlib import Path
from typing import Generator
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from filepi.api_server.api import create_api_app
from filepi.core.context import RootContext
from filepi.services import Services, build_services
from filepi.services.path_resolver import PathResolver
from filepi.services.thumbnail_service import FfmpegFrameExtractor

FAKE_JPEG = b"\xff\xd8\xff\xe0fake-jpeg-frame\xff\xd9"


@pytest.fixture
def root(tmp_path: Path) -> Path:
    served = tmp_path / "root"
    served.mkdir()
    return served


@pytest.fixture
def outside(tmp_path: Path) -> Path:
    """A directory next to the root that must never be reachable."""
    other = tmp_path / "outside"
    other.mkdir()
    (other / "secret.txt").write_text("top secret")
    return other


@pytest.fixture
def context(root: Path) -> RootContext:
    return RootContext.from_root(root)


@pytest.fixture
def resolver(context: RootContext) -> PathResolver:
    return PathResolver(context)


@pytest.fixture
def extractor() -> Mock:
    """Stands in for ffmpeg: writes a small JPEG to the requested destination."""

    async def _extract(source, destination, offset="00:00:05"):
        Path(destination).write_bytes(FAKE_JPEG)

    fake = Mock(spec=FfmpegFrameExtractor)
    fake.extract = AsyncMock(side_effect=_extract)
    return fake


@pytest.fixture
def services(context: RootContext, extractor: Mock) -> Services:
    return build_services(context, extractor=extractor)


@pytest.fixture
def client(context: RootContext, services: Services) -> Generator[TestClient, None, None]:
    app = create_api_app(context, services=services)
    with TestClient(app) as test_client:
        yield test_client


def make_tree(root: Path):
    """
    root/
      docs/readme.md
      docs/.notes.txt
      movies/clip.mp4
      movies/deep/other.mkv
      .hidden/secret.mp4
      b.txt, A.txt, c.txt
    """
    (root / "docs").mkdir()
    (root / "docs" / "readme.md").write_text("# readme")
    (root / "docs" / ".notes.txt").write_text("notes")
    (root / "movies" / "deep").mkdir(parents=True)
    (root / "movies" / "clip.mp4").write_bytes(b"\x00" * 64)
    (root / "movies" / "deep" / "other.mkv").write_bytes(b"\x00" * 32)
    (root / ".hidden").mkdir()
    (root / ".hidden" / "secret.mp4").write_bytes(b"\x00" * 16)
    (root / "b.txt").write_text("bbbb")
    (root / "A.txt").write_text("a")
    (root / "c.txt").write_text("cc")


@pytest.fixture
def tree(root: Path) -> Path:
    make_tree(root)
    return root

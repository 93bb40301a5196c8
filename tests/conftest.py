import logging
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from helpers import StubBackend, make_pdf, make_png, svg  # noqa: E402

from svgbinder.types import RenderedPage  # noqa: E402


@pytest.fixture
def isolate_logging():
    """Isolate logging configuration between tests to prevent CI issues.

    The CLI installs a RichHandler on the root logger; this fixture restores
    whatever was there before so later tests see the original handlers.
    """
    original_handlers = logging.root.handlers[:]
    original_level = logging.root.level

    logging.root.handlers.clear()
    logging.root.addHandler(logging.NullHandler())

    yield

    logging.root.handlers.clear()
    logging.root.handlers.extend(original_handlers)
    logging.root.setLevel(original_level)


@pytest.fixture
def stub_backend() -> StubBackend:
    return StubBackend()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def page_factory() -> Callable[..., RenderedPage]:
    def _make(
        width: float = 200,
        height: float = 100,
        *,
        source: str | None = None,
        label: str | None = None,
        image: bytes | None = None,
    ) -> RenderedPage:
        return RenderedPage(
            width=width,
            height=height,
            data=make_pdf(width, height, label=label, image=image),
            source=Path(source) if source is not None else None,
        )

    return _make


@pytest.fixture
def write_svg(tmp_path: Path) -> Callable[..., Path]:
    """Write an SVG document under ``tmp_path`` and return its path."""

    def _write(name: str, body: str = "", **kwargs: str | None) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(svg(body, **kwargs), encoding="utf-8")
        return path

    return _write

"""E2E-002: documents with embedded images and transparent gradients."""

import base64
from pathlib import Path

import pytest
from helpers import data_uri, make_png, svg
from pypdf import PdfReader

GRADIENT = (
    '<defs><linearGradient id="fade" x1="0" x2="1">'
    '<stop offset="0" stop-color="#ff0000" stop-opacity="1"/>'
    '<stop offset="1" stop-color="#ff0000" stop-opacity="0"/>'
    "</linearGradient></defs>"
    '<rect width="100" height="50" fill="url(#fade)"/>'
)


@pytest.mark.e2e
def test_embedded_images(input_dir: Path, cli_runner) -> None:
    logo = make_png((8, 8), mode="RGBA", color=(0, 0, 255, 128))
    palette = make_png((8, 8), mode="P", color=3)
    nested = svg('<rect width="10" height="10" fill="orange"/>', width="10", height="10")
    nested_uri = "data:image/svg+xml;base64," + base64.b64encode(nested.encode("utf-8")).decode("ascii")

    (input_dir / "a-gradient.svg").write_text(svg(GRADIENT), encoding="utf-8")
    (input_dir / "b-images.svg").write_text(
        svg(
            f'<image x="0" y="0" width="40" height="40" href="{data_uri("image/png", logo)}"/>'
            f'<image x="50" y="0" width="40" height="40" xlink:href="{data_uri("image/png", palette)}"/>'
            f'<image x="0" y="40" width="10" height="10" href="{nested_uri}"/>',
            width="100",
            height="60",
        ),
        encoding="utf-8",
    )
    # Same picture on a second page; stored once in the merged document
    (input_dir / "c-repeat.svg").write_text(
        svg(f'<image width="40" height="40" href="{data_uri("image/png", logo)}"/>'),
        encoding="utf-8",
    )

    result = cli_runner(["convert", str(input_dir), "--no-pages"])

    assert result.returncode == 0, result.stderr
    assert sorted(p.name for p in input_dir.iterdir() if p.suffix == ".pdf") == ["merged.pdf"]
    reader = PdfReader(input_dir / "merged.pdf")
    assert len(reader.pages) == 3
    assert (float(reader.pages[1].mediabox.width), float(reader.pages[1].mediabox.height)) == (100, 60)


@pytest.mark.e2e
def test_broken_file_is_reported_and_others_merged(input_dir: Path, cli_runner) -> None:
    (input_dir / "a.svg").write_text(svg('<rect width="10" height="10"/>'), encoding="utf-8")
    (input_dir / "b.svg").write_text("<svg><g></svg>", encoding="utf-8")
    (input_dir / "c.svg").write_text(svg('<rect width="20" height="20"/>'), encoding="utf-8")

    result = cli_runner(["convert", str(input_dir)])

    assert result.returncode == 1
    assert "b.svg" in result.stderr
    assert "❌" in result.stderr
    assert not (input_dir / "b.pdf").exists()
    assert len(PdfReader(input_dir / "merged.pdf").pages) == 2

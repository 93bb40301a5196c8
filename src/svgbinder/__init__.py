"""svgbinder - convert directories of SVG exports into one merged PDF."""

__version__ = "0.1.0"

"""Textual user interface."""

import pathlib

CSS_FOLDER = pathlib.Path(__file__).parent / "styles"

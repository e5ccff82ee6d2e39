import os
import sys

sys.path.insert(0, os.path.abspath("../.."))

project = "Spa Reservations"
release = "0.1.0"

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "sphinx.ext.viewcode",
]

autodoc_member_order = "bysource"
autodoc_mock_imports = ["prometheus_fastapi_instrumentator", "slowapi"]

templates_path = ["_templates"]
exclude_patterns: list[str] = []

html_theme = "sphinx_rtd_theme"
html_title = "Spa Reservations"

# Sphinx configuration for the pmt_studio documentation
import sys
from pathlib import Path

sys.path.insert(0, Path("../../src").resolve().as_posix())

from pmt_studio import __version__  # noqa: E402

project = "pmt_studio"
author = "pmt_studio developers"
release = __version__

extensions = [
    "sphinx.ext.viewcode",
    "sphinx.ext.autodoc",
    "sphinx.ext.mathjax",
    "sphinx.ext.napoleon",
    "sphinx_copybutton",
    "sphinx_inline_tabs",
    "nbsphinx",
    "myst_parser",
]

templates_path = []
exclude_patterns = []
html_theme = "alabaster"
html_static_path = []

# numpy-style docstrings throughout the package
napoleon_numpy_docstring = True
napoleon_google_docstring = False
napoleon_use_ivar = True
napoleon_use_rtype = False
napoleon_custom_sections = ["JSON Configuration Example"]

autodoc_default_options = {"ignore-module-all": True}
autoclass_content = "both"
autodoc_typehints = "description"
autodoc_typehints_description_target = "documented_params"

source_suffix = {
    ".rst": "restructuredtext",
    ".md": "markdown",
}
master_doc = "index"

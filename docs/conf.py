# Configuration file for the Sphinx documentation builder.
# https://www.sphinx-doc.org/en/master/usage/configuration.html

# -- Project information -----------------------------------------------------
project = "field-averaging"
author = "field-averaging developers"
copyright = "2025, field-averaging developers"
release = "0.1.0"

# -- General configuration ---------------------------------------------------
extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "sphinx.ext.autosummary",
    "sphinx.ext.mathjax",
    "sphinx.ext.intersphinx",
    "sphinx_copybutton",
]

templates_path = ["_templates"]
exclude_patterns = ["_build", "Thumbs.db", ".DS_Store"]

autosummary_generate = True
autodoc_typehints = "description"

intersphinx_mapping = {
    "numpy": ("https://numpy.org/doc/stable/", None),
    "scipy": ("https://docs.scipy.org/doc/scipy/", None),
}

# Don’t warn when the same object is documented multiple times
suppress_warnings = ["ref.python", "duplicate.object"]

# -- Options for HTML output -------------------------------------------------
html_theme = "furo"
html_static_path = []

html_title = f"{project} documentation"
html_short_title = f"{project}"

copybutton_prompt_text = r">>> |\.\.\. "
copybutton_prompt_is_regexp = True

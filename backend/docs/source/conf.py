import pathlib
import sys

BACKEND_ROOT = pathlib.Path(__file__).resolve().parents[2]
sys.path.insert(0, str(BACKEND_ROOT))

project = 'Feature Map'
copyright = '2026, Feature Map contributors'
author = 'Feature Map contributors'
release = '0.1.0'

templates_path = ['_templates']
exclude_patterns = ['.venv', 'venv', '.pytest_cache', 'tests']

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.napoleon',
    'sphinx.ext.autosummary',
    'sphinx.ext.viewcode',
    'sphinx_autodoc_typehints',
    'myst_parser',
]

autosummary_generate = True

# Google style only; the viewer and service modules share it.
napoleon_google_docstring = True
napoleon_numpy_docstring = False
napoleon_use_param = True

html_theme = 'sphinx_rtd_theme'
html_static_path = ['_static']

autodoc_default_options = {
    'members': True,
    'show-inheritance': True,
}

# The database driver is not needed to document the query builder.
autodoc_mock_imports = ['psycopg2', 'psycopg2.extras', 'psycopg2.sql']

source_suffix = {
    '.rst': 'restructuredtext',
    '.md': 'markdown',
}

"""
Publish Org-mode files to Confluence wiki.

Parses Org-mode files, converts the document tree into the Confluence Storage Format (XHTML), and invokes
Confluence API endpoints to upload images and update page content.
"""

from ._version import __version__

__all__ = ["__version__"]

__author__ = "Levente Hunyadi"
__copyright__ = "Copyright 2022-2026, Levente Hunyadi"
__license__ = "MIT"
__status__ = "Production"

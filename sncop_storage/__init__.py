"""
SNCOP File Storage

Filesystem storage for academic files (notes, practice tests, practicals,
assignments) organized by subject and unit, with a JSON catalog of titles
and descriptions kept in sync with the directory tree.
"""

__version__ = "1.0.0"
__author__ = "SNCOP File Storage Contributors"

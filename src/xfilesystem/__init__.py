"""
xfilesystem - structured file access.

Reads and dumps plain text, JSON, YAML, CSV and Python-literal files through
one interface (XFilesystem), and finds files by glob patterns in which a
`**` segment spans any number of directory levels.

The CSV codec (csv_codec) and the glob resolver (glob_resolver) are
independent and usable on their own.
"""

__version__ = "0.1.0"

from xfilesystem.csv_codec import CsvDialect, CsvDumpMode, ParseMode
from xfilesystem.filesystem import PythonCacheMode, XFilesystem
from xfilesystem.glob_resolver import GlobFlags

__all__ = [
    "XFilesystem",
    "PythonCacheMode",
    "ParseMode",
    "CsvDumpMode",
    "CsvDialect",
    "GlobFlags",
]

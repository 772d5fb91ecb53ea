import os

from xfilesystem import __version__

# remote (http/https) reads are opt-in
ALLOW_REMOTE = bool(int(os.getenv("XFS_ALLOW_REMOTE", "0")))
HTTP_TIMEOUT = float(os.getenv("XFS_HTTP_TIMEOUT", "10"))
HTTP_USER_AGENT = os.getenv("XFS_HTTP_USER_AGENT", f"xfilesystem/{__version__}")

# pretty-printing of dumped documents
JSON_INDENT = int(os.getenv("XFS_JSON_INDENT", "4"))
YAML_INDENT = int(os.getenv("XFS_YAML_INDENT", "4"))
# nesting level from which YAML is written in flow style
YAML_INLINE = int(os.getenv("XFS_YAML_INLINE", "2"))

LOG_LEVEL = os.getenv("XFS_LOG_LEVEL", "WARNING").upper()

# CSV dialect defaults
DEFAULT_DELIMITER = ","
DEFAULT_ENCLOSURE = '"'
DEFAULT_ESCAPE_CHAR = "\\"
DEFAULT_CHARSET = "UTF-8"

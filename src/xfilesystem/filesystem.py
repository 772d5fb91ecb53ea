"""
XFilesystem: one interface for reading and dumping text, JSON, YAML, CSV
and Python-literal files, plus `**`-aware globbing.

Reads check that the path exists, is a regular file and is readable before
touching it. HTTP(S) URLs are fetched with requests when remote reads are
allowed. Dumps are built completely in memory, written to a temporary file
next to the destination and moved into place.
"""

import codecs
import copy
import logging
import os
import re
import stat
import tempfile
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import requests

from xfilesystem import config
from xfilesystem import glob_resolver
from xfilesystem.csv_codec import (
    CsvDialect,
    CsvDumpMode,
    ParseMode,
    coerce_mode,
    dump_csv_string,
    parse_csv_string,
)
from xfilesystem.errors import (
    DecodeError,
    InvalidArgumentError,
    NotFoundError,
    NotReadableError,
    WriteError,
)
from xfilesystem.serialization import (
    check_document_mode,
    decode_json,
    decode_python,
    decode_yaml,
    encode_json,
    encode_python,
    encode_yaml,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

_REMOTE_URL = re.compile(r"^https?://", re.IGNORECASE)


class PythonCacheMode(Enum):
    """Caching behaviour of read_python_file."""
    ALLOW_CACHED = "allow_cached"                  # Evaluate once per instance
    INVALIDATE_CACHE = "invalidate_cache"          # Re-evaluate if the file changed
    FORCE_INVALIDATE_CACHE = "force_invalidate"    # Always re-evaluate


def _current_umask() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return umask


class XFilesystem:
    """File reading and dumping in several formats through one interface."""

    def __init__(self, remote_allowed: bool = config.ALLOW_REMOTE, http_timeout: float = config.HTTP_TIMEOUT):
        self._remote_allowed = bool(remote_allowed)
        self.http_timeout = http_timeout
        self._python_cache: Dict[str, Tuple[int, Any]] = {}

    @property
    def remote_allowed(self) -> bool:
        """Whether HTTP(S) URLs may be read."""
        return self._remote_allowed

    @remote_allowed.setter
    def remote_allowed(self, value: bool) -> None:
        self._remote_allowed = bool(value)

    def _is_remote(self, filename: str) -> bool:
        return self._remote_allowed and bool(_REMOTE_URL.match(filename))

    # ------------------------------------------------------------------
    # Raw access
    # ------------------------------------------------------------------

    def enforce_file_accessibility(self, filename: PathLike) -> None:
        """
        Raises:
            NotFoundError: When the path does not exist or is not a file
            NotReadableError: When the file exists but is not readable
        """
        filename = os.fspath(filename)
        if not os.path.exists(filename):
            raise NotFoundError(f'File "{filename}" does not exist.', path=filename)
        if not os.path.isfile(filename):
            raise NotFoundError(f'Path "{filename}" exists but is not a file.', path=filename)
        if not os.access(filename, os.R_OK):
            raise NotReadableError(f'File "{filename}" exists but is not readable.', path=filename)

    def _read_remote(self, url: str) -> bytes:
        try:
            response = requests.get(
                url,
                headers={"User-Agent": config.HTTP_USER_AGENT},
                timeout=self.http_timeout,
            )
        except requests.RequestException as e:
            raise NotReadableError(f'Could not read from "{url}": {e}', path=url)

        if response.status_code // 100 != 2:
            raise NotReadableError(
                f'Could not read from "{url}": HTTP {response.status_code}', path=url
            )
        logger.debug(f"Fetched {len(response.content)} bytes from {url}")
        return response.content

    def read_bytes(self, filename: PathLike) -> bytes:
        """Read the raw contents of a local file or, if allowed, an HTTP(S) URL."""
        filename = os.fspath(filename)
        if self._is_remote(filename):
            return self._read_remote(filename)

        self.enforce_file_accessibility(filename)
        try:
            with open(filename, "rb") as f:
                data = f.read()
        except OSError as e:
            raise NotReadableError(f'Could not read from file "{filename}": {e}', path=filename)

        logger.debug(f"Read {len(data)} bytes from {filename}")
        return data

    def read_file(self, filename: PathLike, encoding: str = config.DEFAULT_CHARSET) -> str:
        """Read the contents of a file as text."""
        return self._decode(self.read_bytes(filename), encoding, os.fspath(filename))

    @staticmethod
    def _decode(raw: bytes, charset: str, filename: str) -> str:
        try:
            name = codecs.lookup(charset).name
        except LookupError:
            raise InvalidArgumentError(f'Unknown charset: "{charset}"', argument="charset", value=charset)

        if name == "utf-8":
            name = "utf-8-sig"
        try:
            return raw.decode(name)
        except UnicodeDecodeError as e:
            raise DecodeError(f'Could not decode "{filename}" as {charset}: {e}', format="text")

    @staticmethod
    def _target_mode(filename: str) -> int:
        if os.path.exists(filename):
            return stat.S_IMODE(os.stat(filename).st_mode)
        return 0o666 & ~_current_umask()

    def dump_file(self, filename: PathLike, content: Union[str, bytes]) -> None:
        """
        Atomically write content to a file, creating parent directories.

        Raises:
            WriteError: When the file cannot be written to
        """
        filename = os.fspath(filename)
        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        directory = os.path.dirname(os.path.abspath(filename))

        if os.path.isdir(filename):
            raise WriteError(f'Cannot write to "{filename}": it is a directory.', path=filename)
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=directory, prefix=".xfs-", suffix=".tmp")
        except OSError as e:
            raise WriteError(f'Failed to write file "{filename}": {e}', path=filename)

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.chmod(tmp, self._target_mode(filename))
            os.replace(tmp, filename)
        except OSError as e:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise WriteError(f'Failed to write file "{filename}": {e}', path=filename)

        logger.debug(f"Wrote {len(data)} bytes to {filename}")

    # ------------------------------------------------------------------
    # JSON / YAML
    # ------------------------------------------------------------------

    def read_json_file(self, filename: PathLike, mode: Union[ParseMode, str] = ParseMode.OBJECT) -> Any:
        """Read a file and parse it as JSON (dicts for ASSOC, namespaces for OBJECT)."""
        mode = check_document_mode(mode)
        return decode_json(self.read_file(filename), mode)

    def dump_json_file(self, filename: PathLike, data: Any, indent: Optional[int] = config.JSON_INDENT) -> None:
        self.dump_file(filename, encode_json(data, indent=indent))

    def read_yaml_file(self, filename: PathLike, mode: Union[ParseMode, str] = ParseMode.OBJECT) -> Any:
        """Read a file and parse it as YAML (dicts for ASSOC, namespaces for OBJECT)."""
        mode = check_document_mode(mode)
        return decode_yaml(self.read_file(filename), mode)

    def dump_yaml_file(
        self,
        filename: PathLike,
        data: Any,
        inline: int = config.YAML_INLINE,
        indent: int = config.YAML_INDENT,
    ) -> None:
        """Dump data as YAML; containers nested `inline` levels deep are written inline."""
        self.dump_file(filename, encode_yaml(data, inline=inline, indent=indent))

    # ------------------------------------------------------------------
    # Python literals
    # ------------------------------------------------------------------

    def read_python_file(
        self,
        filename: PathLike,
        caching: Union[PythonCacheMode, str] = PythonCacheMode.ALLOW_CACHED,
    ) -> Any:
        """
        Read a file holding a single Python literal.

        With ALLOW_CACHED a file is evaluated only once per instance, and a
        cached file is returned even if it has since been removed.
        INVALIDATE_CACHE re-evaluates when the modification time changed,
        FORCE_INVALIDATE_CACHE re-evaluates anyway.
        """
        caching = coerce_mode(PythonCacheMode, caching, "caching")
        filename = os.fspath(filename)
        key = os.path.realpath(filename)
        cached = self._python_cache.get(key)

        if caching is PythonCacheMode.ALLOW_CACHED and cached is not None:
            return copy.deepcopy(cached[1])

        self.enforce_file_accessibility(filename)
        mtime = os.stat(filename).st_mtime_ns
        if caching is PythonCacheMode.INVALIDATE_CACHE and cached is not None and cached[0] == mtime:
            return copy.deepcopy(cached[1])

        text = self._decode(self.read_bytes(key), config.DEFAULT_CHARSET, filename)
        data = decode_python(text)
        self._python_cache[key] = (mtime, data)
        logger.debug(f"Evaluated Python literal from {filename}")
        return copy.deepcopy(data)

    def dump_python_file(self, filename: PathLike, data: Any) -> None:
        self.dump_file(filename, encode_python(data))

    # ------------------------------------------------------------------
    # CSV
    # ------------------------------------------------------------------

    def read_csv_file(
        self,
        filename: PathLike,
        mode: Union[ParseMode, str] = ParseMode.OBJECT,
        delimiter: str = config.DEFAULT_DELIMITER,
        charset: str = config.DEFAULT_CHARSET,
        enclosure: str = config.DEFAULT_ENCLOSURE,
        escape_char: str = config.DEFAULT_ESCAPE_CHAR,
    ) -> Any:
        """
        Read a file and parse it as CSV.

        Args:
            filename: Path (or URL, if remote reads are allowed)
            mode: ParseMode.ARRAY returns every line as a list,
                ParseMode.ASSOC / ParseMode.OBJECT take the first row as
                headers and return dicts / namespaces
            delimiter: Field delimiter, any length
            charset: Encoding of the file; decoded before parsing
            enclosure: Field enclosure, any length
            escape_char: Escape prefix inside enclosed fields ("" to disable)

        Raises:
            NotFoundError, NotReadableError: When the file cannot be read
            ColumnCountMismatchError: When the column count is inconsistent
            InvalidArgumentError: When mode or the dialect is invalid
        """
        mode = coerce_mode(ParseMode, mode, "mode")
        dialect = CsvDialect(delimiter=delimiter, enclosure=enclosure, escape_char=escape_char)
        filename = os.fspath(filename)

        text = self._decode(self.read_bytes(filename), charset, filename)
        source = filename if self._is_remote(filename) else os.path.realpath(filename)
        return parse_csv_string(text, mode=mode, dialect=dialect, source=source)

    def dump_csv_file(
        self,
        filename: PathLike,
        data: Sequence[Any],
        delimiter: str = config.DEFAULT_DELIMITER,
        enclosure: str = config.DEFAULT_ENCLOSURE,
        escape_char: str = config.DEFAULT_ESCAPE_CHAR,
        dump_mode: Union[CsvDumpMode, str] = CsvDumpMode.DETECT,
    ) -> None:
        """
        Dump rows or records into a file as UTF-8 CSV.

        Raises:
            InvalidDumpShapeError: When the data shape cannot be detected
            ColumnCountMismatchError: When row lengths are inconsistent
            InvalidRowDataError: When a row cannot be encoded
            WriteError: When the file cannot be written to
        """
        dialect = CsvDialect(delimiter=delimiter, enclosure=enclosure, escape_char=escape_char)
        filename = os.fspath(filename)
        text = dump_csv_string(data, dialect=dialect, mode=dump_mode, source=os.path.abspath(filename))
        self.dump_file(filename, text)

    # ------------------------------------------------------------------
    # Glob
    # ------------------------------------------------------------------

    def glob(self, pattern: PathLike, flags=glob_resolver.GlobFlags.NONE):
        """Find paths by a glob; unlike glob.glob(recursive=False), `**` spans directories."""
        return glob_resolver.glob(os.fspath(pattern), flags)


__all__ = ["XFilesystem", "PythonCacheMode"]

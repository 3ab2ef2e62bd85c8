"""Identity provider metadata acquisition.

The IdP metadata source is either a local file or an ``http``/``https``
URL.  Anything that does not match the URL grammar in full is treated as
a filesystem path.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from pathlib import Path

import requests
from requests.exceptions import RequestException

from authmode.errors import ArtifactError, MetadataDownloadError

logger = logging.getLogger(__name__)

_URL_RE = re.compile(
    r"\A"
    r"https?://"
    r"(?:[^\s/?#@]+@)?"  # userinfo
    r"[^\s/?#@]+"  # host[:port]
    r"(?:[/?#]\S*)?"  # path, query, fragment
    r"\Z",
    re.IGNORECASE,
)


def is_url(source: str | None) -> bool:
    """Return ``True`` if *source* is an http or https URL."""
    return bool(source) and _URL_RE.match(source) is not None


def is_file_path(source: str | None) -> bool:
    """Return ``True`` if *source* is non-blank and not a URL."""
    return bool(source and source.strip()) and not is_url(source)


def _same_file(source: Path, target: Path) -> bool:
    # Relative paths and symlinks can name the target under another spelling.
    if source == target:
        return True
    try:
        return os.path.samefile(source, target)
    except OSError:
        return False


class MetadataAcquirer:
    """Materialize IdP metadata at a fixed target path.

    :param timeout: HTTP timeout in seconds for URL sources.
    :param session: Optional :class:`requests.Session` to issue requests on.
    :param verbose: Log step detail at INFO instead of DEBUG.
    """

    def __init__(
        self,
        *,
        timeout: float = 30,
        session: requests.Session | None = None,
        verbose: bool = False,
    ) -> None:
        self.timeout = timeout
        self._session = session or requests.Session()
        self.verbose = verbose

    def _debug_msg(self, msg: str, *args: object) -> None:
        logger.log(logging.INFO if self.verbose else logging.DEBUG, msg, *args)

    def resolve(self, source: str, target: str | os.PathLike) -> Path:
        """Make the metadata from *source* available at *target*.

        :returns: The target path.
        :raises MetadataDownloadError: For a failed download.
        :raises ArtifactError: For a failed local copy or write.
        """
        target = Path(target)
        if is_url(source):
            self._debug_msg("Downloading IDP metadata file from %s", source)
            self.download(source, target)
        elif _same_file(Path(source), target):
            logger.debug("IDP metadata already at %s", target)
        else:
            self._debug_msg("Copying IDP metadata file %s to %s ...", source, target)
            try:
                shutil.copyfile(source, target)
            except OSError as exc:
                raise ArtifactError(f"Failed to copy {source} to {target}: {exc}") from exc
        return target

    def download(self, url: str, target: Path) -> None:
        """GET *url* and write the body verbatim to *target*.

        *target* is only written after a 2xx response.
        """
        logger.info("Downloading %s ...", url)
        try:
            response = self._session.get(url, timeout=self.timeout)
        except RequestException as exc:
            raise MetadataDownloadError(url, reason=str(exc)) from exc

        if not 200 <= response.status_code < 300:
            raise MetadataDownloadError(url, status_code=response.status_code, reason=response.reason or "")

        try:
            target.write_bytes(response.content)
        except OSError as exc:
            raise ArtifactError(f"Failed to write {target}: {exc}") from exc

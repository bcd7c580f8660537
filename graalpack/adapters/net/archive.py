"""
Archive adapter — download a distribution and stream-extract it.

Two capabilities, composed by the adapter:

    fetch(url)                      → open HTTP(S) response stream
    extract_archive(stream, dest)   → untar while reading, stripping
                                      leading path components

The archive is never written to disk as a whole. Any transfer error
(HTTP status, connection failure, truncated stream) fails the action.
"""

from __future__ import annotations

import logging
import tarfile
import time
import urllib.error
import urllib.request
from pathlib import Path, PurePosixPath
from typing import IO

from graalpack import __version__
from graalpack.adapters.base import Adapter, ExecutionContext
from graalpack.core.models.action import Receipt

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 600

_USER_AGENT = f"graalpack/{__version__}"


def fetch(url: str, timeout: int = DEFAULT_TIMEOUT) -> IO[bytes]:
    """Open a streaming response for ``url``.

    Raises:
        urllib.error.HTTPError: On a non-2xx HTTP status.
        urllib.error.URLError: On connection or protocol failure.
    """
    req = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
    return urllib.request.urlopen(req, timeout=timeout)


def _strip_name(name: str, strip_components: int) -> str | None:
    """Drop the first ``strip_components`` path parts, like tar --strip-components."""
    parts = PurePosixPath(name).parts
    if parts and parts[0] == "/":
        parts = parts[1:]
    if len(parts) <= strip_components:
        return None
    return str(PurePosixPath(*parts[strip_components:]))


def extract_archive(
    stream: IO[bytes],
    destination: Path,
    strip_components: int = 1,
) -> int:
    """Extract a (compressed) tar stream into ``destination``.

    Members whose path is consumed entirely by the strip are skipped,
    which discards the archive's top-level directory entry itself.

    Returns:
        Number of members extracted.

    Raises:
        tarfile.TarError, OSError, EOFError: On a corrupt or truncated stream.
    """
    destination.mkdir(parents=True, exist_ok=True)
    count = 0
    with tarfile.open(fileobj=stream, mode="r|*") as tar:
        for member in tar:
            stripped = _strip_name(member.name, strip_components)
            if stripped is None:
                continue
            member.name = stripped
            if member.islnk():
                # Hard link targets are archive-root relative, so strip them too
                link = _strip_name(member.linkname, strip_components)
                if link is None:
                    continue
                member.linkname = link
            tar.extract(member, path=destination, filter="tar")
            count += 1
    return count


class ArchiveAdapter(Adapter):
    """Fetch a tarball over HTTP(S) and extract it in one streaming pass.

    Action params:
        url (str): Archive location.
        destination (str): Directory to extract into (created if missing).
        strip_components (int): Leading path parts to drop (default: 1).
        timeout (int): Socket timeout in seconds (default: 600).
    """

    @property
    def name(self) -> str:
        return "archive"

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        params = context.action.params
        if not params.get("url"):
            return False, "Missing required param: 'url'"
        if not params.get("destination"):
            return False, "Missing required param: 'destination'"
        strip = params.get("strip_components", 1)
        if not isinstance(strip, int) or strip < 0:
            return False, f"Invalid strip_components: {strip!r}"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.action.params
        url: str = params["url"]
        destination = Path(params["destination"])
        strip = params.get("strip_components", 1)
        timeout = params.get("timeout", DEFAULT_TIMEOUT)
        metadata = {"command": f"fetch {url} | extract --strip-components={strip} {destination}"}

        logger.info("Downloading %s into %s", url, destination)
        start = time.monotonic()

        try:
            with fetch(url, timeout=timeout) as stream:
                count = extract_archive(stream, destination, strip_components=strip)
        except urllib.error.HTTPError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"The requested URL returned error: {e.code} {e.reason}",
                metadata={**metadata, "http_status": e.code, "stderr": str(e)},
            )
        except urllib.error.URLError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Download failed: {e.reason}",
                metadata={**metadata, "stderr": str(e.reason)},
            )
        except (tarfile.TarError, OSError, EOFError) as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Extraction failed: {e}",
                metadata={**metadata, "stderr": str(e)},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if count == 0:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Archive from {url} contained no entries after stripping {strip} component(s)",
                duration_ms=elapsed_ms,
                metadata=metadata,
            )

        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output=f"Extracted {count} entries into {destination}",
            duration_ms=elapsed_ms,
            metadata={**metadata, "entries": count, "destination": str(destination)},
        )

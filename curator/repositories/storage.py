"""Unified storage abstraction using fsspec for local and object-store access."""

import json
from pathlib import Path
from typing import Any

import fsspec

_REMOTE_PROTOCOLS = {"gs://": "gcs", "s3://": "s3"}


class StorageBackend:
    """Filesystem abstraction with an identical API for local and remote paths.

    Uses fsspec internally.  Filesystem instances are lazily created and
    cached per protocol (``file`` for local, ``gcs``/``s3`` for object
    storage; the matching fsspec driver must be installed for remote use).
    """

    def __init__(self) -> None:
        self._filesystems: dict[str, fsspec.AbstractFileSystem] = {}

    def _get_fs(self, path: str) -> tuple[fsspec.AbstractFileSystem, str]:
        """Resolve the fsspec filesystem and normalised path for *path*.

        ``gs://`` and ``s3://`` URLs are passed through untouched.
        Everything else is treated as a local file and resolved to an
        absolute path.
        """
        protocol = "file"
        norm_path = None
        for prefix, proto in _REMOTE_PROTOCOLS.items():
            if path.startswith(prefix):
                protocol = proto
                norm_path = path
                break
        if norm_path is None:
            norm_path = str(Path(path).resolve())

        if protocol not in self._filesystems:
            self._filesystems[protocol] = fsspec.filesystem(protocol)

        return self._filesystems[protocol], norm_path

    def is_remote(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in _REMOTE_PROTOCOLS)

    def exists(self, path: str) -> bool:
        """Return ``True`` if *path* exists on the resolved filesystem."""
        fs, norm_path = self._get_fs(path)
        return fs.exists(norm_path)

    def open(self, path: str, mode: str = "rb"):
        """Return an open file-like object for *path*."""
        fs, norm_path = self._get_fs(path)
        return fs.open(norm_path, mode)

    def read_json(self, path: str) -> Any:
        """Parse the JSON document stored at *path*."""
        fs, norm_path = self._get_fs(path)
        return json.loads(fs.cat(norm_path))

    def write_json(self, path: str, data: Any) -> None:
        """Write *data* as indented JSON, creating local parent dirs."""
        fs, norm_path = self._get_fs(path)
        if not self.is_remote(path):
            fs.makedirs(str(Path(norm_path).parent), exist_ok=True)
        with fs.open(norm_path, "w") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def join(self, base_path: str, *parts: str) -> str:
        """Join path segments for either a local directory or a bucket URL."""
        if self.is_remote(base_path):
            return "/".join([base_path.rstrip("/"), *parts])
        return str(Path(base_path).joinpath(*parts))

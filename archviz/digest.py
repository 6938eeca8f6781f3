"""Repository digest parsing and size bounding for prompts."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Mapping

from .errors import InvalidInput
from .models import DIRECTORY_KIND, FILE_KIND, FileEntry, RepositoryDigest, TruncatedDigest

DEFAULT_FILE_CAP = 100
DEFAULT_README_CAP = 2000
TRUNCATION_MARKER = "\n...(truncated)"

# GitHub tree entries report "blob" and "tree"; treat them as file and directory.
_KIND_ALIASES = {
    FILE_KIND: FILE_KIND,
    "blob": FILE_KIND,
    DIRECTORY_KIND: DIRECTORY_KIND,
    "dir": DIRECTORY_KIND,
    "tree": DIRECTORY_KIND,
}


class DigestTruncator:
    """Caps the file listing and README before they reach the model."""

    def __init__(
        self,
        file_cap: int = DEFAULT_FILE_CAP,
        readme_cap: int = DEFAULT_README_CAP,
        *,
        marker: str = TRUNCATION_MARKER,
    ) -> None:
        self.file_cap = file_cap
        self.readme_cap = readme_cap
        self.marker = marker

    def truncate(self, digest: RepositoryDigest) -> TruncatedDigest:
        file_paths = [entry.path for entry in digest.file_entries if entry.is_file]
        files_truncated = len(file_paths) > self.file_cap
        readme = digest.readme_text or None
        readme_truncated = False
        if readme is not None and len(readme) > self.readme_cap:
            readme = readme[: self.readme_cap] + self.marker
            readme_truncated = True
        return TruncatedDigest(
            name=digest.name,
            description=digest.description,
            file_paths=tuple(file_paths[: self.file_cap]),
            readme=readme,
            files_truncated=files_truncated,
            readme_truncated=readme_truncated,
        )


def digest_from_payload(payload: Any) -> RepositoryDigest:
    """Validate a JSON-like mapping and build a :class:`RepositoryDigest`."""
    if not isinstance(payload, Mapping):
        raise InvalidInput("Repository data is required")

    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        raise InvalidInput("Repository data must include a non-empty 'name'")

    description = _optional_str(payload, "description") or ""
    default_branch = _optional_str(payload, "default_branch") or "main"
    readme_text = _optional_str(payload, "readme_text")
    html_url = _optional_str(payload, "html_url")

    raw_entries = payload.get("file_entries")
    if raw_entries is None:
        raw_entries = []
    if not isinstance(raw_entries, list):
        raise InvalidInput("'file_entries' must be a list")

    entries: List[FileEntry] = []
    for index, raw in enumerate(raw_entries):
        if not isinstance(raw, Mapping):
            raise InvalidInput(f"file_entries[{index}] must be an object")
        path = raw.get("path")
        if not isinstance(path, str) or not path:
            raise InvalidInput(f"file_entries[{index}] is missing a 'path'")
        kind = _KIND_ALIASES.get(str(raw.get("kind", FILE_KIND)).lower())
        if kind is None:
            raise InvalidInput(
                f"file_entries[{index}] has unknown kind '{raw.get('kind')}'"
            )
        entries.append(FileEntry(path=path, kind=kind))

    return RepositoryDigest(
        name=name.strip(),
        description=description,
        default_branch=default_branch,
        file_entries=tuple(entries),
        readme_text=readme_text,
        html_url=html_url,
    )


def load_digest(path: Path) -> RepositoryDigest:
    """Read a digest from a JSON file on disk."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise InvalidInput(f"Unable to read digest {path}: {exc}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidInput(f"Digest {path.name} is not valid JSON: {exc}") from exc
    if isinstance(data, dict) and isinstance(data.get("repository"), dict):
        data = data["repository"]
    return digest_from_payload(data)


def _optional_str(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInput(f"'{key}' must be a string")
    return value


__all__ = [
    "DEFAULT_FILE_CAP",
    "DEFAULT_README_CAP",
    "TRUNCATION_MARKER",
    "DigestTruncator",
    "digest_from_payload",
    "load_digest",
]

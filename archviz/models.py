"""Core data models shared across archviz components."""

from dataclasses import dataclass, field
from typing import Optional, Tuple

FILE_KIND = "file"
DIRECTORY_KIND = "directory"

FILE_TREE_PLACEHOLDER = "No file tree available"
README_PLACEHOLDER = "No README available"


@dataclass(frozen=True)
class FileEntry:
    """A single path from the repository tree."""

    path: str
    kind: str = FILE_KIND

    @property
    def is_file(self) -> bool:
        return self.kind == FILE_KIND


@dataclass(frozen=True)
class RepositoryDigest:
    """Normalized repository snapshot produced by the metadata fetcher."""

    name: str
    description: str = ""
    default_branch: str = "main"
    file_entries: Tuple[FileEntry, ...] = ()
    readme_text: Optional[str] = None
    html_url: Optional[str] = None


@dataclass(frozen=True)
class TruncatedDigest:
    """Request-scoped, size-bounded view of a digest handed to prompts."""

    name: str
    description: str
    file_paths: Tuple[str, ...]
    readme: Optional[str]
    files_truncated: bool = False
    readme_truncated: bool = False

    @property
    def file_tree(self) -> str:
        if not self.file_paths:
            return FILE_TREE_PLACEHOLDER
        return "\n".join(self.file_paths)

    @property
    def readme_section(self) -> str:
        return self.readme or README_PLACEHOLDER


@dataclass
class StageOutput:
    """Verbatim model output for one stage and the block extracted from it."""

    stage: str
    raw: str
    extracted: str
    tag_found: bool = True


@dataclass
class PipelineResult:
    """Externally visible artifacts of a pipeline run."""

    diagram_text: str
    explanation_text: str
    component_mapping: str = ""
    stages: Tuple[StageOutput, ...] = field(default=(), repr=False)


@dataclass
class QuotaRecord:
    """Admission counter for one identity within the current window."""

    count: int
    window_start: float


@dataclass(frozen=True)
class ClickDirective:
    """A `click <node> "<target>"` statement located in diagram text."""

    node_id: str
    target: str
    start: int
    end: int

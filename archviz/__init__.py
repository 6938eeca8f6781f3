"""Architecture diagrams for repositories via a three-stage language-model pipeline."""

from .digest import DigestTruncator, digest_from_payload, load_digest
from .errors import ArchvizError, InvalidInput, QuotaExceeded, UpstreamGenerationError
from .models import FileEntry, PipelineResult, RepositoryDigest
from .orchestrator import Orchestrator
from .postproc.links import DiagramLinkRewriter
from .quota import QuotaGate

__all__ = [
    "ArchvizError",
    "DiagramLinkRewriter",
    "DigestTruncator",
    "FileEntry",
    "InvalidInput",
    "Orchestrator",
    "PipelineResult",
    "QuotaExceeded",
    "QuotaGate",
    "RepositoryDigest",
    "UpstreamGenerationError",
    "digest_from_payload",
    "load_digest",
]

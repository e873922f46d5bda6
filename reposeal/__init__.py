"""Signed hash manifests for collections of git repositories."""

from .enumerator import FileEnumerator
from .integrity import IntegrityVerifier, verify_integrity
from .manifest import HashManifestBuilder, Md5Hasher
from .models import (
    MANIFEST_FILENAME,
    SIGNATURE_FILENAME,
    HashManifest,
    ManifestEntry,
    OrchestrationReport,
    RepositoryOutcome,
    VerificationResult,
)
from .orchestrator import BatchOrchestrator
from .signing import GpgSigner, SignatureManager

__version__ = "0.1.0"

__all__ = [
    "BatchOrchestrator",
    "FileEnumerator",
    "GpgSigner",
    "HashManifest",
    "HashManifestBuilder",
    "IntegrityVerifier",
    "MANIFEST_FILENAME",
    "ManifestEntry",
    "Md5Hasher",
    "OrchestrationReport",
    "RepositoryOutcome",
    "SIGNATURE_FILENAME",
    "SignatureManager",
    "VerificationResult",
    "verify_integrity",
]

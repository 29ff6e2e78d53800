"""Pipeline operations.

This module provides the building blocks the orchestrators compose.

Public API:
    Classification:
        - classify: Turn a file set into detected assets
        - build_rules: Ordered classification rules for a layout

    Ingestion and export:
        - load_source: Read a directory or zip archive
        - pack: Build the output file set
        - write_archive: Write a deterministic zip

    Remote collaborators:
        - HttpConversionService: Conversion service client
        - FtpSession: Remote file-transfer session
        - OrchestrationClient: Orchestrated deployment client
        - detect_provider: Hosting provider label for a host
"""

from liberate.operations.classify import build_rules, classify
from liberate.operations.convert import HttpConversionService
from liberate.operations.ingest import load_archive, load_directory, load_source
from liberate.operations.package import generate_guide, pack, write_archive
from liberate.operations.transfer import FtpSession, OrchestrationClient, detect_provider

__all__ = [
    # Classification
    "classify",
    "build_rules",
    # Ingestion and export
    "load_source",
    "load_directory",
    "load_archive",
    "pack",
    "generate_guide",
    "write_archive",
    # Remote collaborators
    "HttpConversionService",
    "FtpSession",
    "OrchestrationClient",
    "detect_provider",
]

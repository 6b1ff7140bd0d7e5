"""Artifact generation: emitters, the generation pass, and the file writer."""

from awkgen.generator.cli import CliEmitter
from awkgen.generator.client import ClientEmitter
from awkgen.generator.dto import DtoEmitter
from awkgen.generator.pipeline import ARTIFACT_NAMES, CodeGenerator, GenerationResult
from awkgen.generator.writer import stale_artifacts, write_artifacts

__all__ = [
    "ARTIFACT_NAMES",
    "CliEmitter",
    "ClientEmitter",
    "CodeGenerator",
    "DtoEmitter",
    "GenerationResult",
    "stale_artifacts",
    "write_artifacts",
]

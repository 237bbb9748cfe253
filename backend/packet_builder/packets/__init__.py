"""Packet assembly engine."""

from .assembly import AssemblyState, PacketAssembler, assemble_batch, assemble_single
from .naming import NameRegistry, document_entry_name, namespace_prefix, resolve, split_name
from .types import ArchiveEntry, PacketMode, PacketResult, SkippedAttachment, SkipReason
from .writer import ArchiveHandle, ArchiveWriter

__all__ = [
    "AssemblyState",
    "PacketAssembler",
    "assemble_single",
    "assemble_batch",
    "NameRegistry",
    "document_entry_name",
    "namespace_prefix",
    "resolve",
    "split_name",
    "ArchiveEntry",
    "PacketMode",
    "PacketResult",
    "SkippedAttachment",
    "SkipReason",
    "ArchiveHandle",
    "ArchiveWriter",
]

"""Minimal FASTA/FASTQ readers."""

from __future__ import annotations

import gzip
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Union

PathLike = Union[str, "Path"]

_GZIP_MAGIC = b"\x1f\x8b"


@dataclass(frozen=True)
class FastaRecord:
    """A named sequence."""

    name: str
    seq: str


def read_fasta(path: PathLike) -> list[FastaRecord]:
    """Read a FASTA file into records with trimmed names and upper-cased sequences.

    Sequence lines that appear before any named header are carried into the
    first named record.
    """
    records: list[FastaRecord] = []
    name = ""
    parts: list[str] = []
    with open(path, encoding="utf-8", newline="") as handle:
        for raw in handle:
            line = raw.rstrip("\n").removesuffix("\r")
            if line.startswith(">"):
                if name:
                    records.append(FastaRecord(name, "".join(parts)))
                    parts = []
                name = line[1:].strip()
            else:
                parts.append(line.strip().upper())
    if name:
        records.append(FastaRecord(name, "".join(parts)))
    return records


def _split_lines(text: str) -> list[str]:
    return [line.removesuffix("\r") for line in text.split("\n")]


def _iter_fasta(lines: list[str]) -> Iterator[FastaRecord]:
    name: str | None = None
    parts: list[str] = []
    for line in lines:
        if line.startswith(">"):
            if name is not None:
                yield FastaRecord(name, "".join(parts))
            name = line[1:]
            parts = []
        elif name is not None:
            parts.append(line)
    if name is not None:
        yield FastaRecord(name, "".join(parts))


def _iter_fastq(lines: list[str], path: PathLike) -> Iterator[FastaRecord]:
    remaining = iter(lines)
    for header in remaining:
        if not header.strip():
            continue
        if not header.startswith("@"):
            raise ValueError(f"{path}: expected '@' at start of FASTQ record, got {header!r}")
        seq = next(remaining, None)
        plus = next(remaining, None)
        qual = next(remaining, None)
        if seq is None or plus is None or qual is None:
            raise ValueError(f"{path}: truncated FASTQ record {header[1:]!r}")
        if not plus.startswith("+"):
            raise ValueError(f"{path}: missing '+' separator in record {header[1:]!r}")
        if len(qual) != len(seq):
            raise ValueError(f"{path}: sequence and quality lengths differ in record {header[1:]!r}")
        yield FastaRecord(header[1:], seq)


def iter_fastx(path: PathLike) -> Iterator[FastaRecord]:
    """Yield records of a FASTA or FASTQ file, optionally gzip-compressed.

    Names are the full header line and sequences are returned unmodified, with
    line breaks removed. Bytes are decoded as Latin-1 so each byte maps to one
    character.
    """
    data = Path(path).read_bytes()
    if data[:2] == _GZIP_MAGIC:
        data = gzip.decompress(data)
    if not data.strip():
        raise ValueError(f"{path}: file is empty")
    lines = _split_lines(data.decode("latin-1"))
    first = next(line for line in lines if line.strip())
    if first.startswith(">"):
        yield from _iter_fasta(lines)
    elif first.startswith("@"):
        yield from _iter_fastq(lines, path)
    else:
        raise ValueError(f"{path}: not a FASTA or FASTQ file (starts with {first[:1]!r})")
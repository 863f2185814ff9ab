"""Running the external KMC k-mer counter and analysing its text output."""

from __future__ import annotations

import re
import subprocess
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Optional, Union

from telox.kmers import KmerPair, passes_filters, reverse_complement
from telox.strand_bias import StrandBiasAnalysis, analyze_strand_bias

PathLike = Union[str, Path]

_U32_MAX = 2**32 - 1
_U64_MAX = 2**64 - 1
_UINT_RE = re.compile(r"\+?[0-9]+")


def _parse_uint(text: str, limit: int) -> Optional[int]:
    """Parse an unsigned integer no larger than ``limit``; None if it is not one."""
    if not _UINT_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value <= limit else None


def _lines(path: PathLike) -> Iterator[str]:
    """Lines of a UTF-8 text file without their line endings."""
    with open(path, encoding="utf-8", newline="") as handle:
        for raw in handle:
            yield raw.removesuffix("\n").removesuffix("\r")


def _run(command: list[str]) -> None:
    result = subprocess.run(command)
    if result.returncode != 0:
        raise subprocess.CalledProcessError(result.returncode, command)


def run_kmc(input_fasta: PathLike, k: int, db_prefix: PathLike) -> None:
    """Count k-mers of a FASTA file with KMC into the database ``db_prefix``.

    Raises CalledProcessError if KMC exits unsuccessfully.
    """
    _run([
        "kmc",
        f"-k{k}",
        "-ci1",
        "-cs1000000",
        "-fm",
        str(input_fasta),
        str(db_prefix),
        ".",
    ])


def run_kmc_dump(db_prefix: PathLike, output_txt: PathLike) -> None:
    """Export a KMC database to a text file with kmc_dump.

    Raises CalledProcessError if kmc_dump exits unsuccessfully.
    """
    _run(["kmc_dump", str(db_prefix), str(output_txt)])


def read_kmc_counts(path: PathLike) -> list[tuple[str, int]]:
    """Read ``kmer count`` lines of a kmc_dump text file, skipping malformed lines."""
    kmers: list[tuple[str, int]] = []
    for line in _lines(path):
        parts = line.split()
        if len(parts) < 2:
            continue
        count = _parse_uint(parts[1], _U64_MAX)
        if count is not None:
            kmers.append((parts[0], count))
    return kmers


def kmc_pipeline(
    input_fasta: PathLike, k: int, db_prefix: PathLike, output_txt: PathLike
) -> list[tuple[str, int]]:
    """Run KMC and kmc_dump, then load the dumped k-mer counts."""
    run_kmc(input_fasta, k, db_prefix)
    run_kmc_dump(db_prefix, output_txt)
    return read_kmc_counts(output_txt)


def analyze_kmc_kmers(kmers: Iterable[tuple[str, int]], k: int) -> list[StrandBiasAnalysis]:
    """Fold KMC counts onto canonical k-mers, filter them and analyse strand bias.

    A k-mer smaller than its reverse complement counts on the forward strand;
    otherwise its count goes to the reverse strand of the complement.
    """
    canonical_counts: dict[str, KmerPair] = {}
    for kmer, count in kmers:
        if len(kmer) != k:
            continue
        rc = reverse_complement(kmer)
        canonical, is_forward = (kmer, True) if kmer < rc else (rc, False)
        if not passes_filters(canonical):
            continue
        pair = canonical_counts.setdefault(canonical, KmerPair())
        truncated = count & _U32_MAX
        if is_forward:
            pair.forward += truncated
        else:
            pair.rc += truncated
    return analyze_strand_bias(canonical_counts, None)


def _read_kmc_b_counts(path: PathLike, k: int) -> dict[str, tuple[int, int]]:
    raw: dict[str, tuple[int, int]] = {}
    for line in _lines(path):
        parts = line.split()
        if len(parts) < 2:
            continue
        kmer = parts[0]
        count = _parse_uint(parts[1], _U32_MAX) or 0
        rc_count = (_parse_uint(parts[2], _U32_MAX) or 0) if len(parts) > 2 else 0
        if len(kmer) != k:
            continue
        raw[kmer] = (count, rc_count)
    return raw


def parse_kmc_b_output_and_analyze(
    path: PathLike,
    k: int,
    longest_stretch_map: Optional[Mapping[str, int]] = None,
) -> list[StrandBiasAnalysis]:
    """Analyse strand bias from KMC output lines of ``kmer count [rc_count]``.

    Counts of a k-mer and of its reverse complement are combined: the forward
    total is the k-mer's count plus the complement's rc count, and the reverse
    total is the k-mer's rc count plus the complement's count.
    """
    raw = _read_kmc_b_counts(path, k)
    canonical_counts: dict[str, KmerPair] = {}
    seen: set[str] = set()
    for kmer, (fwd1, rc1) in raw.items():
        rc = reverse_complement(kmer)
        canonical = kmer if kmer < rc else rc
        if canonical in seen:
            continue
        seen.add(canonical)
        fwd2, rc2 = raw.get(rc, (0, 0))
        if not passes_filters(canonical):
            continue
        canonical_counts[canonical] = KmerPair(forward=fwd1 + rc2, rc=rc1 + fwd2)
    return analyze_strand_bias(canonical_counts, longest_stretch_map)
"""K-mer counting, filtering and motif helpers for telomere discovery."""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from telox.fasta import iter_fastx

PathLike = Union[str, Path]

TAIL_LENGTH = 5000
MAX_K = 32
GC_THRESHOLD = 0.28
FASTA_LINE_WIDTH = 60

_RC_MAP = {
    "A": "T", "a": "T",
    "T": "A", "t": "A",
    "C": "G", "c": "G",
    "G": "C", "g": "C",
    "N": "N", "n": "N",
}

# Case-preserving complement that also handles IUPAC ambiguity codes;
# characters not listed are left as they are.
_IUPAC_COMPLEMENT = str.maketrans(
    "ACGTRYKMSWBVDHNacgtrykmswbvdhn",
    "TGCAYRMKSWVBHDNtgcayrmkswvbhdn",
)

_ASCII_WHITESPACE = frozenset(" \t\n\r\x0c")


@dataclass
class KmerPair:
    """Occurrences of a canonical k-mer on the forward and reverse strands."""

    forward: int = 0
    rc: int = 0

    @property
    def total(self) -> int:
        return self.forward + self.rc


def reverse_complement(seq: str) -> str:
    """Reverse complement of a DNA sequence; unknown bases become N."""
    return "".join(_RC_MAP.get(base, "N") for base in reversed(seq))


def _iupac_reverse_complement(seq: str) -> str:
    return seq[::-1].translate(_IUPAC_COMPLEMENT)


def is_homopolymer(seq: str) -> bool:
    """True if the sequence is non-empty and made of a single repeated character."""
    return bool(seq) and all(c == seq[0] for c in seq)


def is_dinucleotide_repeat(seq: str) -> bool:
    """True for even-length sequences of at least 4 made of one repeated pair of distinct bases."""
    if len(seq) < 4 or len(seq) % 2:
        return False
    first, second = seq[0], seq[1]
    if first == second:
        return False
    return seq[0::2] == first * (len(seq) // 2) and seq[1::2] == second * (len(seq) // 2)


def _fraction(seq: str, letters: str) -> float:
    if not seq:
        return math.nan
    return sum(1 for c in seq if c in letters) / len(seq)


def g_content(seq: str) -> float:
    """Fraction of G (either case) in the sequence."""
    return _fraction(seq, "Gg")


def c_content(seq: str) -> float:
    """Fraction of C (either case) in the sequence."""
    return _fraction(seq, "Cc")


def _passes(forward: str, rc: str) -> bool:
    if "N" in forward or "N" in rc:
        return False
    if is_homopolymer(forward) or is_dinucleotide_repeat(forward):
        return False
    if any(c in _ASCII_WHITESPACE for c in forward) or any(c in _ASCII_WHITESPACE for c in rc):
        return False
    return any(
        content > GC_THRESHOLD
        for content in (g_content(forward), c_content(forward), g_content(rc), c_content(rc))
    )


def passes_filters(kmer: str) -> bool:
    """Apply the biological filters used for telomere candidate k-mers.

    Rejects k-mers containing N, homopolymers, dinucleotide repeats and
    whitespace, and keeps only those with G or C content above 0.28 on
    either strand.
    """
    return _passes(kmer, reverse_complement(kmer))


def _check_k(k: int) -> None:
    if k <= 0:
        raise ValueError("k must be greater than 0")
    if k > MAX_K:
        raise ValueError(f"k must be <= {MAX_K}")


def _windows(seq: str, k: int) -> Iterator[str]:
    return (seq[start:start + k] for start in range(len(seq) - k + 1))


def _count_tail(
    seq: str,
    k: int,
    complement: Callable[[str], str],
    counts: dict[str, KmerPair],
) -> None:
    tail = seq[max(len(seq) - TAIL_LENGTH, 0):]
    for forward in _windows(tail, k):
        rc = complement(forward)
        if not _passes(forward, rc):
            continue
        if forward == rc:
            pair = counts.setdefault(forward, KmerPair())
            pair.forward += 1
            pair.rc += 1
        elif forward < rc:
            counts.setdefault(forward, KmerPair()).forward += 1
        else:
            counts.setdefault(rc, KmerPair()).rc += 1


def _ascii_keys(counts: dict[str, KmerPair]) -> dict[str, KmerPair]:
    return {kmer: pair for kmer, pair in counts.items() if kmer.isascii()}


def count_kmers_in_fasta(fasta_path: PathLike, k: int) -> dict[str, KmerPair]:
    """Count canonical k-mers in the last 5000 bp of every record of a FASTA/FASTQ file."""
    _check_k(k)
    counts: dict[str, KmerPair] = {}
    for record in iter_fastx(fasta_path):
        _count_tail(record.seq, k, _iupac_reverse_complement, counts)
    return _ascii_keys(counts)


def count_kmers_last_5000bp_parallel(fasta_path: PathLike, k: int) -> dict[str, KmerPair]:
    """Count canonical k-mers in the last 5000 bp of each scaffold, merging per-scaffold tallies."""
    _check_k(k)
    sequences = [record.seq for record in iter_fastx(fasta_path)]
    merged: dict[str, KmerPair] = {}
    for seq in sequences:
        local: dict[str, KmerPair] = {}
        _count_tail(seq, k, reverse_complement, local)
        for kmer, pair in local.items():
            target = merged.setdefault(kmer, KmerPair())
            target.forward += pair.forward
            target.rc += pair.rc
    return _ascii_keys(merged)


def longest_continuous_stretch_for_kmers(sequence: str, kmers: Sequence[str]) -> dict[str, int]:
    """Longest run of consecutive, non-overlapping copies of each k-mer in either orientation.

    All k-mers are assumed to share the length of the first one.
    """
    if not kmers or not sequence:
        return {}
    k = len(kmers[0])
    if k == 0 or k > len(sequence):
        return {kmer: 0 for kmer in kmers}

    forms: dict[str, str] = {}
    best: dict[str, int] = {}
    for kmer in kmers:
        forms[kmer] = kmer
        forms[reverse_complement(kmer)] = kmer
        best[kmer] = 0

    pos = 0
    last: str | None = None
    run = 0
    while pos + k <= len(sequence):
        canonical = forms.get(sequence[pos:pos + k])
        if canonical is None:
            last = None
            run = 0
            pos += 1
            continue
        run = run + 1 if canonical == last else 1
        last = canonical
        best[canonical] = max(best[canonical], run)
        pos += k
    return best


def min_rotation(s: str) -> str:
    """Lexicographically smallest rotation of a string."""
    doubled = s * 2
    return min((doubled[i:i + len(s)] for i in range(len(s))), default=s)


def consolidate_rotational_kmers(kmers: Iterable[str]) -> list[str]:
    """Replace each k-mer by its smallest rotation, dropping repeats and keeping first-seen order."""
    return list(dict.fromkeys(min_rotation(kmer) for kmer in kmers))


def extract_last_n_bp_to_fasta(input_fasta: PathLike, output_fasta: PathLike, n: int) -> None:
    """Write the last ``n`` bases of every record to a FASTA file with 60-column lines."""
    records = iter_fastx(input_fasta)
    with open(output_fasta, "w", encoding="latin-1", newline="\n") as out:
        for record in records:
            tail = record.seq[max(len(record.seq) - n, 0):]
            out.write(f">{record.name}\n")
            for start in range(0, len(tail), FASTA_LINE_WIDTH):
                out.write(tail[start:start + FASTA_LINE_WIDTH] + "\n")
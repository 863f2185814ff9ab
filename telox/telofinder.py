"""Detection of telomeric motif runs at the ends of assembled sequences."""

from __future__ import annotations

import sys
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import IO, Optional, Union

from telox.fasta import read_fasta

PathLike = Union[str, Path]

TELO_PENALTY = 1
TELO_MAX_DROP = 2000
TELO_MIN_SCORE = 300

TELO_MOTIF_DB = (
    "AAAATTGTCCGTCC",
    "AAACCACCCT",
    "AAACCC",
    "AAACCCC",
    "AAACCCT",
    "AAAGAACCT",
    "AAATGTGGAGG",
    "AACAGACCCG",
    "AACCATCCCT",
    "AACCC",
    "AACCCAGACCC",
    "AACCCAGACCT",
    "AACCCAGACGC",
    "AACCCCAACCT",
    "AACCCGAACCT",
    "AACCCT",
    "AACCCTG",
    "AACCCTGACGC",
    "AACCT",
    "AAGGAC",
    "ACCCAG",
    "ACCTG",
    "ACGGCAGCG",
)

# Nucleotide codes 1..4 for A, C, G, T in either case; anything else is not a base.
_NT4 = {"A": 1, "C": 2, "G": 3, "T": 4, "a": 1, "c": 2, "g": 3, "t": 4}


def check_motif(motif: str) -> bool:
    """True if every character of the motif is A, C, G or T (either case)."""
    return all(c in _NT4 for c in motif)


def list_telo_motifs(out: IO[str]) -> None:
    """Write the built-in motif database as a numbered list."""
    for number, motif in enumerate(TELO_MOTIF_DB, start=1):
        out.write(f"[{number:2}] {motif}\n")


def motif_table(motif: str) -> set[int]:
    """2-bit encodings of every rotation of a motif."""
    if not check_motif(motif):
        raise ValueError(f"invalid motif characters in {motif!r}")
    table: set[int] = set()
    for shift in range(len(motif)):
        value = 0
        for base in motif[shift:] + motif[:shift]:
            value = (value << 2) | (_NT4[base] - 1)
        table.add(value)
    return table


def _scan(
    codes: Iterable[Optional[int]],
    mtab: set[int],
    mlen: int,
    penalty: int,
    max_drop: int,
) -> tuple[int, int]:
    """Score motif hits along a stream of base codes; return (best score, its index)."""
    mask = (1 << (2 * mlen)) - 1
    score = max_score = 0
    max_i = -1
    x = 0
    run = 0
    for i, code in enumerate(codes):
        if code is None:
            x = 0
            run = 0
            hit = False
        else:
            x = ((x << 2) | code) & mask
            run += 1
            hit = run >= mlen and x in mtab
        if i >= mlen:
            score += 1 if hit else -penalty
        if score > max_score:
            max_score, max_i = score, i
        elif max_score - score > max_drop:
            break
    return max_score, max_i


def telo_finder_core(
    sequence: str,
    mtab: set[int],
    mlen: int,
    penalty: int,
    max_drop: int,
    min_score: int,
) -> tuple[int, int]:
    """Find telomeric runs at both ends of a sequence.

    Returns ``(five_prime_end, three_prime_length)``: the position up to which
    the 5' end is telomeric and the length value of the 3' end, each 0 when no
    run scores at least ``min_score``. The 3' end is scanned only over the part
    not already claimed by the 5' end.
    """
    forward = (_NT4[c] - 1 if c in _NT4 else None for c in sequence)
    max_score, max_i = _scan(forward, mtab, mlen, penalty, max_drop)
    five_prime = max_i + 1 if max_score >= min_score else 0

    remaining = sequence[five_prime:]
    backward = (4 - _NT4[c] if c in _NT4 else None for c in reversed(remaining))
    max_score, max_i = _scan(backward, mtab, mlen, penalty, max_drop)
    three_prime = len(sequence) - max_i if max_score >= min_score else 0

    return five_prime, three_prime


def telo_finder(
    fasta_path: PathLike,
    custom_motif: Optional[str] = None,
    output: Optional[IO[str]] = None,
    motif_list: Optional[Sequence[str]] = None,
) -> list[tuple[bool, bool]]:
    """Search every sequence of a FASTA file for telomeric motif runs.

    Motifs come from ``motif_list`` if given, else ``custom_motif``, else the
    built-in database. Hits are written to ``output`` as BED-like lines, or
    reported on stderr when no output is given. Returns, per sequence, whether
    the 5' and 3' ends were found telomeric.
    """
    records = read_fasta(fasta_path)
    ends = [[False, False] for _ in records]

    if motif_list is not None:
        motifs = list(motif_list)
    elif custom_motif is not None:
        if not check_motif(custom_motif):
            raise ValueError("Invalid motif characters")
        motifs = [custom_motif]
    else:
        motifs = list(TELO_MOTIF_DB)

    for motif in motifs:
        mtab = motif_table(motif)
        for flags, record in zip(ends, records):
            five_prime, three_prime = telo_finder_core(
                record.seq, mtab, len(motif), TELO_PENALTY, TELO_MAX_DROP, TELO_MIN_SCORE
            )
            if five_prime > 0:
                flags[0] = True
                if output is not None:
                    output.write(f"{record.name}\t0\t{five_prime}\t{motif}\n")
                else:
                    print(
                        f"[INFO] found telo motif {motif} in sequence {record.name} "
                        f"5'-end up to position {five_prime}",
                        file=sys.stderr,
                    )
            if three_prime > 0:
                flags[1] = True
                start = len(record.seq) - three_prime
                if output is not None:
                    output.write(f"{record.name}\t{start}\t{len(record.seq)}\t{motif}\n")
                else:
                    print(
                        f"[INFO] found telo motif {motif} in sequence {record.name} "
                        f"3'-end from position {start}",
                        file=sys.stderr,
                    )

    return [(five, three) for five, three in ends]
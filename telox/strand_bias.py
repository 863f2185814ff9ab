"""Strand-bias analysis of canonical k-mer counts and the TSV files built from it."""

from __future__ import annotations

import csv
import math
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from telox.kmers import KmerPair, consolidate_rotational_kmers

PathLike = Union[str, Path]

FORWARD = "forward"
REVERSE = "reverse"
BALANCED = "balanced"
STRONG = "strong"
WEAK = "weak"

BIAS_TABLE_HEADER = "Kmer\tForward\tRC\tTotal\tBiasRatio\tDirection\tSignificance"
RANK_TABLE_HEADER = BIAS_TABLE_HEADER + "\tLongestStretch"

_INFINITE_SORT_KEY = 1000.0
_U32_MAX = 2**32 - 1
_USIZE_MAX = 2**64 - 1
_UINT_RE = re.compile(r"\+?[0-9]+")


@dataclass
class StrandBiasAnalysis:
    """Strand-bias summary for one canonical k-mer."""

    kmer: str
    forward_count: int
    rc_count: int
    total_count: int
    bias_ratio: float
    bias_direction: str
    significance: str
    longest_stretch: int = 0


def _parse_uint(text: str, limit: int) -> int:
    """Parse an unsigned integer, returning 0 for anything malformed or out of range."""
    if not _UINT_RE.fullmatch(text):
        return 0
    value = int(text)
    return value if value <= limit else 0


def _read_lines(path: PathLike) -> list[str]:
    """Lines of a UTF-8 text file, split on LF with a trailing CR removed."""
    text = Path(path).read_text(encoding="utf-8")
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line.removesuffix("\r") for line in lines]


def _direction(ratio: float) -> str:
    if ratio > 2.0:
        return FORWARD
    if ratio < 0.5:
        return REVERSE
    return BALANCED


def _significance(ratio: float) -> str:
    return STRONG if ratio > 1.5 or ratio < 0.66 else WEAK


def _sort_key(analysis: StrandBiasAnalysis) -> float:
    ratio = analysis.bias_ratio
    return _INFINITE_SORT_KEY if ratio == math.inf else ratio


def analyze_strand_bias(
    counts: Mapping[str, KmerPair],
    longest_stretch_map: Optional[Mapping[str, int]] = None,
) -> list[StrandBiasAnalysis]:
    """Compute forward/reverse bias for each k-mer, most forward-biased first."""
    analyses = []
    for kmer, pair in counts.items():
        ratio = pair.forward / pair.rc if pair.rc > 0 else math.inf
        stretch = longest_stretch_map.get(kmer, 0) if longest_stretch_map is not None else 0
        analyses.append(
            StrandBiasAnalysis(
                kmer=kmer,
                forward_count=pair.forward,
                rc_count=pair.rc,
                total_count=pair.forward + pair.rc,
                bias_ratio=ratio,
                bias_direction=_direction(ratio),
                significance=_significance(ratio),
                longest_stretch=stretch,
            )
        )
    analyses.sort(key=_sort_key, reverse=True)
    return analyses


def print_kmer_table(counts: Mapping[str, KmerPair], top_n: int) -> None:
    """Print the ``top_n`` k-mers by total count."""
    ranked = sorted(counts.items(), key=lambda item: item[1].forward + item[1].rc, reverse=True)
    print(f"\n{'Rank':<10} {'K-mer':<15} {'Total Count':<15} {'Forward':<15} {'RC':<15}")
    print("-" * 70)
    for rank, (kmer, pair) in enumerate(ranked[:top_n], start=1):
        total = pair.forward + pair.rc
        print(f"{rank:<10} {kmer:<15} {total:<15} {pair.forward:<15} {pair.rc:<15}")


def print_strand_bias_table(analyses: Sequence[StrandBiasAnalysis], top_n: int) -> None:
    """Print the first ``top_n`` strand-bias analyses as a table."""
    print(
        f"\n{'K-mer':<15} {'Forward':<10} {'RC':<10} {'Total':<10} "
        f"{'Bias Ratio':<12} {'Direction':<10} {'Significance':<10}"
    )
    print("-" * 85)
    for analysis in analyses[:top_n]:
        ratio = "∞" if analysis.bias_ratio == math.inf else f"{analysis.bias_ratio:.2f}"
        print(
            f"{analysis.kmer:<15} {analysis.forward_count:<10} {analysis.rc_count:<10} "
            f"{analysis.total_count:<10} {ratio:<12} {analysis.bias_direction:<10} "
            f"{analysis.significance:<10}"
        )


def save_strand_bias_table(analyses: Iterable[StrandBiasAnalysis], output_path: PathLike) -> None:
    """Write analyses to a tab-separated file without the stretch column."""
    lines = [BIAS_TABLE_HEADER]
    for analysis in analyses:
        ratio = "inf" if analysis.bias_ratio == math.inf else f"{analysis.bias_ratio:.3f}"
        lines.append(
            f"{analysis.kmer}\t{analysis.forward_count}\t{analysis.rc_count}\t"
            f"{analysis.total_count}\t{ratio}\t{analysis.bias_direction}\t{analysis.significance}"
        )
    with open(output_path, "w", encoding="utf-8", newline="") as out:
        out.write("\n".join(lines) + "\n")


def filter_by_strand_bias(
    analyses: Iterable[StrandBiasAnalysis], min_bias_ratio: float
) -> list[StrandBiasAnalysis]:
    """Keep analyses biased by at least ``min_bias_ratio`` in either direction.

    K-mers seen only on the forward strand are always kept.
    """
    if min_bias_ratio:
        inverse = 1.0 / min_bias_ratio
    else:
        inverse = math.copysign(math.inf, min_bias_ratio)
    return [
        analysis
        for analysis in analyses
        if analysis.bias_ratio == math.inf
        or analysis.bias_ratio >= min_bias_ratio
        or analysis.bias_ratio <= inverse
    ]


def get_strand_bias_summary(analyses: Sequence[StrandBiasAnalysis]) -> tuple[int, int, int, int]:
    """Return (total, forward-biased, reverse-biased, balanced) counts."""
    directions = [analysis.bias_direction for analysis in analyses]
    return (
        len(directions),
        directions.count(FORWARD),
        directions.count(REVERSE),
        directions.count(BALANCED),
    )


def filter_strand_bias_tsvs(input_files: Iterable[PathLike], output_file: PathLike) -> None:
    """Merge strand-bias TSVs, keeping rows with LongestStretch >= 2 that are not weak.

    The header of the first file is written once.
    """
    with open(output_file, "w", encoding="utf-8", newline="") as out:
        writer = csv.writer(out, delimiter="\t", lineterminator="\n")
        header_written = False
        for input_path in input_files:
            with open(input_path, encoding="utf-8", newline="") as handle:
                rows = (row for row in csv.reader(handle, delimiter="\t") if row)
                headers = next(rows, [])
                if not header_written:
                    writer.writerow(headers)
                    header_written = True
                for row in rows:
                    if len(row) != len(headers):
                        raise ValueError(
                            f"{input_path}: record has {len(row)} fields, "
                            f"header has {len(headers)}"
                        )
                    if "LongestStretch" not in headers:
                        raise ValueError(f"No LongestStretch column in {input_path}")
                    if "Significance" not in headers:
                        raise ValueError(f"No Significance column in {input_path}")
                    stretch = _parse_uint(row[headers.index("LongestStretch")], _USIZE_MAX)
                    significance = row[headers.index("Significance")].strip().lower()
                    if stretch < 2 or significance == WEAK:
                        continue
                    writer.writerow(row)


def filter_bias_analyses(analyses: Iterable[StrandBiasAnalysis]) -> list[StrandBiasAnalysis]:
    """Keep analyses with a stretch of at least 2 whose significance is not weak."""
    return [a for a in analyses if a.longest_stretch >= 2 and a.significance != WEAK]


@dataclass
class _RankedKmer:
    kmer: str
    forward: int
    rc: int
    total: int
    bias_ratio: str
    direction: str
    significance: str
    longest_stretch: int

    @classmethod
    def from_columns(cls, cols: list[str]) -> _RankedKmer:
        return cls(
            kmer=cols[0],
            forward=_parse_uint(cols[1], _U32_MAX),
            rc=_parse_uint(cols[2], _U32_MAX),
            total=_parse_uint(cols[3], _U32_MAX),
            bias_ratio=cols[4],
            direction=cols[5],
            significance=cols[6],
            longest_stretch=_parse_uint(cols[7], _USIZE_MAX),
        )

    def to_line(self) -> str:
        return "\t".join(
            str(value)
            for value in (
                self.kmer, self.forward, self.rc, self.total, self.bias_ratio,
                self.direction, self.significance, self.longest_stretch,
            )
        )


def _data_lines(path: PathLike) -> Iterable[str]:
    """Lines after the header that are not blank."""
    return (line for line in _read_lines(path)[1:] if line.strip())


def gather_and_rank_filtered_results(filtered_files: Iterable[PathLike], output_file: PathLike) -> None:
    """Combine filtered TSVs and rank rows by longest stretch, then by total count."""
    ranked: list[_RankedKmer] = []
    for path in filtered_files:
        for line in _data_lines(path):
            cols = line.split("\t")
            if len(cols) >= 8:
                ranked.append(_RankedKmer.from_columns(cols))
    ranked.sort(key=lambda row: (row.longest_stretch, row.total), reverse=True)
    with open(output_file, "w", encoding="utf-8", newline="") as out:
        out.write(RANK_TABLE_HEADER + "\n")
        for row in ranked:
            out.write(row.to_line() + "\n")


def consolidate_ranked_motifs_by_rotation(rank_tsv: PathLike) -> list[str]:
    """Unique motifs of a rank table, each reduced to its smallest rotation, in rank order."""
    motifs = [line.split("\t")[0] for line in _data_lines(rank_tsv)]
    return consolidate_rotational_kmers(motifs)
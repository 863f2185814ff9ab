"""Command-line pipeline for telomere motif discovery."""

from __future__ import annotations

import re
import sys
from collections import Counter
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Optional, Union

from telox.fasta import read_fasta
from telox.kmc import analyze_kmc_kmers, read_kmc_counts, run_kmc, run_kmc_dump
from telox.kmers import (
    TAIL_LENGTH,
    count_kmers_last_5000bp_parallel,
    extract_last_n_bp_to_fasta,
    longest_continuous_stretch_for_kmers,
)
from telox.strand_bias import (
    RANK_TABLE_HEADER,
    WEAK,
    StrandBiasAnalysis,
    analyze_strand_bias,
    consolidate_ranked_motifs_by_rotation,
)
from telox.telofinder import telo_finder

PathLike = Union[str, Path]

CANDIDATE_FILE = "telomere_candidate.txt"
SUMMARY_FILE = "telomere_motif_summary.txt"
INITIAL_ANNO_FILE = "initial_anno.txt"
FINAL_ANNO_FILE = "anno.txt"
RANK_FILE = "rank.tsv"
CANONICAL_KMERS_FILE = "canonical_kmers.tsv"
K_RANGE = range(5, 13)
TOP_MOTIFS = 10

_UINT_RE = re.compile(r"\+?[0-9]+")
_PROG = "telox"


def _lines(path: PathLike) -> Iterator[str]:
    with open(path, encoding="utf-8", newline="") as handle:
        for raw in handle:
            yield raw.removesuffix("\n").removesuffix("\r")


def _write_text(path: PathLike, text: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as out:
        out.write(text)


def analyze_annotation_file(anno_file: PathLike) -> list[tuple[str, int]]:
    """Count motifs in the fourth column of an annotation file, most frequent first."""
    counts: Counter[str] = Counter()
    for line in _lines(anno_file):
        if not line.strip():
            continue
        parts = line.split("\t")
        if len(parts) >= 4:
            motif = parts[3].strip()
            if motif:
                counts[motif] += 1
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)


def _frequency_header() -> list[str]:
    return [f"{'Motif':<20} {'Frequency':<10} {'Percentage':<10}", "-" * 40]


def _frequency_row(motif: str, count: int, total: int) -> str:
    percentage = count / total * 100.0
    return f"{motif:<20} {count:<10} {percentage:<10.1f}%"


def report_most_frequent_motifs(initial_anno_file: PathLike, final_anno_file: PathLike) -> None:
    """Report motif frequencies and write the candidate and summary files."""
    print("\n=== TELOMERE MOTIF FREQUENCY ANALYSIS ===")

    if Path(initial_anno_file).exists():
        anno_file, source = initial_anno_file, "predefined database"
    elif Path(final_anno_file).exists():
        anno_file, source = final_anno_file, "discovered database"
    else:
        print("No annotation files found. No telomere motifs detected.")
        _write_text(CANDIDATE_FILE, "No telomere motifs detected in the genome.\n")
        return

    print(f"Analyzing annotation file: {anno_file} (from {source})")
    frequencies = analyze_annotation_file(anno_file)

    if not frequencies:
        print("No telomere motifs found in the annotation file.")
        _write_text(CANDIDATE_FILE, "No telomere motifs found in the annotation file.\n")
        return

    total = sum(count for _, count in frequencies)
    top_rows = [_frequency_row(motif, count, total) for motif, count in frequencies[:TOP_MOTIFS]]

    print("\nMost frequent telomere motifs:")
    for line in _frequency_header() + top_rows:
        print(line)
    if len(frequencies) > TOP_MOTIFS:
        print(f"... and {len(frequencies) - TOP_MOTIFS} more motifs")

    top_motif, top_count = frequencies[0]
    top_percentage = top_count / total * 100.0
    print("\n=== PRIMARY TELOMERE MOTIF ===")
    print(f"Most frequent motif: {top_motif}")
    print(f"Occurrences: {top_count} ({top_percentage:.1f}% of all detected motifs)")
    print(f"Source: {source}")

    candidate = [
        "PRIMARY TELOMERE MOTIF CANDIDATE",
        "=================================",
        f"Motif: {top_motif}",
        f"Frequency: {top_count} occurrences",
        f"Percentage: {top_percentage:.1f}% of all detected motifs",
        f"Source: {source}",
        f"Total motif occurrences: {total}",
        f"Unique motifs detected: {len(frequencies)}",
        "",
        "Top 10 most frequent motifs:",
        *_frequency_header(),
        *top_rows,
    ]
    _write_text(CANDIDATE_FILE, "\n".join(candidate) + "\n")
    print(f"Primary telomere motif written to: {CANDIDATE_FILE}")

    summary = [
        "TELOMERE MOTIF FREQUENCY SUMMARY",
        "=================================",
        f"Source: {source}",
        f"Annotation file: {anno_file}",
        f"Total motif occurrences: {total}",
        f"Unique motifs: {len(frequencies)}",
        "",
        *_frequency_header(),
        *(_frequency_row(motif, count, total) for motif, count in frequencies),
    ]
    _write_text(SUMMARY_FILE, "\n".join(summary) + "\n")
    print(f"Detailed summary saved to: {SUMMARY_FILE}")


def _parse_count(text: str, what: str) -> int:
    if not _UINT_RE.fullmatch(text):
        raise ValueError(f"{what} must be an integer")
    return int(text)


def _usage() -> None:
    for line in (
        f"Usage: {_PROG} <fasta_file> [extract_lastN <N> <output_fasta>]",
        f"       {_PROG} kmc <input_fasta> <k> <db_prefix> <output_txt>",
        f"Example: {_PROG} genome.fasta",
        f"         {_PROG} genome.fasta extract_lastN 5000 last5000.fasta",
        f"         {_PROG} kmc last5000.fasta 7 kmc_db kmc_dump.txt",
    ):
        print(line, file=sys.stderr)


def _kmc_command(input_fasta: str, k_text: str, db_prefix: str, output_txt: str) -> int:
    k = _parse_count(k_text, "k")
    run_kmc(input_fasta, k, db_prefix)
    run_kmc_dump(db_prefix, output_txt)
    analyses = analyze_kmc_kmers(read_kmc_counts(output_txt), k)
    lines = ["Kmer\tForward\tRC\tTotal"]
    lines.extend(f"{a.kmer}\t{a.forward_count}\t{a.rc_count}\t{a.total_count}" for a in analyses)
    _write_text(CANONICAL_KMERS_FILE, "\n".join(lines) + "\n")
    print(
        f"Saved canonicalized k-mer table to {CANONICAL_KMERS_FILE} ({len(analyses)} k-mers)"
    )
    return 0


def _rank_line(analysis: StrandBiasAnalysis) -> str:
    ratio = "inf" if analysis.bias_ratio == float("inf") else f"{analysis.bias_ratio:.3f}"
    return (
        f"{analysis.kmer}\t{analysis.forward_count}\t{analysis.rc_count}\t"
        f"{analysis.total_count}\t{ratio}\t{analysis.bias_direction}\t"
        f"{analysis.significance}\t{analysis.longest_stretch}"
    )


def _longest_stretches(fasta_path: str, kmers: list[str]) -> dict[str, int]:
    longest: dict[str, int] = {}
    for record in read_fasta(fasta_path):
        region = record.seq[-TAIL_LENGTH:]
        for kmer, stretch in longest_continuous_stretch_for_kmers(region, kmers).items():
            longest[kmer] = max(longest.get(kmer, 0), stretch)
    return longest


def _discover(fasta_path: str) -> int:
    print("Step 1: Running telo_finder with predefined TELO_MOTIF_DB...")
    with open(INITIAL_ANNO_FILE, "w", encoding="utf-8", newline="") as anno:
        initial = telo_finder(fasta_path, None, anno, None)
    if any(five or three for five, three in initial):
        print(
            "Found telomere motifs with predefined database. "
            f"Results written to {INITIAL_ANNO_FILE}"
        )
        print("Analysis complete.")
        return 0

    print("No telomere motifs found with predefined database. Proceeding to k-mer analysis...")
    print("Step 2: Running k-mer analysis to discover potential telomere motifs...")

    ranked: list[StrandBiasAnalysis] = []
    for k in K_RANGE:
        print(f"Processing {k}-mers...")
        try:
            counts = count_kmers_last_5000bp_parallel(fasta_path, k)
        except (OSError, ValueError) as exc:
            raise RuntimeError(
                f"Failed to count {k}-mers in last 5000bp of {fasta_path}"
            ) from exc
        longest = _longest_stretches(fasta_path, list(counts))
        analyses = analyze_strand_bias(counts, longest)

        output = f"strand_bias_{k}mer.tsv"
        lines = [RANK_TABLE_HEADER, *(_rank_line(a) for a in analyses)]
        _write_text(output, "\n".join(lines) + "\n")
        print(f"Saved strand bias results to {output}")

        ranked.extend(a for a in analyses if a.longest_stretch >= 2 and a.significance != WEAK)

    ranked.sort(key=lambda a: (a.longest_stretch, a.total_count), reverse=True)
    lines = [RANK_TABLE_HEADER, *(_rank_line(a) for a in ranked)]
    _write_text(RANK_FILE, "\n".join(lines) + "\n")
    print(f"Ranked k-mers written to {RANK_FILE}")

    print("Step 3: Generating new telomere motif database from k-mer analysis...")
    motifs = consolidate_ranked_motifs_by_rotation(RANK_FILE)
    print(f"Running telo_finder with {len(motifs)} discovered motifs...")
    with open(FINAL_ANNO_FILE, "w", encoding="utf-8", newline="") as anno:
        final = telo_finder(fasta_path, None, anno, motifs)
    if any(five or three for five, three in final):
        print(
            "Found telomere motifs with discovered database. "
            f"Results written to {FINAL_ANNO_FILE}"
        )
    else:
        print("No telomere motifs found even with discovered database.")
    print("Analysis complete.")

    report_most_frequent_motifs(INITIAL_ANNO_FILE, FINAL_ANNO_FILE)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the telomere discovery pipeline; returns the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        _usage()
        return 1

    if len(args) == 5 and args[0] == "kmc":
        return _kmc_command(*args[1:])

    fasta_path = args[0]
    if len(args) == 4 and args[1] == "extract_lastN":
        n = _parse_count(args[2], "N")
        output_fasta = args[3]
        extract_last_n_bp_to_fasta(fasta_path, output_fasta, n)
        print(f"Extracted last {n} bp of each scaffold to {output_fasta}")
        return 0

    return _discover(fasta_path)


if __name__ == "__main__":
    sys.exit(main())
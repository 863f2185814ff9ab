# telox

Telomere motif extraction for genome assemblies.

`telox` scans both ends of every sequence in a FASTA file for telomeric
repeats. It first tries a built-in database of known telomere motifs. If none
are found, it counts k-mers (k = 5 to 12) in the last 5000 bp of each
scaffold, ranks them by strand bias and by their longest run of back-to-back
copies, collapses rotations of the same repeat, and searches again with the
discovered motifs.

## Installation

```
pip install .
```

Python 3.10 or later is required. The package has no runtime dependencies.

## Command line

Run the full analysis on an assembly:

```
telox genome.fasta
```

All output goes into the current directory:

- `initial_anno.txt`: hits from the built-in motif database, one line per
  telomeric end: `name<TAB>start<TAB>end<TAB>motif`. If any hit is found,
  the run stops here.
- Otherwise: `strand_bias_<k>mer.tsv` for each k from 5 to 12 (columns
  `Kmer`, `Forward`, `RC`, `Total`, `BiasRatio`, `Direction`,
  `Significance`, `LongestStretch`), `rank.tsv` with the k-mers whose
  longest stretch is at least 2 and whose significance is not `weak`, sorted
  by longest stretch and then total count, and `anno.txt` with hits from the
  discovered motifs.
- After the discovery step a motif frequency report is printed and written to
  `telomere_candidate.txt`. The report reads `initial_anno.txt` if it exists,
  otherwise `anno.txt`; since the first step always creates
  `initial_anno.txt`, the report in a full run is made from that file. When
  the chosen file holds motifs, `telomere_motif_summary.txt` lists all of
  them with their frequencies.

Extract the last N bp of each scaffold to a new FASTA file with 60-column
sequence lines:

```
telox genome.fasta extract_lastN 5000 last5000.fasta
```

Count k-mers with the external KMC tools (`kmc` and `kmc_dump` must be on
`PATH`) and write a canonical k-mer table (`Kmer`, `Forward`, `RC`, `Total`)
to `canonical_kmers.tsv`:

```
telox kmc last5000.fasta 7 kmc_db kmc_dump.txt
```

Run without arguments, `telox` prints its usage and exits with status 1.

## Library use

```python
from telox.telofinder import telo_finder
from telox.kmers import count_kmers_last_5000bp_parallel
from telox.strand_bias import analyze_strand_bias

ends = telo_finder("genome.fasta")          # [(five_prime_found, three_prime_found), ...]
counts = count_kmers_last_5000bp_parallel("genome.fasta", 6)
for analysis in analyze_strand_bias(counts)[:10]:
    print(analysis.kmer, analysis.forward_count, analysis.rc_count)
```

Modules:

- `telox.fasta`: `FastaRecord`; `read_fasta` (plain FASTA, names trimmed,
  sequences upper-cased) and `iter_fastx` (FASTA or FASTQ, optionally
  gzip-compressed, sequences unmodified).
- `telox.kmers`: `KmerPair`, `reverse_complement`, the k-mer filters
  (`is_homopolymer`, `is_dinucleotide_repeat`, `g_content`, `c_content`,
  `passes_filters`), `count_kmers_in_fasta`,
  `count_kmers_last_5000bp_parallel`,
  `longest_continuous_stretch_for_kmers`, `min_rotation`,
  `consolidate_rotational_kmers` and `extract_last_n_bp_to_fasta`.
  k must be between 1 and 32; other values raise `ValueError`.
- `telox.strand_bias`: `StrandBiasAnalysis`, `analyze_strand_bias`,
  `print_kmer_table`, `print_strand_bias_table`, `save_strand_bias_table`,
  `filter_by_strand_bias`, `get_strand_bias_summary`,
  `filter_strand_bias_tsvs`, `filter_bias_analyses`,
  `gather_and_rank_filtered_results` and
  `consolidate_ranked_motifs_by_rotation`.
- `telox.kmc`: `run_kmc`, `run_kmc_dump`, `kmc_pipeline` (these start the
  external programs and raise `subprocess.CalledProcessError` when they
  fail), `read_kmc_counts`, `analyze_kmc_kmers` and
  `parse_kmc_b_output_and_analyze`.
- `telox.telofinder`: `TELO_MOTIF_DB`, `check_motif`, `list_telo_motifs`,
  `motif_table`, `telo_finder_core` and `telo_finder`.
- `telox.cli`: `analyze_annotation_file`, `report_most_frequent_motifs` and
  `main`, the `telox` command.

## What it does not do

- It does not count k-mers genome-wide by itself; the KMC commands need the
  external `kmc` and `kmc_dump` programs installed separately.
- `count_kmers_last_5000bp_parallel` processes scaffolds one after another in
  a single process.
- The command line has no options: a custom motif or motif list can only be
  given through `telo_finder` in library use, and the scoring thresholds are
  fixed (`TELO_PENALTY`, `TELO_MAX_DROP`, `TELO_MIN_SCORE`).

## Tests

```
pip install .[test]
pytest
```
import subprocess
from unittest import mock

import pytest

from telox.kmc import (
    analyze_kmc_kmers,
    kmc_pipeline,
    parse_kmc_b_output_and_analyze,
    read_kmc_counts,
    run_kmc,
    run_kmc_dump,
)
from telox.kmers import reverse_complement


def _ok(args, *_, **__):
    return subprocess.CompletedProcess(args, 0)


def _fail(args, *_, **__):
    return subprocess.CompletedProcess(args, 1)


def test_run_kmc_failure_raises():
    with mock.patch("telox.kmc.subprocess.run", side_effect=_fail):
        with pytest.raises(subprocess.CalledProcessError) as info:
            run_kmc("in.fa", 7, "db")
    assert info.value.returncode == 1


def test_run_kmc_dump_command_line_and_failure():
    with mock.patch("telox.kmc.subprocess.run", side_effect=_ok) as run:
        run_kmc_dump("db", "dump.txt")
    assert run.call_args.args[0] == ["kmc_dump", "db", "dump.txt"]
    with mock.patch("telox.kmc.subprocess.run", side_effect=_fail):
        with pytest.raises(subprocess.CalledProcessError):
            run_kmc_dump("db", "dump.txt")


def test_read_kmc_counts_skips_malformed(tmp_path):
    path = tmp_path / "dump.txt"
    path.write_text("AACCCT\t5\nbad\nGGGTTA x\nTTAGGG 7\r\n\nACGTAC +3\n", encoding="utf-8")
    assert read_kmc_counts(path) == [("AACCCT", 5), ("TTAGGG", 7), ("ACGTAC", 3)]


def test_read_kmc_counts_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_kmc_counts(tmp_path / "absent.txt")


def test_kmc_pipeline_reads_dump(tmp_path):
    dump = tmp_path / "dump.txt"

    def fake_run(args, *_, **__):
        if args[0] == "kmc_dump":
            dump.write_text("AACCCT\t9\n", encoding="utf-8")
        return subprocess.CompletedProcess(args, 0)

    with mock.patch("telox.kmc.subprocess.run", side_effect=fake_run) as run:
        result = kmc_pipeline("in.fa", 6, "db", dump)
    assert result == [("AACCCT", 9)]
    assert [call.args[0][0] for call in run.call_args_list] == ["kmc", "kmc_dump"]
    assert run.call_args_list[0].args[0] == [
        "kmc", "-k6", "-ci1", "-cs1000000", "-fm", "in.fa", "db", ".",
    ]


def test_analyze_kmc_kmers_folds_reverse_complement():
    rc = reverse_complement("AACCCT")
    analyses = analyze_kmc_kmers([("AACCCT", 10), (rc, 4)], 6)
    assert len(analyses) == 1
    only = analyses[0]
    assert only.kmer == "AACCCT"
    assert (only.forward_count, only.rc_count) == (10, 4)
    assert only.total_count == only.forward_count + only.rc_count
    assert only.bias_ratio == pytest.approx(10 / 4)
    assert only.bias_direction == "forward"
    assert only.longest_stretch == 0


def test_analyze_kmc_kmers_applies_filters_and_length():
    kmers = [
        ("AAAAAA", 5),     # homopolymer
        ("ACACAC", 5),     # dinucleotide repeat
        ("AACNCT", 5),     # contains N
        ("AATATT", 5),     # no G/C
        ("AACCC", 5),      # wrong length
    ]
    assert analyze_kmc_kmers(kmers, 6) == []


def test_analyze_kmc_kmers_sorted_by_bias():
    kmers = [("AACCCT", 1), ("AGGGTT", 8), ("ACCCTG", 6), ("AACCCG", 3)]
    analyses = analyze_kmc_kmers(kmers, 6)
    ratios = [min(a.bias_ratio, 1000.0) for a in analyses]
    assert ratios == sorted(ratios, reverse=True)
    assert {a.kmer for a in analyses} == {"AACCCT", "ACCCTG", "AACCCG"}


def test_parse_kmc_b_combines_pair(tmp_path):
    path = tmp_path / "kmc_b.txt"
    path.write_text("AACCCT 10 2\nAGGGTT 3 1\n", encoding="utf-8")
    analyses = parse_kmc_b_output_and_analyze(path, 6, None)
    assert len(analyses) == 1
    only = analyses[0]
    assert only.kmer == "AACCCT"
    assert only.forward_count == 10 + 1
    assert only.rc_count == 2 + 3
    assert only.total_count == only.forward_count + only.rc_count


def test_parse_kmc_b_missing_columns_and_stretch(tmp_path):
    path = tmp_path / "kmc_b.txt"
    path.write_text("AACCCT 10\nTTAGGG\nACCC 4 4\n", encoding="utf-8")
    analyses = parse_kmc_b_output_and_analyze(path, 6, {"AACCCT": 3})
    assert [a.kmer for a in analyses] == ["AACCCT"]
    only = analyses[0]
    assert (only.forward_count, only.rc_count) == (10, 0)
    assert only.bias_ratio == float("inf")
    assert only.longest_stretch == 3


def test_parse_kmc_b_filters_low_complexity(tmp_path):
    path = tmp_path / "kmc_b.txt"
    path.write_text("AAAAAA 5 5\nACACAC 5 5\nAATATT 5 5\n", encoding="utf-8")
    assert parse_kmc_b_output_and_analyze(path, 6, None) == []
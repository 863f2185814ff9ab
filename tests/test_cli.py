import subprocess
from pathlib import Path
from unittest import mock

import pytest

from telox.cli import analyze_annotation_file, main, report_most_frequent_motifs
from telox.strand_bias import RANK_TABLE_HEADER


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def write_anno(path, motifs):
    path.write_text("".join(f"chr{i}\t0\t100\t{m}\n" for i, m in enumerate(motifs)))
    return path


def test_analyze_annotation_file_counts_and_orders(tmp_path):
    anno = tmp_path / "anno.txt"
    anno.write_text(
        "chr1\t0\t10\tTTAGGG\n"
        "\n"
        "chr2\t0\t10\tAACCCT\n"
        "short\tline\n"
        "chr3\t5\t20\t AACCCT \n"
        "chr4\t0\t10\t\n"
    )
    assert analyze_annotation_file(anno) == [("AACCCT", 2), ("TTAGGG", 1)]


def test_analyze_annotation_file_empty(tmp_path):
    anno = tmp_path / "anno.txt"
    anno.write_text("")
    assert analyze_annotation_file(anno) == []


def test_report_without_files(workdir, capsys):
    assert report_most_frequent_motifs("initial_anno.txt", "anno.txt") is None
    assert "No annotation files found" in capsys.readouterr().out
    text = (workdir / "telomere_candidate.txt").read_text()
    assert text == "No telomere motifs detected in the genome.\n"


def test_report_with_empty_initial_file(workdir, capsys):
    (workdir / "initial_anno.txt").write_text("")
    assert report_most_frequent_motifs("initial_anno.txt", "anno.txt") is None
    assert "No telomere motifs found in the annotation file." in capsys.readouterr().out
    text = (workdir / "telomere_candidate.txt").read_text()
    assert text == "No telomere motifs found in the annotation file.\n"
    assert not (workdir / "telomere_motif_summary.txt").exists()


def test_report_writes_candidate_and_summary(workdir, capsys):
    write_anno(workdir / "initial_anno.txt", ["AACCCT", "TTAGGG", "AACCCT"])
    assert report_most_frequent_motifs("initial_anno.txt", "anno.txt") is None
    assert "Most frequent motif: AACCCT" in capsys.readouterr().out
    candidate = (workdir / "telomere_candidate.txt").read_text().splitlines()
    assert candidate[0] == "PRIMARY TELOMERE MOTIF CANDIDATE"
    assert "Motif: AACCCT" in candidate
    assert "Frequency: 2 occurrences" in candidate
    assert "Source: predefined database" in candidate
    assert "Total motif occurrences: 3" in candidate
    assert "Unique motifs detected: 2" in candidate
    summary = (workdir / "telomere_motif_summary.txt").read_text().splitlines()
    assert "Annotation file: initial_anno.txt" in summary
    assert "Unique motifs: 2" in summary


def test_report_falls_back_to_final_file(workdir, capsys):
    write_anno(workdir / "anno.txt", ["AACCCT"])
    assert report_most_frequent_motifs("initial_anno.txt", "anno.txt") is None
    assert "Source: discovered database" in capsys.readouterr().out
    candidate = (workdir / "telomere_candidate.txt").read_text().splitlines()
    assert "Source: discovered database" in candidate


def test_main_without_arguments(capsys):
    assert main([]) == 1
    assert "Usage" in capsys.readouterr().err


def test_main_extract_last_n(workdir):
    (workdir / "in.fa").write_text(">s1\nAAAACCCCGGGGTTTT\n")
    assert main(["in.fa", "extract_lastN", "4", "out.fa"]) == 0
    assert (workdir / "out.fa").read_text() == ">s1\nTTTT\n"


def test_main_extract_rejects_bad_n(workdir):
    (workdir / "in.fa").write_text(">s1\nACGT\n")
    with pytest.raises(ValueError, match="N must be an integer"):
        main(["in.fa", "extract_lastN", "four", "out.fa"])


def test_main_finds_telomere_with_database(workdir):
    (workdir / "g.fa").write_text(">chr1\n" + "AACCCT" * 60 + "G" * 100 + "\n")
    assert main(["g.fa"]) == 0
    lines = (workdir / "initial_anno.txt").read_text().splitlines()
    assert "chr1\t0\t360\tAACCCT" in lines
    assert not (workdir / "rank.tsv").exists()


def test_main_discovery_pipeline(workdir):
    (workdir / "g.fa").write_text(">chr1\n" + "GGCATGCGATCA" * 10 + "\n")
    assert main(["g.fa"]) == 0
    for k in range(5, 13):
        header = (workdir / f"strand_bias_{k}mer.tsv").read_text().splitlines()[0]
        assert header == RANK_TABLE_HEADER
    rank_lines = (workdir / "rank.tsv").read_text().splitlines()
    assert rank_lines[0] == RANK_TABLE_HEADER
    rows = [line.split("\t") for line in rank_lines[1:]]
    assert rows
    keys = [(int(row[7]), int(row[3])) for row in rows]
    assert keys == sorted(keys, reverse=True)
    assert all(int(row[7]) >= 2 and row[6] != "weak" for row in rows)
    assert (workdir / "anno.txt").read_text() == ""
    candidate = (workdir / "telomere_candidate.txt").read_text()
    assert candidate == "No telomere motifs found in the annotation file.\n"


def test_main_kmc_command(workdir):
    def fake_run(command, *args, **kwargs):
        if command[0] == "kmc_dump":
            Path(command[2]).write_text("AACCCT\t5\nAGGGTT\t2\n")
        return subprocess.CompletedProcess(command, 0)

    with mock.patch("subprocess.run", side_effect=fake_run) as run:
        assert main(["kmc", "in.fa", "6", "db", "dump.txt"]) == 0
    assert run.call_args_list[0].args[0][:2] == ["kmc", "-k6"]
    lines = (workdir / "canonical_kmers.tsv").read_text().splitlines()
    assert lines == ["Kmer\tForward\tRC\tTotal", "AACCCT\t5\t2\t7"]


def test_main_kmc_failure(workdir):
    with mock.patch(
        "subprocess.run",
        side_effect=lambda command, *a, **kw: subprocess.CompletedProcess(command, 2),
    ):
        with pytest.raises(subprocess.CalledProcessError):
            main(["kmc", "in.fa", "6", "db", "dump.txt"])
    assert not (workdir / "canonical_kmers.tsv").exists()
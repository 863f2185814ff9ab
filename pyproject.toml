[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "telox"
version = "0.1.0"
description = "Telomere motif extraction: detect telomeric repeats at scaffold ends and discover new motifs from k-mer strand bias"
requires-python = ">=3.10"
dependencies = []
keywords = ["telomere", "motif", "k-mer", "genome", "fasta", "bioinformatics"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Bio-Informatics",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
telox = "telox.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["telox"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

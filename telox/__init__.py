"""Telomere motif detection at sequence ends and motif discovery from k-mer strand bias."""

__version__ = "0.1.0"
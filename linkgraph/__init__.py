"""Link graph construction and enrichment over an indexed document corpus."""

__version__ = "0.1.0"

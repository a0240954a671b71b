"""Cross-chain yield-to-Bitcoin orchestration."""

__version__ = "0.1.0"

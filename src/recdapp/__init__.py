"""RecDApp client core: product lifecycle tracking on an on-chain registry."""

__version__ = "0.1.0"

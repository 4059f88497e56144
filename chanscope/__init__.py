"""chanscope: Farcaster channel aggregation with cached pagination and membership checks."""

__version__ = "0.1.0"

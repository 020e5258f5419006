"""sitedig: a multi-threaded site crawler feeding a BM25 full-text index."""

__version__ = "0.3.0"

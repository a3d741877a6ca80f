"""Core of a pluggable DNS forwarder: plugin loading, matchers, LRU maps, hosts, rate limiting and DNS helpers."""

__version__ = "5.0.0"
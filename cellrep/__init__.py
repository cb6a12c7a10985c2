"""Cell representative helpers: conversions, configuration, an HTTP(S) probe and a test runner."""

__version__ = "0.1.0"
__all__ = ["config", "conversion", "gocurl", "testrunner"]
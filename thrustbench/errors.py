"""
Error Taxonomy
==============
Exceptions raised by the ingestion pipeline.

Every error here is fatal for ONE file only. The batch aggregator catches
them per file and records the message; the batch itself never aborts.

Metric computation never raises - its problems are reported as
non-fatal diagnostics (see diagnostics.py).
"""


class ThrustBenchError(Exception):
    """Base class for all pipeline errors."""


class UnsupportedFormatError(ThrustBenchError, ValueError):
    """File extension is not one of csv, tsv, json."""

    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(f"Unsupported file format: {extension or '(none)'}")


class ParseError(ThrustBenchError, ValueError):
    """Malformed CSV/TSV or JSON syntax."""


class ValidationError(ThrustBenchError, ValueError):
    """JSON document does not have the array-of-flat-records shape."""


class ConfigurationError(ThrustBenchError, ValueError):
    """Analysis configuration failed validation."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__(
            "Configuration validation failed:\n  - " + "\n  - ".join(self.errors)
        )

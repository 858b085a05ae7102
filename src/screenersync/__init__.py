"""screener-sync - keep contact groups in step with mail triage folders."""

__version__ = "0.1.0"

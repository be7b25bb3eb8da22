"""
Touchline - FPL data refresh and captain recommendation pipeline

One run: Sync -> Generate -> Validate -> Publish.
Consumers only ever read the published generation.

Structure:
    data/      - FPL API client, SQLite store, read-only reader
    pipeline/  - Stages, scoring and the orchestrator

Usage:
    from touchline.pipeline import PipelineOrchestrator
    from touchline.data import PublishedReader
"""

__all__ = ["__version__"]
__version__ = "0.1.0"

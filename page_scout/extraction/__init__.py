"""Extraction pipeline: page handle in, :class:`~page_scout.models.PageSnapshot` out."""

from page_scout.extraction.capture import CappedBuffer, EventRecorder
from page_scout.extraction.pipeline import ExtractionPipeline, ExtractOptions

__all__ = ["CappedBuffer", "EventRecorder", "ExtractionPipeline", "ExtractOptions"]

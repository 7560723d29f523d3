"""Utility modules for Pinpoint Sentiment."""

from .data_prep import export_to_json, history_to_frame

__all__ = [
    "export_to_json",
    "history_to_frame",
]

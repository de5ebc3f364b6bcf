"""Tonic Drill - a scale-degree ear-training drill with live pitch detection."""

__version__ = "0.1.0"

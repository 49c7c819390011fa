"""Chairbook: appointment scheduling for a single-chair service business."""

__version__ = "1.0.0"

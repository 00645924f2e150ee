"""Sentilytics: per-product review sentiment summaries."""

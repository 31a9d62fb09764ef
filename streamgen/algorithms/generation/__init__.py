"""Logits post-processing and token selection."""

"""
streamgen: interactive autoregressive text generation

This package drives incremental decoding of a causal language model with a
key-value cache, repeat penalty, and temperature / nucleus sampling.
"""

__version__ = "0.1.0"

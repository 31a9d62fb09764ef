"""Domain layer for streamgen.

This package contains the decoding value objects, the capability interfaces
of the external model and tokenizer, and pure domain services.
"""

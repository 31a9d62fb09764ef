"""Infrastructure layer for streamgen.

Adapters that implement the domain interfaces on top of HuggingFace
transformers, plus performance tracking and terminal output.
"""

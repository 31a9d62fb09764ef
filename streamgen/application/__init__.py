"""Application layer for streamgen.

Services that compose the domain and algorithm layers into the decoding
loop and the interactive prompt session.
"""

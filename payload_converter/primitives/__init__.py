"""Encode/decode primitives used by the converters.

Base64, hex and binary-string codecs live in ``encoding``; charset
transcoding at the text/byte boundary lives in ``charset``.
"""

"""taxokey - lossless reconciliation of AI-generated identification keys.

An identification key is a matrix of features (each with discrete states)
and entities tagged with one or more states per feature. This package merges
candidate keys produced by an AI service or a file import into an existing
key without ever losing user data.
"""

__version__ = "0.4.0"

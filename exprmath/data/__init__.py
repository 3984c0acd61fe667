"""
Data loading for exprmath.

The numerical core never reads files; this package supplies sample
matrices and label vectors to it.
"""

from exprmath.data.loader import load_labels, load_sample_matrix, make_blobs_matrix

"""Report assembly.

This package turns engine output into named, ordered report sections
(pandas DataFrames) and upserts them into MongoDB as read-optimized
collections.
"""

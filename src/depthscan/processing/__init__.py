"""Depth-image and point-cloud processing (numpy/scipy)."""

"""Use-case layer: concrete handler compositions built from the domain core."""

"""OCC Digital Library API."""

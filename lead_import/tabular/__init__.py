"""CSV / Excel reading."""

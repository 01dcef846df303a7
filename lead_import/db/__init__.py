"""Document store backends and batched writes."""

"""Config loading and schema validation."""

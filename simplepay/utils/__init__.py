"""Shared utilities: unit conversion, validation, masking, errors."""

"""Exceptions raised by the report pipeline."""


class SchemaError(ValueError):
    """An expected column is missing or holds an unrecognised value."""


class ModelingError(ValueError):
    """The data cannot support a model fit (no rows, constant target, one-level factor)."""

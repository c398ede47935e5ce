"""Exceptions raised by the land-cover pipeline."""


class LandcoverError(Exception):
    """Base class for land-cover pipeline errors."""


class PipelineOrderError(LandcoverError, ValueError):
    """A pipeline stage ran before the data it depends on was produced."""

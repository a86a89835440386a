from __future__ import annotations


class LocusPlotError(Exception):
    """Base class for all errors raised by locusplot."""


class FetchError(LocusPlotError):
    """A source could not be retrieved (unreachable, timed out, missing)."""


class FormatError(LocusPlotError):
    """File content does not match the expected record shape."""


class RenderConfigError(LocusPlotError):
    """The render configuration is inconsistent; raised before drawing."""


class ConfigError(LocusPlotError):
    """A walkthrough config file is invalid."""

class AutocfrError(Exception):
    """Base class for run-level (fatal) errors."""


class SetupError(AutocfrError):
    """Arguments or root directories are unusable."""


class RecoverySweepError(AutocfrError, OSError):
    """An incomplete artifact from a previous run could not be deleted."""


class DiscoveryError(AutocfrError):
    """The input tree could not be scanned."""

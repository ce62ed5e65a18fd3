"""Exception types raised by the face tracking pipeline."""


class FaceSyncError(Exception):
    """Base exception for facesync."""
    pass


class PoseSolveError(FaceSyncError):
    """The numeric backend failed while solving a pose."""
    pass


class ResourceInitFailure(FaceSyncError):
    """Camera, detector or renderer could not be set up. Needs a full restart."""
    pass


class ConfigurationError(FaceSyncError):
    """Invalid explicit configuration value."""
    pass

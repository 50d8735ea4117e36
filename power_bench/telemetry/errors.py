class TrackerError(RuntimeError):
    """Base class for energy tracker failures."""


class TrackerSpawnError(TrackerError):
    """The sampling process could not be started."""


class PrivilegeError(TrackerError):
    """Elevated privileges required by the sampling tool are unavailable."""


__all__ = ["TrackerError", "TrackerSpawnError", "PrivilegeError"]

"""Error taxonomy for stable module boundaries."""


class ShuffleFixError(Exception):
    """Base exception for shuffle-fix."""


class ConfigError(ShuffleFixError):
    """Raised when configuration is invalid or missing."""


class DiscoveryError(ShuffleFixError):
    """Raised when host modules cannot be located or inspected."""


class RegistryUnavailableError(DiscoveryError):
    """Raised when the host module registry handle is absent or unusable."""


class PatchError(ShuffleFixError):
    """Raised when a behavior replacement cannot be installed."""


class LoadError(ShuffleFixError):
    """Raised for progressive queue loading lifecycle failures."""


class SessionBusyError(LoadError):
    """Raised when a loading session is requested while another is active."""


class RewriteError(ShuffleFixError):
    """Raised when an outbound request address cannot be rewritten."""

class GitHubAppError(Exception):
    """Base class for everything that can go wrong talking to GitHub as an App."""


class GitHubAppConfigError(GitHubAppError):
    """A credential or target the relay needs is not configured."""


class GitHubAuthError(GitHubAppError):
    """GitHub refused, or could not be reached for, the installation token exchange."""


class GitHubDispatchError(GitHubAppError):
    """The repository_dispatch call failed."""

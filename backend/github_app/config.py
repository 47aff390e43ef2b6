"""
GitHub REST API constants shared by the auth and dispatch calls.

The base URL itself lives on RelaySettings (GITHUB_API_URL) so tests and
GitHub Enterprise installs can point the relay somewhere else.
"""

GITHUB_ACCEPT = "application/vnd.github.v3+json"

JWT_ALGORITHM = "RS256"

INSTALLATION_TOKEN_PATH = "/app/installations/{installation_id}/access_tokens"
DISPATCH_PATH = "/repos/{owner}/{repo}/dispatches"

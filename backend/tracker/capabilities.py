"""
Device capability snapshot.

Runs once per tracking session against whatever the embedding page reported
about the client (ClientEnvironment). The result is used to segment the
interaction data later, so it deliberately carries no identifying detail when
anonymize is on: the user agent collapses to "<Browser> - <OS>".
"""

from typing import Optional

from pydantic import BaseModel, Field

from models.capabilities import ConnectionInfo, DeviceCapabilities

POINTER_FINE = "(pointer: fine)"
HOVER_HOVER = "(hover: hover)"
REDUCED_MOTION = "(prefers-reduced-motion: reduce)"
DARK_MODE = "(prefers-color-scheme: dark)"
HIGH_CONTRAST = "(prefers-contrast: high)"


class ClientEnvironment(BaseModel):
    """What the page knows about the client, as reported from the browser."""

    user_agent: str = ""
    touch_supported: bool = False
    media: dict[str, bool] = Field(default_factory=dict)   # media query -> matches
    inner_width: int = 0
    inner_height: int = 0
    device_pixel_ratio: Optional[float] = None
    connection: Optional[ConnectionInfo] = None
    language: Optional[str] = None
    timezone: Optional[str] = None

    def matches(self, query: str) -> bool:
        return self.media.get(query, False)


# Order matters: Chrome UAs mention Safari, Edge UAs mention Chrome.
def _browser_family(ua: str) -> str:
    if "Firefox/" in ua:
        return "Firefox"
    if "Edg/" in ua:
        return "Edge"
    if "Chrome/" in ua:
        return "Chrome"
    if "Safari/" in ua:
        return "Safari"
    if "MSIE" in ua or "Trident/" in ua:
        return "IE"
    return "Unknown"


# Mobile first: Android UAs mention Linux, iOS UAs mention Mac OS X.
def _os_family(ua: str) -> str:
    if "Android" in ua:
        return "Android"
    if "iPhone" in ua or "iPad" in ua or "iOS" in ua:
        return "iOS"
    if "Windows" in ua:
        return "Windows"
    if "Mac OS X" in ua:
        return "macOS"
    if "Linux" in ua:
        return "Linux"
    return "Unknown"


def anonymize_user_agent(user_agent: str) -> str:
    return f"{_browser_family(user_agent)} - {_os_family(user_agent)}"


def capture_capabilities(env: ClientEnvironment, anonymize: bool = True) -> DeviceCapabilities:
    return DeviceCapabilities(
        touch=env.touch_supported,
        pointer=env.matches(POINTER_FINE),
        hover=env.matches(HOVER_HOVER),
        reduced_motion=env.matches(REDUCED_MOTION),
        dark_mode=env.matches(DARK_MODE),
        high_contrast=env.matches(HIGH_CONTRAST),
        screen_width=env.inner_width,
        screen_height=env.inner_height,
        pixel_ratio=env.device_pixel_ratio or 1,
        connection=env.connection,
        language=env.language,
        timezone=env.timezone,
        user_agent=anonymize_user_agent(env.user_agent) if anonymize else env.user_agent,
    )

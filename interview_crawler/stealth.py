"""Anti-detection scripts and browser fingerprint profiles.

The scripts are registered on the browser context with `add_init_script`, so
they run before any script on the target page.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Dict, List

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)

VIEWPORTS = (
    (1920, 1080),
    (1680, 1050),
    (1536, 864),
    (1440, 900),
)

WEBDRIVER_OVERRIDE = """
Object.defineProperty(navigator, 'webdriver', {
  get: () => undefined,
  configurable: true
});
"""

CHROME_OBJECT = """
if (!window.chrome) {
  window.chrome = {
    runtime: {},
    loadTimes: function() {},
    csi: function() {},
    app: {}
  };
}
"""

PLUGINS_OVERRIDE = """
Object.defineProperty(navigator, 'plugins', {
  get: () => [
    {name: 'Chrome PDF Plugin', filename: 'internal-pdf-viewer', description: 'Portable Document Format', length: 1},
    {name: 'Chrome PDF Viewer', filename: 'mhjfbmdgcfjbbpaeojofohoefgiehjai', description: '', length: 1},
    {name: 'Native Client', filename: 'internal-nacl-plugin', description: '', length: 2}
  ],
  configurable: true
});
"""

LANGUAGES_OVERRIDE = """
Object.defineProperty(navigator, 'languages', {
  get: () => ['zh-CN', 'zh', 'en'],
  configurable: true
});
"""

PERMISSIONS_OVERRIDE = """
if (window.navigator.permissions && window.navigator.permissions.query) {
  const originalQuery = window.navigator.permissions.query.bind(window.navigator.permissions);
  window.navigator.permissions.query = (parameters) => (
    parameters && parameters.name === 'notifications'
      ? Promise.resolve({ state: Notification.permission })
      : originalQuery(parameters)
  );
}
"""


def stealth_scripts() -> List[str]:
    """Init scripts masking the usual automation signals, in injection order."""
    return [
        WEBDRIVER_OVERRIDE,
        CHROME_OBJECT,
        PLUGINS_OVERRIDE,
        LANGUAGES_OVERRIDE,
        PERMISSIONS_OVERRIDE,
    ]


@dataclass(slots=True)
class BrowserProfile:
    """Fingerprint applied to one isolated browser context."""

    user_agent: str
    viewport_width: int
    viewport_height: int
    locale: str = "zh-CN"
    timezone_id: str = "Asia/Shanghai"
    extra_headers: Dict[str, str] = field(
        default_factory=lambda: {"Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8"}
    )

    def context_options(self) -> dict:
        return {
            "user_agent": self.user_agent,
            "viewport": {"width": self.viewport_width, "height": self.viewport_height},
            "locale": self.locale,
            "timezone_id": self.timezone_id,
            "extra_http_headers": dict(self.extra_headers),
        }


def random_profile(rng: random.Random | None = None, *, locale: str = "zh-CN") -> BrowserProfile:
    rng = rng or random
    width, height = rng.choice(VIEWPORTS)
    return BrowserProfile(
        user_agent=rng.choice(USER_AGENTS),
        viewport_width=width,
        viewport_height=height,
        locale=locale,
    )

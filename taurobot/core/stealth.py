"""Anti-automation-detection patch-set for headless sessions.

The patches are data: a versioned list of property overrides rendered into a
single init script. The browser manager installs the script on the context
before any page exists, so it runs ahead of every page script. Update the
payload (and bump the version) when target sites change their checks.
"""

from dataclasses import dataclass

STEALTH_VERSION = "2"

STEALTH_LAUNCH_ARGS = ("--disable-blink-features=AutomationControlled",)


@dataclass(frozen=True)
class PropertyOverride:
    """Replace ``<target>.<name>`` with a getter returning ``value`` (JS source)."""

    target: str
    name: str
    value: str

    def render(self) -> str:
        return (
            f"Object.defineProperty({self.target}, '{self.name}', "
            f"{{ get: () => {self.value} }});"
        )


STEALTH_PATCHES: tuple[PropertyOverride, ...] = (
    PropertyOverride("navigator", "webdriver", "false"),
    PropertyOverride("navigator", "plugins", "[1, 2, 3, 4, 5]"),
    PropertyOverride("navigator", "languages", "['es-ES', 'es', 'en-US', 'en']"),
)

# Minimal chrome runtime object expected by fingerprinting scripts
RUNTIME_STUB = "window.chrome = window.chrome || { runtime: {} };"

# Headless Chrome answers "denied" for notifications while Notification.permission
# says "default"; make both agree.
PERMISSIONS_PATCH = """
if (window.navigator.permissions && window.navigator.permissions.query) {
  const originalQuery = window.navigator.permissions.query.bind(window.navigator.permissions);
  window.navigator.permissions.query = (parameters) =>
    parameters && parameters.name === 'notifications'
      ? Promise.resolve({ state: Notification.permission })
      : originalQuery(parameters);
}
"""


def build_init_script(patches: tuple[PropertyOverride, ...] = STEALTH_PATCHES) -> str:
    """Render the patch-set into one script for ``add_init_script``."""
    lines = [f"// stealth patch-set v{STEALTH_VERSION}"]
    lines.extend(patch.render() for patch in patches)
    lines.append(RUNTIME_STUB)
    lines.append(PERMISSIONS_PATCH.strip())
    return "\n".join(lines)

"""Theme names known to the picker and the onboarding wizard.

Color tables live in the renderer; the controller only tracks names.
"""

THEME_NAMES: tuple[str, ...] = (
    "dark",
    "light",
    "solarized-dark",
    "solarized-light",
    "dracula",
    "nord",
    "monokai",
    "gruvbox",
)

DEFAULT_THEME = "dark"


def theme_index(name: str) -> int:
    try:
        return THEME_NAMES.index(name)
    except ValueError:
        return 0

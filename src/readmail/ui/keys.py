# =============================================================================
# Key Vocabulary
# =============================================================================
# The selection loop only understands four keys. Whatever the terminal
# layer delivers is mapped onto these first.
# =============================================================================

from enum import Enum, auto


class Key(Enum):
    """Key presses the selection loop reacts to."""
    UP = auto()
    DOWN = auto()
    CONFIRM = auto()
    EXIT = auto()


# Textual key names -> Key
TEXTUAL_KEYS: dict[str, Key] = {
    "up": Key.UP,
    "k": Key.UP,
    "down": Key.DOWN,
    "j": Key.DOWN,
    "enter": Key.CONFIRM,
    "escape": Key.EXIT,
    "q": Key.EXIT,
}


def key_from_textual(name: str) -> Key | None:
    """Map a Textual key name to a Key, or None for keys we ignore."""
    return TEXTUAL_KEYS.get(name)

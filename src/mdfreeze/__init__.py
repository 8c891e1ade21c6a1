"""mdfreeze: freeze embedded notes into self-contained markdown documents."""

__version__ = "0.1.0"

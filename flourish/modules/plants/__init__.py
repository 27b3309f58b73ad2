"""Plants module: plant records, care signals, nutrients and timers."""

from flourish.modules.plants import care, nutrients, store, timer


__all__ = [
    "care",
    "nutrients",
    "store",
    "timer",
]

"""recite: spaced-repetition review scheduling for memorized text."""

from recite.consts import VERSION

__version__ = VERSION

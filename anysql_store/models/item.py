"""
Item dataclass returned by bulk and range reads.
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class Item:
    """
    A decoded key and, when values were requested, its value.

    Attributes:
        key: The decoded key.
        value: The decoded value (None when values were not requested).
    """

    key: list[Any]
    value: Any = None

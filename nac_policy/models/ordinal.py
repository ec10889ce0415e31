"""
Ordinal string enumerations
Members compare by declaration order instead of alphabetically
"""

from enum import Enum
from typing import Iterable, Optional, TypeVar

T = TypeVar("T", bound="OrdinalEnum")

class OrdinalEnum(str, Enum):

    @property
    def level(self) -> int:
        return list(type(self)).index(self) + 1

    def __lt__(self, other):
        if other.__class__ is not self.__class__:
            return NotImplemented
        return self.level < other.level

    def __le__(self, other):
        if other.__class__ is not self.__class__:
            return NotImplemented
        return self.level <= other.level

    def __gt__(self, other):
        if other.__class__ is not self.__class__:
            return NotImplemented
        return self.level > other.level

    def __ge__(self, other):
        if other.__class__ is not self.__class__:
            return NotImplemented
        return self.level >= other.level

def highest(values: Iterable[T]) -> Optional[T]:
    values = list(values)
    return max(values) if values else None

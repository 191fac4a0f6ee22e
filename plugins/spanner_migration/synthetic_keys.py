"""
Synthetic Primary Keys

Tables without a primary key get an artificial STRING key column. Sequential
values would concentrate writes on one end of Spanner's key range, so each
value is the bit-reversed form of a shared 64-bit counter: consecutive
counters land in maximally distant parts of the key space.
"""

import threading

from spanner_migration.ddl import ColumnDef, Type, TypeName

SYNTHETIC_KEY_COLUMN = "synth_id"

# Wide enough for the decimal text of any signed 64-bit integer
SYNTHETIC_KEY_LENGTH = 50

_MASK_64 = (1 << 64) - 1


def reverse_bits_64(value: int) -> int:
    """Reverse the bit order of an unsigned 64-bit integer."""
    return int(format(value & _MASK_64, '064b')[::-1], 2)


def to_signed_64(value: int) -> int:
    value &= _MASK_64
    return value - (1 << 64) if value >= (1 << 63) else value


def synthetic_key_column(name: str = SYNTHETIC_KEY_COLUMN) -> ColumnDef:
    return ColumnDef(name=name, type=Type(TypeName.STRING, SYNTHETIC_KEY_LENGTH))


class SyntheticKeyGenerator:
    """
    Collision-free key source shared by every table in one migration run.

    Values stay unique until the counter wraps at 2**64.
    """

    def __init__(self, start: int = 0):
        self._counter = start
        self._lock = threading.Lock()

    def next_key(self) -> str:
        with self._lock:
            counter = self._counter
            self._counter = (self._counter + 1) & _MASK_64
        return str(to_signed_64(reverse_bits_64(counter)))

    @property
    def generated(self) -> int:
        with self._lock:
            return self._counter

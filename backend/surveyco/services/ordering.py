from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

class Position(str, Enum):
    before = "before"
    after = "after"

@dataclass(frozen=True)
class Shift:
    """Add ``delta`` to every number in ``[start, stop)``; ``stop=None`` is unbounded."""

    start: int
    stop: Optional[int]
    delta: int

    def covers(self, number: int) -> bool:
        return number >= self.start and (self.stop is None or number < self.stop)

@dataclass(frozen=True)
class Placement:
    number: int
    shifts: tuple[Shift, ...] = field(default_factory=tuple)

    @property
    def is_noop(self) -> bool:
        return not self.shifts

def insertion_point(target_number: int, position: Position) -> int:
    """Number in front of which a block lands when placed relative to a target."""
    if target_number < 1:
        raise ValueError(f"target number must be positive, got {target_number}")
    return target_number + 1 if Position(position) is Position.after else target_number

def plan_append(last_number: int) -> Placement:
    return Placement(number=last_number + 1)

def plan_insert_at(insertion: int, length: int = 1) -> Placement:
    """Open a gap of ``length`` numbers at ``insertion`` (create, copy)."""
    if insertion < 1:
        raise ValueError(f"insertion point must be positive, got {insertion}")
    if length < 0:
        raise ValueError(f"block length must not be negative, got {length}")
    if length == 0:
        return Placement(number=insertion)
    return Placement(number=insertion, shifts=(Shift(insertion, None, length),))

def plan_insert(target_number: int, position: Position, length: int = 1) -> Placement:
    return plan_insert_at(insertion_point(target_number, position), length)

def plan_remove(start: int, length: int = 1) -> Placement:
    """Close the gap left by deleting ``[start, start + length)``.

    The returned number is where the first follower of the removed block
    ends up, which is ``start`` itself.
    """
    if length == 0:
        return Placement(number=start)
    return Placement(number=start, shifts=(Shift(start + length, None, -length),))

def plan_move_to(start: int, insertion: int, length: int = 1) -> Placement:
    """Relocate the block ``[start, start + length)`` in front of ``insertion``.

    ``insertion`` is expressed in the numbering as it is before the move.
    The shifted ranges never overlap the block itself, so the block's rows
    can be renumbered independently of the shift.
    """
    if length < 0:
        raise ValueError(f"block length must not be negative, got {length}")
    end = start + length  # first number after the block
    if length == 0 or start <= insertion <= end:
        return Placement(number=start)
    if insertion < start:
        # moving up: everything between the insertion point and the block slides down the list
        return Placement(number=insertion, shifts=(Shift(insertion, start, length),))
    # moving down: everything between the block and the insertion point slides up the list
    return Placement(number=insertion - length, shifts=(Shift(end, insertion, -length),))

def plan_move(start: int, target_number: int, position: Position, length: int = 1) -> Placement:
    return plan_move_to(start, insertion_point(target_number, position), length)

def renumber(numbers: Iterable[int], shifts: Iterable[Shift]) -> list[int]:
    """Apply shifts to plain numbers; used to preview a plan without a store.

    Ranges are matched against the original number, the same way a single
    ``UPDATE ... WHERE number >= start`` sees the pre-update value.
    """
    shifts = tuple(shifts)
    return [n + sum(s.delta for s in shifts if s.covers(n)) for n in numbers]

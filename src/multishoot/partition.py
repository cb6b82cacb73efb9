"""Split a sample range into overlapping shooting groups.

Groups use 0-based inclusive index ranges. Group ``k`` spans
``[k * (G - 1), min(N - 1, (k + 1) * (G - 1))]``, so neighbours share
exactly one sample. When ``N - 1`` is not a multiple of ``G - 1`` the last
group is shrunk rather than padded; it always keeps at least two samples.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import InvalidConfiguration


@dataclass(frozen=True)
class Group:
    index: int
    start: int
    end: int

    def __post_init__(self: "Group") -> None:
        if self.start < 0 or self.end <= self.start:
            raise InvalidConfiguration(
                f"Group {self.index} must span at least two samples; got [{self.start}, {self.end}]."
            )

    @property
    def size(self: "Group") -> int:
        return self.end - self.start + 1

    def indices(self: "Group") -> slice:
        return slice(self.start, self.end + 1)


def _validate(num_samples: int, group_size: int) -> None:
    if num_samples < 2:
        raise InvalidConfiguration("num_samples must be at least 2.")
    if group_size < 2:
        raise InvalidConfiguration("group_size must be at least 2.")
    if group_size > num_samples:
        raise InvalidConfiguration(
            f"group_size ({group_size}) cannot exceed num_samples ({num_samples})."
        )


def num_groups(num_samples: int, group_size: int) -> int:
    _validate(num_samples, group_size)
    stride = group_size - 1
    return -(-(num_samples - 1) // stride)


def partition_groups(num_samples: int, group_size: int) -> tuple[Group, ...]:
    """Return the ordered overlapping groups covering ``range(num_samples)``."""

    count = num_groups(num_samples, group_size)
    stride = group_size - 1
    last = num_samples - 1
    return tuple(
        Group(index=k, start=k * stride, end=min(last, (k + 1) * stride))
        for k in range(count)
    )

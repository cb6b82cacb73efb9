from __future__ import annotations

import math

import pytest
from hypothesis import given, strategies as st

from multishoot.errors import InvalidConfiguration
from multishoot.partition import Group, num_groups, partition_groups


@st.composite
def _sizes(draw):
    num_samples = draw(st.integers(min_value=2, max_value=200))
    group_size = draw(st.integers(min_value=2, max_value=num_samples))
    return num_samples, group_size


@given(_sizes())
def test_partition_covers_every_index_exactly(sizes):
    num_samples, group_size = sizes
    groups = partition_groups(num_samples, group_size)
    covered = set()
    for group in groups:
        covered.update(range(group.start, group.end + 1))
    assert covered == set(range(num_samples))
    assert groups[0].start == 0
    assert groups[-1].end == num_samples - 1


@given(_sizes())
def test_adjacent_groups_share_exactly_one_index(sizes):
    num_samples, group_size = sizes
    groups = partition_groups(num_samples, group_size)
    for left, right in zip(groups[:-1], groups[1:]):
        shared = set(range(left.start, left.end + 1)) & set(
            range(right.start, right.end + 1)
        )
        assert shared == {left.end}
        assert right.start == left.end


@given(_sizes())
def test_group_count_and_sizes(sizes):
    num_samples, group_size = sizes
    groups = partition_groups(num_samples, group_size)
    assert len(groups) == math.ceil((num_samples - 1) / (group_size - 1))
    assert len(groups) == num_groups(num_samples, group_size)
    assert [group.index for group in groups] == list(range(len(groups)))
    assert all(group.size == group_size for group in groups[:-1])
    assert 2 <= groups[-1].size <= group_size


def test_thirty_samples_in_groups_of_three_shrinks_the_tail():
    groups = partition_groups(30, 3)
    assert len(groups) == 15
    assert all(group.size == 3 for group in groups[:14])
    assert groups[13] == Group(index=13, start=26, end=28)
    assert groups[-1] == Group(index=14, start=28, end=29)
    pairs = list(zip(groups[:-1], groups[1:]))
    assert len(pairs) == 14
    assert sum(1 for left, right in pairs if right.size == 3) == 13
    assert pairs[-1][1].size == 2


def test_group_size_two_gives_single_steps():
    groups = partition_groups(10, 2)
    assert len(groups) == 9
    assert all(group.size == 2 for group in groups)
    assert len(groups) - 1 == 10 - 2


def test_group_size_equal_to_length_is_single_shooting():
    groups = partition_groups(12, 12)
    assert groups == (Group(index=0, start=0, end=11),)


def test_group_indices_slice_matches_range():
    group = Group(index=2, start=4, end=6)
    assert list(range(10))[group.indices()] == [4, 5, 6]
    assert group.size == 3


@pytest.mark.parametrize("num_samples,group_size", [(10, 1), (10, 0), (10, 11), (1, 2)])
def test_invalid_group_size_raises(num_samples, group_size):
    with pytest.raises(InvalidConfiguration):
        partition_groups(num_samples, group_size)


def test_invalid_configuration_is_a_value_error():
    with pytest.raises(ValueError):
        num_groups(5, 6)


def test_degenerate_group_is_rejected():
    with pytest.raises(InvalidConfiguration):
        Group(index=0, start=3, end=3)

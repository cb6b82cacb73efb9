from __future__ import annotations

import chex
import jax.numpy as jnp
import pytest

from multishoot.continuity import (
    continuity_penalty,
    continuity_residuals,
    penalty_from_residuals,
)


def _matching_groups():
    return (
        jnp.array([[0.0, 1.0], [1.0, 2.0], [2.0, 3.0]]),
        jnp.array([[2.0, 3.0], [3.0, 4.0], [4.0, 5.0]]),
        jnp.array([[4.0, 5.0], [5.0, 6.0]]),
    )


def test_residuals_vanish_when_overlaps_match():
    states = _matching_groups()
    residuals = continuity_residuals(states)
    chex.assert_shape(residuals, (2, 2))
    chex.assert_trees_all_close(residuals, jnp.zeros((2, 2)))
    assert float(continuity_penalty(states, 100.0)) == 0.0


def test_residuals_are_absolute_componentwise_differences():
    first, second, third = _matching_groups()
    states = (first, second.at[0].set(jnp.array([2.5, 1.0])), third)
    residuals = continuity_residuals(states)
    chex.assert_trees_all_close(residuals[0], jnp.array([0.5, 2.0]))
    chex.assert_trees_all_close(residuals[1], jnp.zeros(2))
    assert float(continuity_penalty(states, 1.0)) == pytest.approx(2.5)


@pytest.mark.parametrize("continuity_term", [0.5, 1.0, 10.0, 250.0])
def test_penalty_is_linear_in_continuity_term(continuity_term):
    first, second, third = _matching_groups()
    states = (first, second, third.at[0].add(0.25))
    base = float(continuity_penalty(states, 1.0))
    assert base > 0.0
    assert float(continuity_penalty(states, continuity_term)) == pytest.approx(
        continuity_term * base
    )


def test_single_group_has_no_residuals():
    states = (jnp.ones((5, 3)),)
    chex.assert_shape(continuity_residuals(states), (0, 3))
    assert float(continuity_penalty(states, 100.0)) == 0.0


def test_pairs_touching_a_failed_group_are_zeroed():
    first, second, third = _matching_groups()
    states = (first, second + 1.0, third + 3.0)
    ok = jnp.array([True, False, True])
    residuals = continuity_residuals(states, ok)
    chex.assert_trees_all_close(residuals, jnp.zeros((2, 2)))
    all_ok = continuity_residuals(states, jnp.array([True, True, True]))
    assert float(penalty_from_residuals(all_ok, 1.0)) > 0.0

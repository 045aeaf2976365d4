# Copyright 2024 The acecore Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Neighbor clusters on which basis functions are evaluated."""

import dataclasses
from typing import Any, Hashable, Sequence
from acecore.errors import NumericalDomainError
from acecore.so3._common import _as_float_array
from acecore.so3._common import _concrete_value
import jax
import jax.numpy as jnp
import jaxtyping
import numpy as np

Array = jaxtyping.Array
Float = jaxtyping.Float
UInt32 = jaxtyping.UInt32
PRNGKey = UInt32[Array, '2']


def check_positions(positions: Any) -> Float[Array, 'num_neighbors 3']:
  """Converts positions to a float array and checks them.

  Args:
    positions: Neighbor positions relative to the center atom.

  Returns:
    The positions as Array of shape ``(num_neighbors, 3)``.

  Raises:
    ValueError: If positions do not have shape ``(num_neighbors, 3)``.
    NumericalDomainError: If (for concrete inputs) a neighbor sits exactly on
      the center atom.
  """
  positions = _as_float_array(positions)
  if positions.ndim != 2 or positions.shape[-1] != 3:
    raise ValueError(
        'positions must have shape (num_neighbors, 3), received shape '
        f'{positions.shape}'
    )
  values = _concrete_value(positions)
  if values is not None and np.any(np.all(values == 0, axis=-1)):
    raise NumericalDomainError(
        'a neighbor position coincides with the center atom'
    )
  return positions


@dataclasses.dataclass(frozen=True, eq=False)
class ClusterState:
  """Neighbors of a center atom.

  The order of the neighbors carries no meaning: all basis functions are
  invariant under permutations of ``positions``.

  Attributes:
    positions: Array of shape ``(num_neighbors, 3)`` with neighbor positions
      relative to the center atom.
    center: State of the center atom (e.g. a species label), passed on to
      one-particle bases that depend on it.
  """

  positions: Float[Array, 'num_neighbors 3']
  center: Hashable = 0

  def __post_init__(self):
    object.__setattr__(self, 'positions', check_positions(self.positions))

  def __len__(self) -> int:
    return self.positions.shape[0]

  def permuted(self, permutation: Sequence[int]) -> 'ClusterState':
    """Returns the cluster with reordered neighbors."""
    permutation = np.asarray(permutation)
    if sorted(permutation.tolist()) != list(range(len(self))):
      raise ValueError(
          f'expected a permutation of range({len(self)}), received '
          f'{permutation.tolist()}'
      )
    return dataclasses.replace(self, positions=self.positions[permutation])

  def transformed(self, rot: Float[Array, '3 3']) -> 'ClusterState':
    """Returns the cluster with all positions mapped to rot @ position."""
    rot = jnp.asarray(rot)
    if rot.shape != (3, 3):
      raise ValueError(f'rot must have shape (3, 3), received {rot.shape}')
    return dataclasses.replace(self, positions=self.positions @ rot.T)


def random_cluster(
    key: PRNGKey,
    num_neighbors: int,
    r_min: float = 0.5,
    r_max: float = 1.0,
    center: Hashable = 0,
) -> ClusterState:
  """Samples neighbors with uniform random directions and distances.

  Args:
    key: A PRNG key used as the random key.
    num_neighbors: Number of neighbors.
    r_min: Minimum distance from the center atom.
    r_max: Maximum distance from the center atom.
    center: State of the center atom.

  Returns:
    A random ClusterState.

  Raises:
    ValueError: If ``num_neighbors`` is negative or not 0 < r_min <= r_max.
  """
  if num_neighbors < 0:
    raise ValueError(
        f'num_neighbors must be positive or zero, received {num_neighbors}'
    )
  if not 0.0 < r_min <= r_max:
    raise ValueError(
        f'expected 0 < r_min <= r_max, received r_min={r_min}, r_max={r_max}'
    )
  dtype = jnp.result_type(float)
  direction_key, distance_key = jax.random.split(key)
  directions = jax.random.normal(
      direction_key, shape=(num_neighbors, 3), dtype=dtype
  )
  directions /= jnp.linalg.norm(directions, axis=-1, keepdims=True)
  distances = jax.random.uniform(
      distance_key, shape=(num_neighbors, 1), dtype=dtype,
      minval=r_min, maxval=r_max,
  )
  return ClusterState(positions=directions * distances, center=center)

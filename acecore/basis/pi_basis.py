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

r"""Permutation-invariant product basis.

For a cluster with neighbors :math:`\vec{R}_1,\dots,\vec{R}_J`, the atomic
base

.. math::
  A_v = \sum_{j=1}^J \phi_v(\vec{R}_j)

is invariant under permutations of the neighbors, and so are all products
:math:`\mathbf{AA}_{\mathbf{v}} = A_{v_1}\cdots A_{v_\nu}`. A product only
depends on the multiset :math:`\{v_1,\dots,v_\nu\}`, so every product is
stored once under its sorted multi-index.
"""

from typing import Hashable, List, Optional, Tuple
from absl import logging
import jax
import jax.numpy as jnp
import jaxtyping
import numpy as np

from .properties import check_property
from .properties import Invariant
from .properties import Property
from .states import check_positions

Array = jaxtyping.Array
Complex = jaxtyping.Complex
Float = jaxtyping.Float


class PIBasis:
  r"""Products of up to ``order`` one-particle atomic base functions.

  Contains every sorted multi-index :math:`v_1\le\dots\le v_\nu` with
  :math:`1\le\nu\le` ``order`` whose total degree
  :math:`\sum_t \mathrm{degree}(n_{v_t}, \ell_{v_t})` does not exceed
  ``max_degree`` and which ``property.is_admissible`` accepts.

  Attributes:
    one_particle: The one-particle basis.
    order: Maximum number of factors of a product.
    max_degree: Maximum total degree of a product.
    property: Symmetry property used to discard products that cannot
      contribute to symmetric basis functions with this property.
    spec: List of sorted tuples of one-particle indices, one per product.
  """

  def __init__(
      self,
      one_particle,
      order: int,
      max_degree: int,
      property: Property = Invariant(),  # pylint: disable=redefined-builtin
  ):
    if order < 1:
      raise ValueError(f'order must be at least 1, received {order}')
    if max_degree < 0:
      raise ValueError(
          f'max_degree must be positive or zero, received {max_degree}'
      )
    check_property(property)
    self.one_particle = one_particle
    self.order = order
    self.max_degree = max_degree
    self.property = property
    self.spec = self._enumerate()
    if not self.spec:
      raise ValueError(
          f'no product of order <= {order} and degree <= {max_degree} is '
          f'admissible for {property}'
      )

    # Pad with a sentinel index pointing to an appended constant 1.
    sentinel = len(one_particle)
    index = np.full((len(self.spec), order), sentinel, dtype=np.int32)
    for i, entry in enumerate(self.spec):
      index[i, : len(entry)] = entry
    index.setflags(write=False)
    self.index = index
    self._evaluate = jax.jit(self._evaluate_impl, static_argnums=1)

    logging.info(
        'Built PIBasis with %d products of order <= %d and degree <= %d '
        'from %d one-particle functions.',
        len(self), order, max_degree, len(one_particle),
    )

  def _enumerate(self) -> List[Tuple[int, ...]]:
    """Sorted multi-indices of all admissible products."""
    spec1 = self.one_particle.spec
    degrees = [self.one_particle.degree(n, l) for n, l, _ in spec1]
    ranked = sorted(range(len(spec1)), key=lambda v: (degrees[v], v))
    entries = []

    def extend(prefix: Tuple[int, ...], start: int, degree: int) -> None:
      for position in range(start, len(ranked)):
        v = ranked[position]
        total = degree + degrees[v]
        if total > self.max_degree:
          break  # All remaining functions have larger degree.
        entry = prefix + (v,)
        ls = [spec1[u][1] for u in entry]
        ms = [spec1[u][2] for u in entry]
        if self.property.is_admissible(ls, ms):
          entries.append(tuple(sorted(entry)))
        if len(entry) < self.order:
          extend(entry, position, total)

    extend((), 0, 0)
    entries.sort(key=lambda entry: (len(entry), entry))
    return entries

  def __len__(self) -> int:
    return len(self.spec)

  def __repr__(self) -> str:
    return (
        f'PIBasis(order={self.order}, max_degree={self.max_degree}, '
        f'property={self.property}, len={len(self)})'
    )

  def labels(self, i: int) -> Tuple[Tuple[int, int, int], ...]:
    """The (n, l, m) labels of the factors of product i."""
    return tuple(self.one_particle.spec[v] for v in self.spec[i])

  def _evaluate_impl(
      self, positions: Float[Array, 'num_neighbors 3'], center: Hashable
  ) -> Complex[Array, 'num']:
    a = jnp.sum(self.one_particle.evaluate(positions, center), axis=0)
    a = jnp.concatenate((a, jnp.ones_like(a[:1])))
    return jnp.prod(a[self.index], axis=-1)

  def evaluate_atomic_base(
      self,
      positions: Float[Array, 'num_neighbors 3'],
      center: Optional[Hashable] = None,
  ) -> Complex[Array, 'num_one_particle']:
    """Atomic base A, the one-particle functions summed over all neighbors."""
    positions = check_positions(positions)
    return jnp.sum(self.one_particle.evaluate(positions, center), axis=0)

  def evaluate(
      self,
      positions: Float[Array, 'num_neighbors 3'],
      center: Optional[Hashable] = None,
  ) -> Complex[Array, 'num']:
    """Evaluates all products for a cluster.

    Args:
      positions: Neighbor positions of shape ``(num_neighbors, 3)``.
      center: State of the center atom, passed on to the one-particle basis.

    Returns:
      Complex Array of shape ``(len(self),)``.
    """
    return self._evaluate(check_positions(positions), center)

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

r"""One-particle basis :math:`\phi_{n\ell m}(\vec{R}) = R_n(r)\,Y_\ell^m(\hat{R})`.

Product bases only need a small protocol from a one-particle basis:

* ``len(basis)``: number of one-particle functions,
* ``basis.spec``: list of ``(n, l, m)`` tuples labelling the functions,
* ``basis.degree(n, l)``: polynomial degree used for truncation,
* ``basis.evaluate(positions, center)``: values of shape
  ``(num_neighbors, len(basis))``,
* ``basis.evaluate_gradient(positions, center)``: values and gradients of shape
  ``(num_neighbors, len(basis), 3)``.

:class:`RnYlmBasis` implements it with Chebyshev radial functions and complex
spherical harmonics.
"""

import dataclasses
from typing import Callable, Hashable, List, Optional, Tuple
from acecore import so3
import jax
import jax.numpy as jnp
import jaxtyping
import numpy as np

from .radial import chebyshev_radial_basis
from .states import check_positions

Array = jaxtyping.Array
Complex = jaxtyping.Complex
Float = jaxtyping.Float


@dataclasses.dataclass(frozen=True)
class NaiveTotalDegree:
  """Total degree n + l of the one-particle function with labels (n, l)."""

  def __call__(self, n: int, l: int) -> int:
    return n + l


class RnYlmBasis:
  r"""Chebyshev radial functions times complex spherical harmonics.

  Contains all functions :math:`\phi_{n\ell m}` with :math:`n,\ell\ge0`,
  :math:`-\ell\le m\le\ell` and ``degree(n, l) <= max_degree``, where

  .. math::
    R_n(r) = T_n\left(2\frac{r}{r_\mathrm{cut}}-1\right)
    \,\mathrm{smooth\_cutoff}(r)

  (see :func:`chebyshev_radial_basis
  <acecore.basis.radial.chebyshev_radial_basis>`). Functions are ordered by
  degree, then by :math:`n`, :math:`\ell` and :math:`m`. The basis does not
  depend on the state of the center atom.

  Attributes:
    max_degree: Maximum degree of the one-particle functions.
    r_cut: Cutoff distance of the radial functions.
    spec: List of ``(n, l, m)`` labels.
  """

  def __init__(
      self,
      max_degree: int,
      r_cut: float = 5.0,
      degree: Callable[[int, int], int] = NaiveTotalDegree(),
  ):
    if max_degree < 0:
      raise ValueError(
          f'max_degree must be positive or zero, received {max_degree}'
      )
    if r_cut <= 0.0:
      raise ValueError(f'r_cut must be larger than 0, received {r_cut}')
    self.max_degree = max_degree
    self.r_cut = r_cut
    self._degree = degree
    nl = [
        (n, l)
        for n in range(max_degree + 1)
        for l in range(max_degree + 1)
        if degree(n, l) <= max_degree
    ]
    if not nl:
      raise ValueError(
          f'no one-particle function has degree <= {max_degree}'
      )
    nl.sort(key=lambda nl_: (degree(*nl_), nl_))
    self.spec: List[Tuple[int, int, int]] = [
        (n, l, m) for n, l in nl for m in range(-l, l + 1)
    ]
    self._num_radial = max(n for n, _ in nl) + 1
    self._max_l = max(l for _, l in nl)
    self._sh = so3.SHBasis(self._max_l)
    self._radial_index = np.asarray([n for n, _, _ in self.spec])
    self._angular_index = np.asarray(
        [so3.index_y(l, m) for _, l, m in self.spec]
    )

  def __len__(self) -> int:
    return len(self.spec)

  def __repr__(self) -> str:
    return (
        f'RnYlmBasis(max_degree={self.max_degree}, r_cut={self.r_cut}, '
        f'len={len(self)})'
    )

  def degree(self, n: int, l: int) -> int:
    return self._degree(n, l)

  def _radial(self, r: Float[Array, '...']) -> Float[Array, '... num']:
    return chebyshev_radial_basis(r, self._num_radial, cutoff=self.r_cut)

  def evaluate(
      self,
      positions: Float[Array, 'num_neighbors 3'],
      center: Optional[Hashable] = None,
  ) -> Complex[Array, 'num_neighbors num']:
    """Evaluates all one-particle functions for every neighbor.

    Args:
      positions: Neighbor positions of shape ``(num_neighbors, 3)``.
      center: State of the center atom (ignored).

    Returns:
      Complex Array of shape ``(num_neighbors, len(self))``.
    """
    del center
    positions = check_positions(positions)
    r, x, z, s = so3.cartesian_to_rxzs(positions)
    p = so3.legendre_p(self._max_l, z, self._sh.coefficients)
    y = so3.complex_spherical_harmonics(self._max_l, r, x, z, s, p)
    radial = self._radial(r)
    return radial[:, self._radial_index] * y[:, self._angular_index]

  def evaluate_gradient(
      self,
      positions: Float[Array, 'num_neighbors 3'],
      center: Optional[Hashable] = None,
  ) -> Tuple[
      Complex[Array, 'num_neighbors num'],
      Complex[Array, 'num_neighbors num 3'],
  ]:
    """Evaluates all one-particle functions and their gradients.

    Args:
      positions: Neighbor positions of shape ``(num_neighbors, 3)``.
      center: State of the center atom (ignored).

    Returns:
      A tuple of complex Arrays with shapes ``(num_neighbors, len(self))`` and
      ``(num_neighbors, len(self), 3)``.

    Raises:
      NumericalDomainError: If (for concrete inputs) a neighbor lies on the
        z-axis, where the angular gradient is not available.
    """
    del center
    positions = check_positions(positions)
    r, x, z, s = so3.cartesian_to_rxzs(positions)
    p, dp = so3.legendre_dp(self._max_l, z, self._sh.coefficients)
    y, dy = so3.complex_spherical_harmonics_gradient(
        self._max_l, r, x, z, s, p, dp
    )
    # Radial functions act elementwise, so a JVP with unit tangents yields
    # their derivatives with respect to r.
    radial, radial_dr = jax.jvp(self._radial, (r,), (jnp.ones_like(r),))
    r_hat = positions / r[:, None]
    radial = radial[:, self._radial_index]
    radial_dr = radial_dr[:, self._radial_index]
    y = y[:, self._angular_index]
    dy = dy[:, self._angular_index]
    values = radial * y
    gradients = (
        (radial_dr * y)[..., None] * r_hat[:, None, :]
        + radial[..., None] * dy
    )
    return values, gradients

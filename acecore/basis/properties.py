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

r"""Symmetry properties of basis functions.

A property fixes how the values of a symmetric basis function transform when
all neighbors of a cluster are mapped with an orthogonal matrix :math:`Q`:

* :class:`Invariant` basis functions are real scalars with
  :math:`B(Q\mathbf{X}) = B(\mathbf{X})`.
* :class:`SphericalVector` basis functions of degree :math:`L` are complex
  vectors of length :math:`2L+1` with :math:`B(Q\mathbf{X}) =
  D^L(Q)\,B(\mathbf{X})`, where :math:`D^L` is the complex Wigner-D matrix
  (see :func:`wigner_d <acecore.so3.rotations.wigner_d>`). :math:`L=1` gives
  vectors, :math:`L\ge2` higher spherical tensors.
"""

import dataclasses
from typing import Sequence, Tuple, Union
from acecore.so3 import wigner_d
import jax.numpy as jnp
import jaxtyping

Array = jaxtyping.Array
Complex = jaxtyping.Complex
Float = jaxtyping.Float


@dataclasses.dataclass(frozen=True)
class Invariant:
  """Rotation and reflection invariant scalars."""

  @property
  def degree(self) -> int:
    return 0

  @property
  def output_shape(self) -> Tuple[int, ...]:
    return ()

  def is_admissible(self, ls: Sequence[int], ms: Sequence[int]) -> bool:
    """Necessary condition for a product to couple to a scalar.

    Args:
      ls: Degrees of the factors.
      ms: Orders of the factors.

    Returns:
      True if the orders sum to zero and the degrees sum to an even number
      (odd sums change sign under reflections).
    """
    return sum(ms) == 0 and sum(ls) % 2 == 0

  def transformation(self, rot: Float[Array, '... 3 3']) -> Float[Array, '...']:
    """Transformation of the basis values under rot (always 1)."""
    rot = jnp.asarray(rot)
    return jnp.ones(rot.shape[:-2], dtype=jnp.result_type(rot.dtype, float))


@dataclasses.dataclass(frozen=True)
class SphericalVector:
  """Spherical tensors of degree L transforming with the Wigner-D matrix.

  Attributes:
    L: Degree of the representation.
  """

  L: int = 1

  def __post_init__(self):
    if self.L < 0:
      raise ValueError(f'L must be positive or zero, received {self.L}')

  @property
  def degree(self) -> int:
    return self.L

  @property
  def output_shape(self) -> Tuple[int, ...]:
    return (2 * self.L + 1,)

  def is_admissible(self, ls: Sequence[int], ms: Sequence[int]) -> bool:
    """Necessary condition for a product to couple to degree L.

    Args:
      ls: Degrees of the factors.
      ms: Orders of the factors.

    Returns:
      True if the orders sum to an order of degree L and the degrees have the
      parity of L.
    """
    return abs(sum(ms)) <= self.L and (sum(ls) + self.L) % 2 == 0

  def transformation(
      self, rot: Float[Array, '... 3 3']
  ) -> Complex[Array, '... 2*L+1 2*L+1']:
    """Wigner-D matrix of degree L for rot."""
    return wigner_d(rot, self.L)


Property = Union[Invariant, SphericalVector]


def check_property(prop: Property) -> None:
  """Raises a ValueError if prop is not a supported property."""
  if not isinstance(prop, (Invariant, SphericalVector)):
    raise ValueError(
        'property must be Invariant or SphericalVector, received '
        f'{type(prop).__name__}'
    )

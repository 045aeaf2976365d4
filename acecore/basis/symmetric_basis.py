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

r"""Symmetry-adapted basis obtained by coupling a permutation-invariant basis.

Products :math:`\mathbf{AA}` in a :class:`PIBasis
<acecore.basis.pi_basis.PIBasis>` are grouped into classes with equal radial
and angular degrees :math:`(n_1\ell_1,\dots,n_\nu\ell_\nu)`. Within a class,
the orders :math:`m_t` are coupled with generalized Clebsch-Gordan
coefficients along every path
:math:`\ell_1\otimes\ell_2\to L_2,\ L_2\otimes\ell_3\to L_3,\dots\to L`,

.. math::
  C^{\mathbf{L}}_{\mathbf{m}M} = \sum_{M_2,\dots,M_{\nu-1}}
  \langle \ell_1 m_1 \ell_2 m_2|L_2 M_2\rangle
  \langle L_2 M_2 \ell_3 m_3|L_3 M_3\rangle\cdots
  \langle L_{\nu-1} M_{\nu-1} \ell_\nu m_\nu|L\,M\rangle\,,

which yields functions :math:`B_M = \sum_{\mathbf{m}} C_{\mathbf{m}M}
\mathbf{AA}_{\mathbf{m}}` that transform like :math:`Y_L^M`. Since products
are symmetric in their factors, coefficients of permuted multi-indices are
accumulated onto the sorted multi-index, after which different paths can
become linearly dependent. A singular value decomposition reduces each class
to a linearly independent set. The resulting linear map from products to
basis functions (the A2B map) is stored in sparse coordinate format.
"""

import collections
from typing import Dict, Hashable, List, Optional, Tuple, Union
from absl import logging
from acecore.config import Config
from acecore.errors import NumericalDomainError
from acecore.so3 import clebsch_gordan_for_degrees
from acecore.so3._common import _concrete_value
import jax
import jaxtyping
import numpy as np

from .pi_basis import PIBasis
from .properties import check_property
from .properties import Invariant
from .properties import Property
from .states import check_positions
from .states import ClusterState

Array = jaxtyping.Array
Complex = jaxtyping.Complex
Float = jaxtyping.Float

_Label = Tuple[int, int, int]  # (n, l, m)
_Key = Tuple[_Label, ...]  # Sorted labels of the factors of a product.


def _coupling_paths(ls: Tuple[int, ...], degree: int) -> List[Tuple[int, ...]]:
  """Intermediate degrees (L_1=l_1, L_2, ..., L_nu=degree) of all paths."""
  paths = [(ls[0],)]
  for l in ls[1:]:
    paths = [
        path + (lc,)
        for path in paths
        for lc in range(abs(path[-1] - l), path[-1] + l + 1)
    ]
  return [path for path in paths if path[-1] == degree]


def _coupling_tensor(
    ls: Tuple[int, ...], path: Tuple[int, ...]
) -> np.ndarray:
  """Generalized Clebsch-Gordan coefficients of shape (2l_1+1, ..., 2L+1)."""
  tensor = np.eye(2 * ls[0] + 1)
  for l, lc_in, lc_out in zip(ls[1:], path[:-1], path[1:]):
    cg = clebsch_gordan_for_degrees(lc_in, l, lc_out)
    tensor = np.tensordot(tensor, cg, axes=([-1], [0]))
  return tensor


def _symmetrized_coefficients(
    nls: Tuple[Tuple[int, int], ...],
    path: Tuple[int, ...],
    keys: Dict[_Key, int],
) -> np.ndarray:
  """Coefficients of one coupling path on the products of a class.

  Args:
    nls: Sorted (n, l) pairs of the class.
    path: Intermediate degrees of the coupling path.
    keys: Maps the sorted labels of every product of the class to a column.

  Returns:
    Array of shape (2L+1, len(keys)).

  Raises:
    ValueError: If a product with non-zero coefficient is missing.
  """
  ls = tuple(l for _, l in nls)
  tensor = _coupling_tensor(ls, path)
  degree = path[-1]
  coefficients = np.zeros((2 * degree + 1, len(keys)))
  for index in zip(*np.nonzero(tensor)):
    *m_index, big_m_index = index
    ms = [i - l for i, l in zip(m_index, ls)]
    key = tuple(sorted((n, l, m) for (n, l), m in zip(nls, ms)))
    if key not in keys:
      raise ValueError(
          f'product {key} is required for coupling to degree {degree}, but '
          'it is not part of the PIBasis (was it built for a different '
          'property?)'
      )
    coefficients[big_m_index, keys[key]] += tensor[index]
  return coefficients


class SymmetricBasis:
  """Basis functions with a prescribed symmetry property.

  Attributes:
    pi_basis: The underlying permutation-invariant basis.
    property: Symmetry property of the basis functions.
    rows: Row indices of the non-zero entries of the A2B map. Rows are flat
      indices into ``(len(self), *property.output_shape)``.
    cols: Column indices (PIBasis products) of the non-zero entries.
    values: Values of the non-zero entries.
    classes: For every basis function, the sorted (n, l) pairs of its class.
  """

  def __init__(
      self,
      pi_basis: PIBasis,
      property: Property = Invariant(),  # pylint: disable=redefined-builtin
  ):
    check_property(property)
    self.pi_basis = pi_basis
    self.property = property

    # Group products by class.
    groups = collections.defaultdict(dict)
    for i in range(len(pi_basis)):
      labels = pi_basis.labels(i)
      nls = tuple(sorted((n, l) for n, l, _ in labels))
      groups[nls][tuple(sorted(labels))] = i

    num_m = 2 * property.degree + 1
    rows, cols, values = [], [], []
    self.classes = []
    for nls, products in groups.items():
      # Columns of the coupling coefficients are local to the class.
      keys = {key: j for j, key in enumerate(products)}
      ls = tuple(l for _, l in nls)
      paths = _coupling_paths(ls, property.degree)
      if not paths:
        continue
      coefficients = np.stack(
          [_symmetrized_coefficients(nls, path, keys) for path in paths]
      )
      reduced = self._reduce(coefficients.reshape(len(paths), -1))
      logging.debug(
          'Class %s: %d coupling paths reduced to %d basis functions.',
          nls, len(paths), reduced.shape[0],
      )
      product_index = np.asarray(list(products.values()))
      for row in reduced.reshape(-1, num_m, len(keys)):
        big_m, column = np.nonzero(row)
        rows.append(len(self.classes) * num_m + big_m)
        cols.append(product_index[column])
        values.append(row[big_m, column])
        self.classes.append(nls)

    self.rows = self._freeze(rows, np.int32)
    self.cols = self._freeze(cols, np.int32)
    self.values = self._freeze(values, np.float64)
    self._evaluate = jax.jit(self._evaluate_impl, static_argnums=1)
    self._jacobian = jax.jit(
        jax.jacfwd(self._evaluate_impl), static_argnums=1
    )

    logging.info(
        'Built SymmetricBasis with %d functions from %d products '
        '(%d non-zero coupling coefficients).',
        len(self), len(pi_basis), self.values.size,
    )

  @staticmethod
  def _reduce(coefficients: np.ndarray) -> np.ndarray:
    """Orthonormal basis of the row space of coefficients.

    Coupling coefficients are of order one, so singular values are compared
    to max(s_max, 1). Round-off residues of coefficients that vanish exactly
    after symmetrization are discarded this way.
    """
    _, s, vh = np.linalg.svd(coefficients, full_matrices=False)
    threshold = Config.rank_tolerance * max(s[0], 1.0)
    rank = int(np.sum(s > threshold))
    return vh[:rank]

  @staticmethod
  def _freeze(arrays: List[np.ndarray], dtype) -> np.ndarray:
    array = np.concatenate(arrays) if arrays else np.zeros(0)
    array = array.astype(dtype)
    array.setflags(write=False)
    return array

  def __len__(self) -> int:
    return len(self.classes)

  def __repr__(self) -> str:
    return f'SymmetricBasis(property={self.property}, len={len(self)})'

  @property
  def output_shape(self) -> Tuple[int, ...]:
    return (len(self), *self.property.output_shape)

  def a2b_matrix(self) -> np.ndarray:
    """Dense A2B map of shape ``(len(self), *output_shape, len(pi_basis))``."""
    num_m = 2 * self.property.degree + 1
    dense = np.zeros((len(self) * num_m, len(self.pi_basis)))
    np.add.at(dense, (self.rows, self.cols), self.values)
    return dense.reshape(*self.output_shape, len(self.pi_basis))

  def _evaluate_impl(
      self, positions: Float[Array, 'num_neighbors 3'], center: Hashable
  ) -> Union[Float[Array, '...'], Complex[Array, '...']]:
    aa = self.pi_basis._evaluate_impl(positions, center)  # pylint: disable=protected-access
    num_m = 2 * self.property.degree + 1
    b = jax.ops.segment_sum(
        self.values * aa[self.cols],
        self.rows,
        num_segments=len(self) * num_m,
    )
    b = b.reshape(self.output_shape)
    if isinstance(self.property, Invariant):
      b = b.real
    return b

  def evaluate(
      self,
      positions: Float[Array, 'num_neighbors 3'],
      center: Optional[Hashable] = None,
  ) -> Union[Float[Array, '...'], Complex[Array, '...']]:
    """Evaluates all basis functions for a cluster.

    Args:
      positions: Neighbor positions of shape ``(num_neighbors, 3)``.
      center: State of the center atom, passed on to the one-particle basis.

    Returns:
      Real Array of shape ``(len(self),)`` for invariant bases, complex Array
      of shape ``(len(self), 2L+1)`` for spherical vectors of degree L.
    """
    return self._evaluate(check_positions(positions), center)

  def evaluate_gradient(
      self,
      positions: Float[Array, 'num_neighbors 3'],
      center: Optional[Hashable] = None,
  ) -> Union[Float[Array, '...'], Complex[Array, '...']]:
    """Gradients of all basis functions with respect to the positions.

    Args:
      positions: Neighbor positions of shape ``(num_neighbors, 3)``.
      center: State of the center atom, passed on to the one-particle basis.

    Returns:
      Array of shape ``(*output_shape, num_neighbors, 3)``.

    Raises:
      NumericalDomainError: If (for concrete inputs) a neighbor lies on the
        z-axis, where the angular parametrization is not differentiable.
    """
    positions = check_positions(positions)
    _check_off_axis(positions)
    return self._jacobian(positions, center)


def _check_off_axis(positions: Float[Array, 'num_neighbors 3']) -> None:
  """Raises NumericalDomainError if a concrete position lies on the z-axis."""
  values = _concrete_value(positions)
  if values is not None and np.any(np.all(values[..., :2] == 0, axis=-1)):
    raise NumericalDomainError(
        'gradients are undefined for neighbors on the z-axis (poles of the '
        'spherical parametrization)'
    )


def evaluate(
    basis: Union[PIBasis, SymmetricBasis], cluster: ClusterState
) -> Array:
  """Evaluates a basis on a cluster.

  Example:
    >>> import jax
    >>> import acecore
    >>> one_particle = acecore.basis.RnYlmBasis(max_degree=4, r_cut=2.0)
    >>> pi_basis = acecore.basis.PIBasis(one_particle, order=2, max_degree=4)
    >>> basis = acecore.basis.SymmetricBasis(pi_basis)
    >>> cluster = acecore.basis.random_cluster(jax.random.PRNGKey(0), 5)
    >>> acecore.basis.evaluate(basis, cluster).shape == (len(basis),)
    True

  Args:
    basis: The basis.
    cluster: The cluster.

  Returns:
    The basis values, see :meth:`SymmetricBasis.evaluate`.
  """
  return basis.evaluate(cluster.positions, cluster.center)


def evaluate_gradient(basis: SymmetricBasis, cluster: ClusterState) -> Array:
  """Gradients of a basis with respect to all neighbor positions.

  Args:
    basis: The basis.
    cluster: The cluster.

  Returns:
    The gradients, see :meth:`SymmetricBasis.evaluate_gradient`.
  """
  return basis.evaluate_gradient(cluster.positions, cluster.center)

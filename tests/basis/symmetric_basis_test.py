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

import functools
import acecore
from ..testing import subtests
import jax
import jax.numpy as jnp
import numpy as np
import pytest


def _isapprox(a, b, rtol=1e-10):
  a = np.asarray(a)
  b = np.asarray(b)
  return np.linalg.norm(a - b) <= rtol * max(
      np.linalg.norm(a), np.linalg.norm(b)
  )


@functools.lru_cache(maxsize=None)
def _basis(max_degree, order, prop=acecore.basis.Invariant()):
  one_particle = acecore.basis.RnYlmBasis(max_degree, r_cut=2.0)
  pi_basis = acecore.basis.PIBasis(one_particle, order, max_degree, prop)
  return acecore.basis.SymmetricBasis(pi_basis, prop)


def _cluster(seed, num_neighbors=10):
  return acecore.basis.random_cluster(
      jax.random.PRNGKey(seed), num_neighbors, r_min=0.5, r_max=1.8
  )


def _random_orthogonal(seed):
  rotation_key, reflection_key, flip_key = jax.random.split(
      jax.random.PRNGKey(seed), 3
  )
  rot = acecore.so3.random_rotation(rotation_key)
  if jax.random.bernoulli(flip_key):
    rot = acecore.so3.random_reflection(reflection_key) @ rot
  return rot


def test_symmetric_basis_matches_a2b_map_applied_to_products() -> None:
  basis = _basis(4, 3)
  cluster = _cluster(0)
  aa = basis.pi_basis.evaluate(cluster.positions)
  expected = basis.a2b_matrix() @ aa
  values = acecore.basis.evaluate(basis, cluster)
  assert values.shape == (len(basis),)
  assert jnp.isrealobj(values)
  assert _isapprox(values, expected.real)
  assert np.max(np.abs(expected.imag)) < 1e-10 * np.max(np.abs(expected))


def test_invariant_basis_is_invariant() -> None:
  basis = _basis(6, 3)
  assert len(basis) > 0
  for trial in range(30):
    cluster = _cluster(trial)
    values = acecore.basis.evaluate(basis, cluster)
    permutation = jax.random.permutation(jax.random.PRNGKey(100 + trial), 10)
    rot = _random_orthogonal(200 + trial)
    transformed = cluster.permuted(permutation).transformed(rot)
    assert _isapprox(acecore.basis.evaluate(basis, transformed), values)


@subtests({
    'vectors': dict(L=1, max_degree=5, order=3),
    'degree 2 tensors': dict(L=2, max_degree=4, order=3),
})
def test_spherical_vector_basis_is_covariant(L, max_degree, order) -> None:
  prop = acecore.basis.SphericalVector(L)
  basis = _basis(max_degree, order, prop)
  assert len(basis) > 0
  assert basis.output_shape == (len(basis), 2 * L + 1)
  for trial in range(30):
    cluster = _cluster(trial)
    values = acecore.basis.evaluate(basis, cluster)
    assert values.shape == (len(basis), 2 * L + 1)
    a, b, c = jax.random.uniform(
        jax.random.PRNGKey(300 + trial), (3,), minval=0.0, maxval=2 * jnp.pi
    )
    rot = acecore.so3.rotation_zyz(a, b, c)
    if trial % 3 == 0:
      rot = -rot
    expected = values @ prop.transformation(rot).T
    transformed = acecore.basis.evaluate(basis, cluster.transformed(rot))
    assert _isapprox(transformed, expected)


@subtests({
    'degree 2': dict(max_degree=2),
    'degree 4': dict(max_degree=4),
    'degree 6': dict(max_degree=6),
})
def test_order_two_invariant_basis_size(max_degree) -> None:
  # One function per radial function, and one per unordered pair of
  # one-particle functions (n1, l), (n2, l) of equal degree l.
  expected = max_degree + 1
  for l in range(max_degree // 2 + 1):
    for n1 in range(max_degree + 1):
      for n2 in range(n1, max_degree + 1):
        if n1 + n2 + 2 * l <= max_degree:
          expected += 1
  assert len(_basis(max_degree, 2)) == expected


def test_symmetric_basis_size_is_deterministic() -> None:
  sizes = set()
  for _ in range(2):
    one_particle = acecore.basis.RnYlmBasis(6, r_cut=2.0)
    pi_basis = acecore.basis.PIBasis(one_particle, 3, 6)
    basis = acecore.basis.SymmetricBasis(pi_basis)
    sizes.add((len(basis), basis.values.size))
  assert len(sizes) == 1
  assert len(_basis(6, 3)) == 99


def test_symmetric_basis_with_many_classes() -> None:
  one_particle = acecore.basis.RnYlmBasis(3, r_cut=2.0)
  pi_basis = acecore.basis.PIBasis(one_particle, 2, 3)
  basis = acecore.basis.SymmetricBasis(pi_basis)
  assert len(set(basis.classes)) > 1
  # Products couple to scalars if they are radial or pair two functions of
  # equal degree l.
  coupled = set()
  for i in range(len(pi_basis)):
    ls = [l for _, l, _ in pi_basis.labels(i)]
    if all(l == 0 for l in ls) or (len(ls) == 2 and ls[0] == ls[1]):
      coupled.add(i)
  assert set(basis.cols.tolist()) == coupled
  assert np.all(basis.cols < len(pi_basis))
  cluster = _cluster(11, num_neighbors=6)
  values = acecore.basis.evaluate(basis, cluster)
  expected = basis.a2b_matrix() @ basis.pi_basis.evaluate(cluster.positions)
  assert _isapprox(values, expected.real)


def test_invariant_basis_spans_all_invariant_products() -> None:
  basis = _basis(4, 3)
  pi_basis = basis.pi_basis
  differences = []
  for trial in range(20):
    cluster = _cluster(400 + trial, num_neighbors=8)
    aa = pi_basis.evaluate(cluster.positions)
    for k in range(15):
      rot = _random_orthogonal(1000 + 15 * trial + k)
      differences.append(
          pi_basis.evaluate(cluster.transformed(rot).positions) - aa
      )
  # Invariant linear combinations of the products form the null space.
  s = np.linalg.svd(np.asarray(differences), compute_uv=False)
  rank = int(np.sum(s > 1e-8 * s[0]))
  assert len(basis) == len(pi_basis) - rank
  assert len(basis) == 39


@subtests({
    'invariant': dict(prop=acecore.basis.Invariant()),
    'vector': dict(prop=acecore.basis.SphericalVector(1)),
})
def test_symmetric_basis_is_linearly_independent(prop) -> None:
  basis = _basis(5, 3, prop)
  a2b = basis.a2b_matrix()
  assert a2b.shape == (*basis.output_shape, len(basis.pi_basis))
  a2b = a2b.reshape(len(basis), -1)
  assert np.linalg.matrix_rank(a2b) == len(basis)


def test_symmetric_basis_classes() -> None:
  basis = _basis(4, 3)
  assert len(basis.classes) == len(basis)
  for nls in basis.classes:
    assert list(nls) == sorted(nls)
    assert sum(l for _, l in nls) % 2 == 0


def test_symmetric_basis_arrays_are_read_only() -> None:
  basis = _basis(3, 2)
  for array in (basis.rows, basis.cols, basis.values):
    with pytest.raises(ValueError):
      array[0] = 0


@subtests({
    'invariant': dict(prop=acecore.basis.Invariant()),
    'vector': dict(prop=acecore.basis.SphericalVector(1)),
})
def test_symmetric_basis_gradient_matches_finite_differences(prop) -> None:
  basis = _basis(4, 2, prop)
  cluster = _cluster(7, num_neighbors=4)
  gradients = acecore.basis.evaluate_gradient(basis, cluster)
  assert gradients.shape == (*basis.output_shape, 4, 3)
  h = 1e-5
  positions = np.asarray(cluster.positions)
  for j in range(4):
    for k in range(3):
      shift = np.zeros_like(positions)
      shift[j, k] = h
      plus = basis.evaluate(positions + shift)
      minus = basis.evaluate(positions - shift)
      finite_difference = (plus - minus) / (2 * h)
      assert jnp.allclose(
          gradients[..., j, k], finite_difference, rtol=1e-5, atol=1e-6
      )


def test_symmetric_basis_gradient_raises_on_z_axis() -> None:
  basis = _basis(3, 2)
  positions = jnp.asarray([[0.0, 0.0, 1.2], [0.4, 0.3, -0.2]])
  with pytest.raises(acecore.NumericalDomainError, match='z-axis'):
    basis.evaluate_gradient(positions)


def test_symmetric_basis_raises_for_mismatched_property() -> None:
  one_particle = acecore.basis.RnYlmBasis(2)
  pi_basis = acecore.basis.PIBasis(one_particle, 2, 2)
  with pytest.raises(ValueError, match='is not part of the PIBasis'):
    acecore.basis.SymmetricBasis(pi_basis, acecore.basis.SphericalVector(1))


def test_symmetric_basis_raises_for_unsupported_property() -> None:
  pi_basis = acecore.basis.PIBasis(acecore.basis.RnYlmBasis(2), 2, 2)
  with pytest.raises(ValueError, match='property must be'):
    acecore.basis.SymmetricBasis(pi_basis, 'vector')


def test_symmetric_basis_with_center_state() -> None:
  basis = _basis(3, 2)
  cluster = acecore.basis.random_cluster(
      jax.random.PRNGKey(3), 6, r_min=0.5, r_max=1.8, center='Si'
  )
  values = acecore.basis.evaluate(basis, cluster)
  assert jnp.allclose(values, basis.evaluate(cluster.positions))

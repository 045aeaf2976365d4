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

import inspect
import math
import warnings
import acecore
from acecore.so3 import index_p
from acecore.so3 import size_p
from ..testing import subtests
import jax
import jax.numpy as jnp
import numpy as np
import pytest


def _closed_form(l: int, m: int, x: float) -> float:
  """Normalized P_l^m(x) for l <= 2 written out explicitly."""
  sin_theta = math.sqrt(1 - x * x)
  return {
      (0, 0): math.sqrt(1 / (4 * math.pi)),
      (1, 0): math.sqrt(3 / (4 * math.pi)) * x,
      (1, 1): -math.sqrt(3 / (8 * math.pi)) * sin_theta,
      (2, 0): math.sqrt(5 / (4 * math.pi)) * (3 * x * x - 1) / 2,
      (2, 1): -math.sqrt(15 / (8 * math.pi)) * x * sin_theta,
      (2, 2): math.sqrt(15 / (32 * math.pi)) * sin_theta**2,
  }[(l, m)]


@subtests({
    'size for degree 0': dict(max_degree=0, expected=1),
    'size for degree 1': dict(max_degree=1, expected=3),
    'size for degree 4': dict(max_degree=4, expected=15),
})
def test_size_p(max_degree: int, expected: int) -> None:
  assert size_p(max_degree) == expected


@pytest.mark.parametrize('max_degree', [0, 3, 7])
def test_index_p_is_bijection(max_degree: int) -> None:
  indices = [
      index_p(l, m) for l in range(max_degree + 1) for m in range(l + 1)
  ]
  assert sorted(indices) == list(range(size_p(max_degree)))


def test_compute_coefficients() -> None:
  coefficients = acecore.so3.compute_coefficients(4)
  assert coefficients.max_degree == 4
  assert coefficients.a.shape == coefficients.b.shape == (15,)
  assert math.isclose(coefficients.a[index_p(2, 0)], math.sqrt(15) / 2)
  assert math.isclose(coefficients.b[index_p(2, 0)], -math.sqrt(1 / 3))
  # Diagonal entries are not computed by the three-term recurrence.
  for l in range(5):
    for m in range(max(l - 1, 0), l + 1):
      assert coefficients.a[index_p(l, m)] == 0.0
      assert coefficients.b[index_p(l, m)] == 0.0
  with pytest.raises(ValueError, match='read-only'):
    coefficients.a[0] = 1.0


def test_compute_coefficients_raises_with_negative_degree() -> None:
  with pytest.raises(ValueError, match='degree must be positive or zero'):
    acecore.so3.compute_coefficients(-1)


@pytest.mark.parametrize('max_degree', [0, 1, 5, 12])
def test_p00_is_constant(max_degree: int) -> None:
  x = jnp.linspace(-1.0, 1.0, 11)
  p = acecore.so3.legendre_p(max_degree, x)
  assert p.shape == (11, size_p(max_degree))
  assert jnp.allclose(p[:, 0], 0.282094791773878, atol=1e-15)


@pytest.mark.parametrize('x', [-1.0, -0.3, 0.0, 0.55, 1.0])
def test_legendre_p_closed_form(x: float) -> None:
  p = acecore.so3.legendre_p(2, x)
  for l in range(3):
    for m in range(l + 1):
      assert math.isclose(
          p[index_p(l, m)], _closed_form(l, m, x), rel_tol=1e-13,
          abs_tol=1e-15,
      )


def test_legendre_p_is_orthonormal() -> None:
  max_degree = 8
  x, w = np.polynomial.legendre.leggauss(2 * max_degree + 2)
  p = acecore.so3.legendre_p(max_degree, jnp.asarray(x))
  for m in range(max_degree + 1):
    columns = [index_p(l, m) for l in range(m, max_degree + 1)]
    gram = 2 * jnp.pi * jnp.einsum('n,ni,nj->ij', w, p[:, columns], p[:, columns])
    assert jnp.allclose(gram, jnp.eye(len(columns)), atol=1e-12)


def test_legendre_p_accepts_precomputed_coefficients() -> None:
  coefficients = acecore.so3.compute_coefficients(6)
  x = jnp.asarray([-0.9, 0.1, 0.7])
  assert jnp.array_equal(
      acecore.so3.legendre_p(4, x, coefficients), acecore.so3.legendre_p(4, x)
  )


@pytest.mark.parametrize('theta', [0.1, 0.8, jnp.pi / 2, 2.3, 3.0])
def test_legendre_dp_matches_autodiff(theta: float) -> None:
  max_degree = 7
  p, dp = acecore.so3.legendre_dp(max_degree, jnp.cos(theta))
  func = lambda t: acecore.so3.legendre_p(max_degree, jnp.cos(t))
  assert jnp.allclose(p, func(theta), atol=1e-14)
  assert jnp.allclose(dp, jax.jacfwd(func)(theta), atol=1e-12)


@pytest.mark.parametrize('x, sign', [(1.0, 1.0), (-1.0, -1.0)])
def test_legendre_dp_is_finite_at_the_poles(x: float, sign: float) -> None:
  _, dp = acecore.so3.legendre_dp(6, x)
  assert jnp.all(jnp.isfinite(dp))
  # d/dtheta P_1^1(cos(theta)) = -sqrt(3/(8 pi)) cos(theta).
  assert math.isclose(dp[index_p(1, 1)], -sign * math.sqrt(3 / (8 * math.pi)))


def test_legendre_p_works_under_jit() -> None:
  x = jnp.asarray([-0.5, 0.25])
  jitted = jax.jit(acecore.so3.legendre_p, static_argnums=0)
  assert jnp.allclose(jitted(5, x), acecore.so3.legendre_p(5, x))


@subtests({
    'negative degree': dict(
        max_degree=-1,
        x=0.5,
        coefficients=None,
        message='degree must be positive or zero',
    ),
    '|x| larger than 1': dict(
        max_degree=2,
        x=jnp.asarray([0.5, 1.0 + 1e-9]),
        coefficients=None,
        message='x must satisfy',
    ),
    'too few coefficients': dict(
        max_degree=4,
        x=0.5,
        coefficients=acecore.so3.compute_coefficients(3),
        message='coefficients were computed for max_degree=3',
    ),
})
def test_legendre_raises_with_invalid_arguments(
    max_degree, x, coefficients, message
) -> None:
  with pytest.raises(ValueError, match=message):
    acecore.so3.legendre_p(max_degree, x, coefficients)
  with pytest.raises(ValueError, match=message):
    acecore.so3.legendre_dp(max_degree, x, coefficients)


def test_legendre_module_compiles_without_warnings() -> None:
  source = inspect.getsource(acecore.so3.legendre)
  with warnings.catch_warnings():
    warnings.simplefilter('error')
    compile(source, acecore.so3.legendre.__file__, 'exec')
  assert r'a_\ell^m' in acecore.so3.ALPCoefficients.__doc__

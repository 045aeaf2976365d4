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

import acecore
import jax
import jax.numpy as jnp
import numpy as np
import pytest


@pytest.mark.parametrize('num', [1, 2, 7])
def test_chebyshev_radial_basis_matches_numpy(num: int) -> None:
  cutoff = 2.5
  r = jnp.linspace(0.0, 2.4, 13)
  value = acecore.basis.chebyshev_radial_basis(r, num, cutoff=cutoff)
  x = 2 * np.asarray(r) / cutoff - 1
  envelope = np.asarray(acecore.basis.smooth_cutoff(r, cutoff=cutoff))
  expected = np.stack(
      [np.polynomial.chebyshev.Chebyshev.basis(n)(x) for n in range(num)],
      axis=-1,
  )
  assert value.shape == (13, num)
  assert jnp.allclose(value, expected * envelope[:, None], atol=1e-14)


def test_chebyshev_radial_basis_vanishes_beyond_cutoff() -> None:
  r = jnp.asarray([1.0, 1.5, 3.0])
  value = acecore.basis.chebyshev_radial_basis(r, 5, cutoff=1.0)
  assert jnp.all(value == 0.0)


def test_chebyshev_radial_basis_has_finite_derivatives() -> None:
  r = jnp.asarray([0.0, 0.5, 0.999999, 1.0, 1.2])
  jacobian = jax.vmap(
      jax.jacfwd(lambda r: acecore.basis.chebyshev_radial_basis(r, 4))
  )(r)
  assert jnp.all(jnp.isfinite(jacobian))
  assert jnp.all(jacobian[-2:] == 0.0)


def test_smooth_cutoff() -> None:
  x = jnp.asarray([0.0, 0.5, 1.0, 2.0])
  value = acecore.basis.smooth_cutoff(x)
  assert value[0] == 1.0
  assert jnp.isclose(value[1], jnp.exp(1 - 1 / 0.75))
  assert jnp.all(value[2:] == 0.0)


def test_smooth_cutoff_raises_with_invalid_cutoff() -> None:
  with pytest.raises(ValueError, match='cutoff must be larger than 0'):
    acecore.basis.smooth_cutoff(jnp.ones(3), cutoff=0.0)


def test_chebyshev_radial_basis_raises_with_invalid_num() -> None:
  with pytest.raises(ValueError, match='num must be greater or equal to 1'):
    acecore.basis.chebyshev_radial_basis(jnp.ones(3), 0)

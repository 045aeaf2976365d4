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

"""Common utility functions used in the so3 submodule."""

from typing import Any, Optional
import jax
import jax.numpy as jnp
import numpy as np


def _check_degree_is_positive_or_zero(degree: int) -> None:
  """Checks whether the input degree is positive or zero."""
  if degree < 0:
    raise ValueError(f'degree must be positive or zero, received {degree}')


def _check_order_is_valid(degree: int, order: int) -> None:
  """Checks whether -degree <= order <= degree."""
  if abs(order) > degree:
    raise ValueError(
        f'order must satisfy |order| <= degree={degree}, received {order}'
    )


def size_p(max_degree: int) -> int:
  """Number of associated Legendre polynomials P_l^m with l <= max_degree."""
  return ((max_degree + 1) * (max_degree + 2)) // 2


def size_y(max_degree: int) -> int:
  """Number of spherical harmonics Y_l^m with l <= max_degree."""
  return (max_degree + 1) * (max_degree + 1)


def index_p(l: int, m: int) -> int:
  """Flat index of P_l^m (0 <= m <= l), stored as [P00, P10, P11, P20, ...]."""
  return m + (l * (l + 1)) // 2


def index_y(l: int, m: int) -> int:
  """Flat index of Y_l^m (-l <= m <= l), stored as [Y00, Y1-1, Y10, ...]."""
  return m + l + l * l


def _concrete_value(x: Any) -> Optional[np.ndarray]:
  """Returns x as NumPy array, or None if x is traced (e.g. inside jax.jit).

  Checks on the values of arrays can only be performed for concrete inputs,
  they are silently skipped while tracing.
  """
  try:
    return np.asarray(x)
  except (
      jax.errors.TracerArrayConversionError,
      jax.errors.ConcretizationTypeError,
  ):
    return None


def _as_float_array(x: Any) -> jax.Array:
  """Converts x to a JAX array with a floating point dtype."""
  x = jnp.asarray(x)
  return x.astype(jnp.result_type(x.dtype, float))

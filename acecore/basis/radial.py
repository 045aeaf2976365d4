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

"""Radial basis functions with a smooth cutoff."""

from typing import Union
import jax.numpy as jnp
import jaxtyping

Array = jaxtyping.Array
Float = jaxtyping.Float


def _chebyshev(
    x: Float[Array, '...'],
    num: int,
) -> Float[Array, '... num']:
  """Helper function to evaluate the first num Chebyshev polynomials.

  Uses the three-term recurrence T_{k+1} = 2x T_k - T_{k-1}, which is valid
  (and smooth) for all x, not only inside [-1, 1].

  Args:
    x: Input array.
    num: Number of Chebyshev polynomials (maximum degree is num-1).

  Returns:
    The first num Chebyshev polynomials evaluated at x.
  """
  if num < 1:
    raise ValueError(f'num must be greater or equal to 1, received {num}')
  t = [jnp.ones_like(x), x]
  for _ in range(2, num):
    t.append(2 * x * t[-1] - t[-2])
  return jnp.stack(t[:num], axis=-1)


def smooth_cutoff(
    x: Float[Array, '...'],
    cutoff: Union[Float[Array, ''], float] = 1.0,
) -> Float[Array, '...']:
  r"""Smooth cutoff function.

  Computes the function

  .. math::
    \mathrm{smooth\_cutoff}(x) = \begin{cases}
      \exp\left(1-\frac{1}{1-\left(\frac{x}{c}\right)^2}\right),
      & x < c\\
      0, & x \ge c
    \end{cases}

  which is zero beyond :math:`c` = ``cutoff`` and is infinitely differentiable.

  Args:
    x: Input array.
    cutoff: Cutoff value (must be larger than 0).

  Returns:
    The function value.

  Raises:
    ValueError: If ``cutoff`` is smaller or equal to 0.
  """
  if cutoff <= 0.0:
    raise ValueError(f'cutoff must be larger than 0, received {cutoff}')
  x = x / cutoff
  inside_cutoff = jnp.abs(x) < 1
  safe_x = jnp.where(inside_cutoff, x, 0)
  return jnp.where(inside_cutoff, jnp.exp(1 - 1 / (1 - safe_x * safe_x)), 0)


def chebyshev_radial_basis(
    r: Float[Array, '...'],
    num: int,
    cutoff: Union[Float[Array, ''], float] = 1.0,
) -> Float[Array, '... num']:
  r"""Chebyshev radial basis functions that smoothly vanish at the cutoff.

  Computes

  .. math::
    R_n(r) = T_n\left(2\frac{r}{c}-1\right)\,\mathrm{smooth\_cutoff}(r)

  for :math:`n=0,\dots,N-1` with :math:`N` = ``num`` and :math:`c` =
  ``cutoff``, where :math:`T_n` are Chebyshev polynomials of the first kind.

  Args:
    r: Input array of distances.
    num: Number of radial basis functions :math:`N`.
    cutoff: Cutoff distance (must be larger than 0).

  Returns:
    Value of all basis functions for all values in ``r``. The output shape
    follows the input, with an additional dimension of size ``num`` appended.

  Raises:
    ValueError: If ``num`` is smaller than 1 or ``cutoff`` is smaller or equal
      to 0.
  """
  envelope = smooth_cutoff(r, cutoff=cutoff)
  return _chebyshev(2 * r / cutoff - 1, num) * envelope[..., None]

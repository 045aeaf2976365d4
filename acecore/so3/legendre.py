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

r"""Normalized associated Legendre polynomials :math:`P_\ell^m(x)`."""

import math
from typing import NamedTuple, Optional, Tuple
import jax.numpy as jnp
import jaxtyping
import numpy as np

from ._common import _check_degree_is_positive_or_zero
from ._common import _concrete_value
from ._common import index_p
from ._common import size_p
# pylint: enable=g-importing-member

Array = jaxtyping.Array
Float = jaxtyping.Float

_SQRT_INV_4PI = 0.28209479177387814347  # sqrt(1/(4*pi))
_SQRT3 = 1.7320508075688772935
_MINUS_SQRT3_DIV2 = -1.2247448713915890491  # -sqrt(3/2)


class ALPCoefficients(NamedTuple):
  r"""Recursion coefficients for associated Legendre polynomials.

  Attributes:
    max_degree: Maximum degree L for which the coefficients are valid.
    a: Coefficients :math:`a_\ell^m`, stored at ``index_p(l, m)``.
    b: Coefficients :math:`b_\ell^m`, stored at ``index_p(l, m)``.
  """

  max_degree: int
  a: Float[np.ndarray, 'size_p']
  b: Float[np.ndarray, 'size_p']


def compute_coefficients(max_degree: int) -> ALPCoefficients:
  r"""Precomputes recursion coefficients for all :math:`\ell \le L`.

  For :math:`2\le\ell\le L` and :math:`0\le m\le\ell-2`:

  .. math::
    a_\ell^m = \sqrt{\frac{4\ell^2-1}{\ell^2-m^2}}\,,\qquad
    b_\ell^m = -\sqrt{\frac{(\ell-1)^2-m^2}{4(\ell-1)^2-1}}\,.

  All other entries are zero. The returned arrays are read-only.

  Args:
    max_degree: Maximum degree :math:`L`.

  Returns:
    The recursion coefficients.

  Raises:
    ValueError: If ``max_degree`` is negative.
  """
  _check_degree_is_positive_or_zero(max_degree)
  a = np.zeros(size_p(max_degree), dtype=np.float64)
  b = np.zeros(size_p(max_degree), dtype=np.float64)
  for l in range(2, max_degree + 1):
    ls = l * l
    lm1s = (l - 1) * (l - 1)
    for m in range(l - 1):
      ms = m * m
      a[index_p(l, m)] = math.sqrt((4 * ls - 1.0) / (ls - ms))
      b[index_p(l, m)] = -math.sqrt((lm1s - ms) / (4 * lm1s - 1.0))
  a.setflags(write=False)
  b.setflags(write=False)
  return ALPCoefficients(max_degree=max_degree, a=a, b=b)


def _check_arguments(
    max_degree: int,
    x: Float[Array, '...'],
    coefficients: Optional[ALPCoefficients],
) -> ALPCoefficients:
  """Checks preconditions shared by legendre_p and legendre_dp."""
  _check_degree_is_positive_or_zero(max_degree)
  if coefficients is None:
    coefficients = compute_coefficients(max_degree)
  elif coefficients.max_degree < max_degree:
    raise ValueError(
        f'coefficients were computed for max_degree={coefficients.max_degree}'
        f', but max_degree={max_degree} was requested'
    )
  values = _concrete_value(x)
  if values is not None and np.any(np.abs(values) > 1.0):
    raise ValueError(
        'x must satisfy |x| <= 1, received values with maximum absolute '
        f'value {np.max(np.abs(values))}'
    )
  return coefficients


def _sin_theta(x: Float[Array, '...']) -> Float[Array, '...']:
  """sqrt(1-x²), clamped so that |x| = 1 (the poles) gives exactly 0."""
  return jnp.sqrt(jnp.maximum(1.0 - x * x, 0.0))


def legendre_p(
    max_degree: int,
    x: Float[Array, '...'],
    coefficients: Optional[ALPCoefficients] = None,
) -> Float[Array, '... size_p']:
  r"""Normalized associated Legendre polynomials :math:`P_\ell^m(x)`.

  Evaluates :math:`P_\ell^m(x)` for all :math:`0\le m\le\ell\le L` with
  :math:`L` = ``max_degree``, normalized such that
  :math:`P_\ell^m(\cos\theta)e^{im\varphi}` are the orthonormal complex
  spherical harmonics (including the Condon-Shortley phase). The recursion is
  seeded with

  .. math::
    P_0^0 = \sqrt{\tfrac{1}{4\pi}}\,,\quad
    P_1^0 = \sqrt{3}\,x\,P_0^0\,,\quad
    P_1^1 = -\sqrt{\tfrac{3}{2}}\,\sin\theta\,P_0^0\,,

  and continued with :math:`P_\ell^m = a_\ell^m(x P_{\ell-1}^m + b_\ell^m
  P_{\ell-2}^m)` for :math:`m\le\ell-2`, while the two diagonal entries follow
  from :math:`P_\ell^{\ell-1} = \sqrt{2\ell+1}\,x\,P_{\ell-1}^{\ell-1}` and
  :math:`P_\ell^\ell = -\sqrt{1+\tfrac{1}{2\ell}}\,\sin\theta\,
  P_{\ell-1}^{\ell-1}`.

  Args:
    max_degree: Maximum degree :math:`L`.
    x: Array of values :math:`x=\cos\theta` with :math:`|x|\le 1`.
    coefficients: Precomputed recursion coefficients (computed on the fly if
      not given).

  Returns:
    An Array of shape ``(..., (L+1)*(L+2)//2)`` where entry ``index_p(l, m)``
    holds :math:`P_\ell^m(x)`.

  Raises:
    ValueError: If ``max_degree`` is negative, ``coefficients`` do not cover
      ``max_degree``, or (for concrete inputs) any :math:`|x|>1`.
  """
  coefficients = _check_arguments(max_degree, x, coefficients)
  x = jnp.asarray(x, dtype=jnp.result_type(float))
  sin_theta = _sin_theta(x)

  p = [None] * size_p(max_degree)
  temp = jnp.full_like(x, _SQRT_INV_4PI)
  p[index_p(0, 0)] = temp
  if max_degree > 0:
    p[index_p(1, 0)] = x * _SQRT3 * temp
    temp = _MINUS_SQRT3_DIV2 * sin_theta * temp
    p[index_p(1, 1)] = temp
    for l in range(2, max_degree + 1):
      for m in range(l - 1):
        i = index_p(l, m)
        p[i] = coefficients.a[i] * (
            x * p[index_p(l - 1, m)] + coefficients.b[i] * p[index_p(l - 2, m)]
        )
      p[index_p(l, l - 1)] = x * math.sqrt(2 * l + 1) * temp
      temp = -math.sqrt(1.0 + 0.5 / l) * sin_theta * temp
      p[index_p(l, l)] = temp
  return jnp.stack(p, axis=-1)


def legendre_dp(
    max_degree: int,
    x: Float[Array, '...'],
    coefficients: Optional[ALPCoefficients] = None,
) -> Tuple[Float[Array, '... size_p'], Float[Array, '... size_p']]:
  r"""Associated Legendre polynomials and their derivatives w.r.t. θ.

  Same as :func:`legendre_p`, but additionally returns
  :math:`\frac{d}{d\theta}P_\ell^m(\cos\theta)` (note: the derivative with
  respect to :math:`\theta`, not :math:`x`). The derivatives are obtained by
  differentiating every step of the recursion with the product rule, using
  :math:`\frac{dx}{d\theta}=-\sin\theta` and
  :math:`\frac{d\sin\theta}{d\theta}=x`.

  Args:
    max_degree: Maximum degree :math:`L`.
    x: Array of values :math:`x=\cos\theta` with :math:`|x|\le 1`.
    coefficients: Precomputed recursion coefficients (computed on the fly if
      not given).

  Returns:
    A tuple ``(P, dP)`` of Arrays with shape ``(..., (L+1)*(L+2)//2)``.

  Raises:
    ValueError: If ``max_degree`` is negative, ``coefficients`` do not cover
      ``max_degree``, or (for concrete inputs) any :math:`|x|>1`.
  """
  coefficients = _check_arguments(max_degree, x, coefficients)
  x = jnp.asarray(x, dtype=jnp.result_type(float))
  sin_theta = _sin_theta(x)
  x_dtheta = -sin_theta
  sin_theta_dtheta = x

  p = [None] * size_p(max_degree)
  dp = [None] * size_p(max_degree)
  temp = jnp.full_like(x, _SQRT_INV_4PI)
  temp_dtheta = jnp.zeros_like(x)
  p[index_p(0, 0)] = temp
  dp[index_p(0, 0)] = temp_dtheta
  if max_degree > 0:
    p[index_p(1, 0)] = x * _SQRT3 * temp
    dp[index_p(1, 0)] = x_dtheta * _SQRT3 * temp
    temp, temp_dtheta = (
        _MINUS_SQRT3_DIV2 * sin_theta * temp,
        _MINUS_SQRT3_DIV2 * sin_theta_dtheta * temp,
    )
    p[index_p(1, 1)] = temp
    dp[index_p(1, 1)] = temp_dtheta
    for l in range(2, max_degree + 1):
      for m in range(l - 1):
        i = index_p(l, m)
        i1 = index_p(l - 1, m)
        i2 = index_p(l - 2, m)
        p[i] = coefficients.a[i] * (x * p[i1] + coefficients.b[i] * p[i2])
        dp[i] = coefficients.a[i] * (
            x_dtheta * p[i1] + x * dp[i1] + coefficients.b[i] * dp[i2]
        )
      c = math.sqrt(2 * l + 1)
      p[index_p(l, l - 1)] = x * c * temp
      dp[index_p(l, l - 1)] = c * (x_dtheta * temp + x * temp_dtheta)
      # Both updates use the diagonal value of degree l-1.
      c = -math.sqrt(1.0 + 0.5 / l)
      temp, temp_dtheta = (
          c * sin_theta * temp,
          c * (sin_theta_dtheta * temp + sin_theta * temp_dtheta),
      )
      p[index_p(l, l)] = temp
      dp[index_p(l, l)] = temp_dtheta
  return jnp.stack(p, axis=-1), jnp.stack(dp, axis=-1)

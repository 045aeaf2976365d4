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

r"""Complex spherical harmonics :math:`Y_\ell^m` evaluated from Cartesian input.

Directions are parametrized as

.. math::
  \vec{R} = r\,(\cos\varphi\sin\theta,\ \sin\varphi\sin\theta,\ \cos\theta)

and represented by the tuple :math:`(r, x, z, s)` with :math:`x=\sin\varphi`,
:math:`z=\cos\theta` and :math:`s=\mathrm{sign}(R_x)`, which selects the branch
of :math:`\varphi` (so that :math:`\cos\varphi = s\sqrt{1-x^2}`).
"""

import math
from typing import Optional, Tuple
from acecore import ops
from acecore.errors import NumericalDomainError
import jax.numpy as jnp
import jaxtyping
import numpy as np

from ._common import _as_float_array
from ._common import _check_degree_is_positive_or_zero
from ._common import _concrete_value
from ._common import index_p
from ._common import index_y
from ._common import size_p
from ._common import size_y
from .legendre import ALPCoefficients
from .legendre import compute_coefficients
from .legendre import legendre_dp
from .legendre import legendre_p
# pylint: enable=g-importing-member

Array = jaxtyping.Array
Complex = jaxtyping.Complex
Float = jaxtyping.Float

_INV_SQRT2 = 1 / math.sqrt(2)


def _check_vector_shape(r: Float[Array, '...']) -> None:
  """Checks that r has shape (..., 3)."""
  if r.ndim == 0 or r.shape[-1] != 3:
    raise ValueError(f'r must have shape (..., 3), received shape {r.shape}')


def _check_buffer_size(
    name: str, array: Array, required: int, max_degree: int
) -> None:
  """Checks that the last axis of array holds at least required entries."""
  if array.shape[-1] < required:
    raise ValueError(
        f'{name} must have at least {required} entries along the last axis '
        f'for max_degree={max_degree}, received shape {array.shape}'
    )


def cartesian_to_rxzs(
    r: Float[Array, '... 3'],
) -> Tuple[
    Float[Array, '...'],
    Float[Array, '...'],
    Float[Array, '...'],
    Float[Array, '...'],
]:
  r"""Converts Cartesian vectors to the :math:`(r, x, z, s)` parametrization.

  Computes :math:`r=\lVert\vec{R}\rVert`, :math:`z=R_z/r`,
  :math:`x=R_y/\sqrt{R_x^2+R_y^2}` (which equals :math:`R_y/(r\sqrt{1-z^2})`)
  and :math:`s=\mathrm{sign}(R_x)`, with :math:`s=1` for :math:`R_x=0`.

  On the poles (:math:`z^2=1`) the azimuth is undefined. By convention,
  :math:`\varphi=0` is used there, i.e. :math:`x=0` and :math:`s=1`. All
  spherical harmonics are continuous at the poles, so their values do not
  depend on this choice.

  Args:
    r: Array of shape ``(..., 3)`` containing Cartesian vectors.

  Returns:
    A tuple ``(r, x, z, s)`` of Arrays with shape ``(...)``.

  Raises:
    ValueError: If ``r`` does not have shape ``(..., 3)``.
    NumericalDomainError: If (for concrete inputs) any vector has zero length.
  """
  r = _as_float_array(r)
  _check_vector_shape(r)
  values = _concrete_value(r)
  if values is not None and np.any(np.all(values == 0, axis=-1)):
    raise NumericalDomainError(
        'cannot determine the direction of a zero-length vector'
    )
  norm = ops.norm(r, axis=-1)
  rho = ops.norm(r[..., :2], axis=-1)  # r * sin(theta).
  z = jnp.clip(ops.safe_divide(r[..., 2], norm, 1.0), -1.0, 1.0)
  x = jnp.clip(ops.safe_divide(r[..., 1], rho, 0.0), -1.0, 1.0)
  s = jnp.where(r[..., 0] < 0, -1.0, 1.0).astype(r.dtype)
  return norm, x, z, s


def complex_spherical_harmonics(
    max_degree: int,
    r: Float[Array, '...'],
    x: Float[Array, '...'],
    z: Float[Array, '...'],
    s: Float[Array, '...'],
    p: Float[Array, '... size_p'],
) -> Complex[Array, '... (max_degree+1)**2']:
  r"""Complex spherical harmonics from precomputed Legendre polynomials.

  With :math:`P_\ell^m` from :func:`legendre_p
  <acecore.so3.legendre.legendre_p>` (evaluated at :math:`z`), computes

  .. math::
    Y_\ell^0 = \tfrac{1}{\sqrt{2}}P_\ell^0\,,\quad
    Y_\ell^m = \tfrac{1}{\sqrt{2}}P_\ell^m e^{im\varphi}\,,\quad
    Y_\ell^{-m} = (-1)^m\,\overline{Y_\ell^m}\,.

  The phase :math:`e^{im\varphi}` is accumulated incrementally by repeated
  multiplication with :math:`e^{i\varphi}=s\sqrt{1-x^2}+ix`, so no
  trigonometric functions are evaluated. With this normalization,
  :math:`\sum_m\lvert Y_\ell^m\rvert^2 = \frac{2\ell+1}{8\pi}` for every
  direction.

  Args:
    max_degree: Maximum degree :math:`L`.
    r: Norms of the input vectors (the spherical harmonics do not depend on
      them, they are part of the parametrization).
    x: :math:`\sin\varphi`.
    z: :math:`\cos\theta`.
    s: Sign of the :math:`x`-component of the input vectors.
    p: Legendre polynomials :math:`P_\ell^m(z)` for all :math:`\ell\le L`.

  Returns:
    An Array of shape ``(..., (L+1)**2)`` where entry ``index_y(l, m)`` holds
    :math:`Y_\ell^m`.

  Raises:
    ValueError: If ``max_degree`` is negative, ``p`` holds too few entries or
      (for concrete inputs) any :math:`|z|>1`.
  """
  del r  # The spherical harmonics depend on the direction only.
  _check_degree_is_positive_or_zero(max_degree)
  _check_buffer_size('p', p, size_p(max_degree), max_degree)
  values = _concrete_value(z)
  if values is not None and np.any(np.abs(values) > 1.0):
    raise ValueError('z must satisfy |z| <= 1')

  y = [None] * size_y(max_degree)
  for l in range(max_degree + 1):
    y[index_y(l, 0)] = p[..., index_p(l, 0)] * _INV_SQRT2

  sig = 1
  ep = _INV_SQRT2
  ep_fact = s * jnp.sqrt(jnp.maximum(1 - x * x, 0)) + 1j * x
  for m in range(1, max_degree + 1):
    sig = -sig
    ep = ep * ep_fact  # exp(i*m*phi) / sqrt(2).
    em = sig * jnp.conj(ep)  # (-1)^m * exp(-i*m*phi) / sqrt(2).
    for l in range(m, max_degree + 1):
      pv = p[..., index_p(l, m)]
      y[index_y(l, -m)] = em * pv
      y[index_y(l, m)] = ep * pv

  return jnp.stack(y, axis=-1).astype(jnp.result_type(p.dtype, jnp.complex64))


def spherical_to_cartesian_gradient(
    r: Float[Array, '...'],
    x: Float[Array, '...'],
    z: Float[Array, '...'],
    s: Float[Array, '...'],
    f_phi: Complex[Array, '...'],
    f_theta: Complex[Array, '...'],
) -> Complex[Array, '... 3']:
  r"""Converts a gradient in spherical angles to a Cartesian gradient.

  For a function :math:`f(\theta,\varphi)` that does not depend on :math:`r`,

  .. math::
    \nabla f = \frac{1}{r}\left(\frac{\partial f}{\partial\theta}\,
    \hat{e}_\theta + \frac{1}{\sin\theta}\frac{\partial f}{\partial\varphi}\,
    \hat{e}_\varphi\right)

  with :math:`\hat{e}_\theta=(\cos\theta\cos\varphi,\cos\theta\sin\varphi,
  -\sin\theta)` and :math:`\hat{e}_\varphi=(-\sin\varphi,\cos\varphi,0)`.

  Args:
    r: Norms of the input vectors.
    x: :math:`\sin\varphi`.
    z: :math:`\cos\theta`.
    s: Sign of the :math:`x`-component of the input vectors.
    f_phi: :math:`\partial f/\partial\varphi`.
    f_theta: :math:`\partial f/\partial\theta`.

  Returns:
    The Cartesian gradient, an Array of shape ``(..., 3)``.

  Raises:
    NumericalDomainError: If (for concrete inputs) any direction lies on a
      pole, where the :math:`1/\sin\theta` factor is singular.
  """
  values = _concrete_value(z)
  if values is not None and np.any(np.abs(values) >= 1.0):
    raise NumericalDomainError(
        'the Cartesian gradient is undefined in the (r, x, z, s) '
        'parametrization on the poles (z = +1 or z = -1)'
    )
  sin_theta = jnp.sqrt(jnp.maximum(1 - z * z, 0))
  cos_phi = s * jnp.sqrt(jnp.maximum(1 - x * x, 0))
  inv_r = ops.safe_divide(1.0, r)
  f_phi = ops.safe_divide(f_phi, sin_theta)
  return jnp.stack(
      (
          inv_r * (f_theta * z * cos_phi - f_phi * x),
          inv_r * (f_theta * z * x + f_phi * cos_phi),
          -inv_r * f_theta * sin_theta,
      ),
      axis=-1,
  )


def complex_spherical_harmonics_gradient(
    max_degree: int,
    r: Float[Array, '...'],
    x: Float[Array, '...'],
    z: Float[Array, '...'],
    s: Float[Array, '...'],
    p: Float[Array, '... size_p'],
    dp: Float[Array, '... size_p'],
) -> Tuple[
    Complex[Array, '... (max_degree+1)**2'],
    Complex[Array, '... (max_degree+1)**2 3'],
]:
  r"""Complex spherical harmonics and their Cartesian gradients.

  See :func:`complex_spherical_harmonics` for the values. The angular
  derivatives are :math:`\partial_\theta Y_\ell^{\pm m} = e^{\pm}\,
  \partial_\theta P_\ell^m` and :math:`\partial_\varphi Y_\ell^{\pm m} = \pm
  im\,Y_\ell^{\pm m}`, which are converted to Cartesian gradients with
  :func:`spherical_to_cartesian_gradient`.

  Args:
    max_degree: Maximum degree :math:`L`.
    r: Norms of the input vectors.
    x: :math:`\sin\varphi`.
    z: :math:`\cos\theta`.
    s: Sign of the :math:`x`-component of the input vectors.
    p: Legendre polynomials :math:`P_\ell^m(z)`.
    dp: Derivatives :math:`\frac{d}{d\theta}P_\ell^m(\cos\theta)`.

  Returns:
    A tuple ``(Y, dY)`` with shapes ``(..., (L+1)**2)`` and
    ``(..., (L+1)**2, 3)``.

  Raises:
    ValueError: If ``max_degree`` is negative or ``p``/``dp`` hold too few
      entries.
    NumericalDomainError: If (for concrete inputs) any direction lies on a
      pole.
  """
  _check_degree_is_positive_or_zero(max_degree)
  _check_buffer_size('p', p, size_p(max_degree), max_degree)
  _check_buffer_size('dp', dp, size_p(max_degree), max_degree)

  num = size_y(max_degree)
  y, y_phi, y_theta = [None] * num, [None] * num, [None] * num
  zeros = jnp.zeros_like(p[..., 0])
  for l in range(max_degree + 1):
    y[index_y(l, 0)] = p[..., index_p(l, 0)] * _INV_SQRT2
    y_phi[index_y(l, 0)] = zeros
    y_theta[index_y(l, 0)] = dp[..., index_p(l, 0)] * _INV_SQRT2

  sig = 1
  ep = _INV_SQRT2
  ep_fact = s * jnp.sqrt(jnp.maximum(1 - x * x, 0)) + 1j * x
  for m in range(1, max_degree + 1):
    sig = -sig
    ep = ep * ep_fact
    em = sig * jnp.conj(ep)
    ep_dphi = 1j * m * ep
    em_dphi = -1j * m * em
    for l in range(m, max_degree + 1):
      pv = p[..., index_p(l, m)]
      dpv = dp[..., index_p(l, m)]
      y[index_y(l, -m)] = em * pv
      y[index_y(l, m)] = ep * pv
      y_phi[index_y(l, -m)] = em_dphi * pv
      y_phi[index_y(l, m)] = ep_dphi * pv
      y_theta[index_y(l, -m)] = em * dpv
      y_theta[index_y(l, m)] = ep * dpv

  dtype = jnp.result_type(p.dtype, jnp.complex64)
  y = jnp.stack(y, axis=-1).astype(dtype)
  dy = spherical_to_cartesian_gradient(
      r[..., None],
      x[..., None],
      z[..., None],
      s[..., None],
      jnp.stack(y_phi, axis=-1).astype(dtype),
      jnp.stack(y_theta, axis=-1).astype(dtype),
  )
  return y, dy


def spherical_harmonics(
    r: Float[Array, '... 3'],
    max_degree: int,
    coefficients: Optional[ALPCoefficients] = None,
) -> Complex[Array, '... (max_degree+1)**2']:
  r"""Complex spherical harmonics :math:`Y_\ell^m(\hat{R})` of Cartesian input.

  Example:
    >>> import jax.numpy as jnp
    >>> import acecore
    >>> y = acecore.so3.spherical_harmonics(jnp.asarray([0., 0., 2.]), 1)
    >>> jnp.round(y.real, 6)
    Array([0.199471, 0.      , 0.345494, 0.      ], dtype=float64)

  Args:
    r: Array of shape ``(..., 3)`` containing Cartesian vectors.
    max_degree: Maximum degree :math:`L`.
    coefficients: Precomputed Legendre recursion coefficients.

  Returns:
    An Array of shape ``(..., (L+1)**2)``, see
    :func:`complex_spherical_harmonics`.
  """
  rr, x, z, s = cartesian_to_rxzs(r)
  p = legendre_p(max_degree, z, coefficients)
  return complex_spherical_harmonics(max_degree, rr, x, z, s, p)


def spherical_harmonics_gradient(
    r: Float[Array, '... 3'],
    max_degree: int,
    coefficients: Optional[ALPCoefficients] = None,
) -> Tuple[
    Complex[Array, '... (max_degree+1)**2'],
    Complex[Array, '... (max_degree+1)**2 3'],
]:
  """Complex spherical harmonics of Cartesian input and their gradients.

  Args:
    r: Array of shape ``(..., 3)`` containing Cartesian vectors.
    max_degree: Maximum degree :math:`L`.
    coefficients: Precomputed Legendre recursion coefficients.

  Returns:
    A tuple ``(Y, dY)``, see :func:`complex_spherical_harmonics_gradient`.
  """
  rr, x, z, s = cartesian_to_rxzs(r)
  p, dp = legendre_dp(max_degree, z, coefficients)
  return complex_spherical_harmonics_gradient(max_degree, rr, x, z, s, p, dp)


class SHBasis:
  """Complex spherical harmonics basis up to a fixed maximum degree.

  The Legendre recursion coefficients are computed once at construction and
  are never modified afterwards. Every evaluation returns newly allocated
  arrays, so a single instance can be shared between threads.

  Attributes:
    max_degree: Maximum degree of the basis.
    coefficients: Precomputed Legendre recursion coefficients.
  """

  def __init__(self, max_degree: int):
    _check_degree_is_positive_or_zero(max_degree)
    self.max_degree = max_degree
    self.coefficients = compute_coefficients(max_degree)

  def __len__(self) -> int:
    return size_y(self.max_degree)

  def __repr__(self) -> str:
    return f'SHBasis(max_degree={self.max_degree})'

  def _degree(self, max_degree: Optional[int]) -> int:
    if max_degree is None:
      return self.max_degree
    if not 0 <= max_degree <= self.max_degree:
      raise ValueError(
          f'max_degree must be between 0 and {self.max_degree}, received '
          f'{max_degree}'
      )
    return max_degree

  def evaluate(
      self, r: Float[Array, '... 3'], max_degree: Optional[int] = None
  ) -> Complex[Array, '... num']:
    """Evaluates all spherical harmonics up to max_degree (default: all)."""
    return spherical_harmonics(r, self._degree(max_degree), self.coefficients)

  def evaluate_gradient(
      self, r: Float[Array, '... 3'], max_degree: Optional[int] = None
  ) -> Tuple[Complex[Array, '... num'], Complex[Array, '... num 3']]:
    """Evaluates spherical harmonics and their Cartesian gradients."""
    return spherical_harmonics_gradient(
        r, self._degree(max_degree), self.coefficients
    )

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

r"""Rotation matrices, Euler angles and complex Wigner-D matrices.

All rotations act on column vectors, i.e. a point :math:`\vec{r}` is mapped to
:math:`Q\vec{r}`. For arrays of row vectors ``r`` of shape ``(..., 3)`` this is
``r @ Q.T``.
"""

import functools
from typing import Dict, List, Tuple, Union
from acecore import ops
import jax
import jax.numpy as jnp
import jaxtyping
import sympy as sp

from ._common import _as_float_array
from ._common import _check_degree_is_positive_or_zero
# pylint: enable=g-importing-member

Array = jaxtyping.Array
Complex = jaxtyping.Complex
Float = jaxtyping.Float
UInt32 = jaxtyping.UInt32
PRNGKey = UInt32[Array, '2']


def _check_rotation_matrix_shape(rot: Float[Array, '...']) -> None:
  """Helper function to check the shape of a rotation matrix.

  Args:
    rot: Array that should be checked for the correct shape.

  Raises:
    ValueError: If the shape is invalid for a rotation matrix.
  """
  if rot.shape[-2:] != (3, 3):
    raise ValueError(
        'rotation matrices must have shape (..., 3, 3), received '
        f'shape {rot.shape}'
    )


def rotation_zyz(
    a: Float[Array, '...'],
    b: Float[Array, '...'],
    c: Float[Array, '...'],
) -> Float[Array, '... 3 3']:
  r""":math:`3\times3` rotation matrix from ZYZ Euler angles.

  Returns :math:`Q = R_z(a)\,R_y(b)\,R_z(c)`, i.e. the counterclockwise
  rotation about the :math:`z`-axis by ``c``, followed by rotation about the
  :math:`y`-axis by ``b``, followed by rotation about the :math:`z`-axis by
  ``a``.

  Example:
    >>> import jax.numpy as jnp
    >>> import acecore
    >>> r = jnp.asarray([0., 0., 1.])  # Unit vector in z-direction.
    >>> # Rotate by 90° about y-axis.
    >>> q = acecore.so3.rotation_zyz(0.0, jnp.pi / 2, 0.0)
    >>> jnp.round(q @ r, decimals=3)
    Array([1., 0., 0.], dtype=float64)

  Args:
    a: Angle of the final rotation about the :math:`z`-axis in radians.
    b: Angle of the rotation about the :math:`y`-axis in radians.
    c: Angle of the first rotation about the :math:`z`-axis in radians.

  Returns:
    The :math:`3\times3` rotation matrix.
  """
  a, b, c = jnp.broadcast_arrays(
      *(jnp.asarray(angle, dtype=jnp.result_type(float)) for angle in (a, b, c))
  )
  sin_a, cos_a = jnp.sin(a), jnp.cos(a)
  sin_b, cos_b = jnp.sin(b), jnp.cos(b)
  sin_c, cos_c = jnp.sin(c), jnp.cos(c)
  row1 = jnp.stack(
      (
          cos_a * cos_b * cos_c - sin_a * sin_c,
          -cos_a * cos_b * sin_c - sin_a * cos_c,
          cos_a * sin_b,
      ),
      axis=-1,
  )
  row2 = jnp.stack(
      (
          sin_a * cos_b * cos_c + cos_a * sin_c,
          -sin_a * cos_b * sin_c + cos_a * cos_c,
          sin_a * sin_b,
      ),
      axis=-1,
  )
  row3 = jnp.stack((-sin_b * cos_c, sin_b * sin_c, cos_b), axis=-1)
  return jnp.stack((row1, row2, row3), axis=-2)


def euler_angles_zyz_from_rotation(
    rot: Float[Array, '... 3 3']
) -> Tuple[Float[Array, '...'], Float[Array, '...'], Float[Array, '...']]:
  r"""Extracts ZYZ Euler angles from a rotation matrix.

  Inverse of :func:`rotation_zyz <acecore.so3.rotations.rotation_zyz>`: the
  returned angles ``(a, b, c)`` satisfy ``rotation_zyz(a, b, c) == rot`` with
  :math:`0\le b\le\pi`. If :math:`\sin b = 0`, only :math:`a\pm c` is
  determined and ``c = 0`` is chosen.

  Args:
    rot: An Array of shape ``(..., 3, 3)`` representing proper rotation
      matrices.

  Returns:
    A tuple ``(a, b, c)`` of Arrays with shape ``(...)``.

  Raises:
    ValueError: If ``rot`` does not have shape ``(..., 3, 3)``.
  """
  rot = _as_float_array(rot)
  _check_rotation_matrix_shape(rot)

  # Normal case: 0 < b < pi.
  b = jnp.arctan2(ops.norm(rot[..., :2, 2], axis=-1), rot[..., 2, 2])
  a = jnp.arctan2(rot[..., 1, 2], rot[..., 0, 2])
  c = jnp.arctan2(rot[..., 2, 1], -rot[..., 2, 0])

  # Special case: rot[..., 2, 2] is 1 or -1.
  almost1 = 1.0 - jnp.finfo(rot.dtype).epsneg
  mask_pos = rot[..., 2, 2] > almost1  # b = 0.
  mask_neg = rot[..., 2, 2] < -almost1  # b = pi.
  c = jnp.where(jnp.logical_or(mask_pos, mask_neg), 0.0, c)
  a = jnp.where(mask_pos, jnp.arctan2(rot[..., 1, 0], rot[..., 0, 0]), a)
  b = jnp.where(mask_pos, 0.0, b)
  a = jnp.where(mask_neg, jnp.arctan2(-rot[..., 1, 0], -rot[..., 0, 0]), a)
  b = jnp.where(mask_neg, jnp.pi, b)

  return a, b, c


def random_rotation(
    key: PRNGKey,
    num: int = 1,  # When num=1, leading dimension is automatically squeezed.
) -> Union[Float[Array, '3 3'], Float[Array, 'num 3 3']]:
  r"""Samples uniformly distributed :math:`3\times3` rotation matrices.

  Rotations are obtained from random unit quaternions, which yields the Haar
  (uniform) distribution on :math:`\mathrm{SO}(3)`.

  Args:
    key: A PRNG key used as the random key.
    num: Number of returned rotation matrices.

  Returns:
    An Array of shape ``(num, 3, 3)`` or ``(3, 3)`` (if ``num=1``).
  """
  twopi = 2 * jnp.pi
  u = jax.random.uniform(key, shape=(num, 3), dtype=jnp.result_type(float))
  sqrt1 = jnp.sqrt(1 - u[..., 0])
  sqrt2 = jnp.sqrt(u[..., 0])
  # Construct random unit quaternion (r, i, j, k).
  r = sqrt1 * jnp.sin(twopi * u[..., 1])
  i = sqrt1 * jnp.cos(twopi * u[..., 1])
  j = sqrt2 * jnp.sin(twopi * u[..., 2])
  k = sqrt2 * jnp.cos(twopi * u[..., 2])
  i2, j2, k2 = i * i, j * j, k * k
  ij, ik, jk, ir, jr, kr = i * j, i * k, j * k, i * r, j * r, k * r
  row1 = jnp.stack((1 - 2 * (j2 + k2), 2 * (ij - kr), 2 * (ik + jr)), axis=-1)
  row2 = jnp.stack((2 * (ij + kr), 1 - 2 * (i2 + k2), 2 * (jk - ir)), axis=-1)
  row3 = jnp.stack((2 * (ik - jr), 2 * (jk + ir), 1 - 2 * (i2 + j2)), axis=-1)
  rot = jnp.stack((row1, row2, row3), axis=-2)
  return rot[0] if num == 1 else rot


def random_reflection(
    key: PRNGKey,
    num: int = 1,  # When num=1, leading dimension is automatically squeezed.
) -> Union[Float[Array, '3 3'], Float[Array, 'num 3 3']]:
  r"""Samples random reflections (Householder matrices).

  Returns :math:`I - 2\hat{n}\hat{n}^\intercal` for a uniformly distributed unit
  vector :math:`\hat{n}`. The result is orthogonal with determinant
  :math:`-1`.

  Args:
    key: A PRNG key used as the random key.
    num: Number of returned reflection matrices.

  Returns:
    An Array of shape ``(num, 3, 3)`` or ``(3, 3)`` (if ``num=1``).
  """
  n = jax.random.normal(key, shape=(num, 3), dtype=jnp.result_type(float))
  n = ops.safe_divide(n, ops.norm(n, axis=-1, keepdims=True))
  rot = jnp.eye(3, dtype=n.dtype) - 2 * n[..., :, None] * n[..., None, :]
  return rot[0] if num == 1 else rot


@functools.lru_cache(maxsize=None)
def _small_d_terms(
    degree: int,
) -> Dict[Tuple[int, int], List[Tuple[float, int, int]]]:
  r"""Terms of the Wigner small-d matrix elements of a given degree.

  For every pair ``(row, col)`` returns a list of ``(coefficient, k_cos,
  k_sin)`` such that :math:`d_{\mathrm{row},\mathrm{col}}(\beta) = \sum
  \mathrm{coefficient}\cdot\cos(\beta/2)^{k_\cos}\sin(\beta/2)^{k_\sin}`.
  Coefficients are evaluated with exact integer arithmetic.
  """
  l = degree
  f = sp.factorial
  terms = {}
  for row in range(-l, l + 1):
    for col in range(-l, l + 1):
      norm = f(l + row) * f(l - row) * f(l + col) * f(l - col)
      entries = []
      for s in range(max(0, col - row), min(l + col, l - row) + 1):
        denominator = f(l + col - s) * f(s) * f(row - col + s) * f(l - row - s)
        coefficient = (-1) ** (row - col + s) * sp.sqrt(norm) / denominator
        entries.append(
            (float(coefficient), 2 * l + col - row - 2 * s, row - col + 2 * s)
        )
      terms[(row, col)] = entries
  return terms


def _wigner_small_d(
    degree: int, b: Float[Array, '...']
) -> Float[Array, '... 2*degree+1 2*degree+1']:
  """Wigner small-d matrix d(b) of the given degree (rotation about y)."""
  terms = _small_d_terms(degree)
  cos_half = jnp.cos(b / 2)
  sin_half = jnp.sin(b / 2)
  rows = []
  for row in range(-degree, degree + 1):
    cols = []
    for col in range(-degree, degree + 1):
      value = jnp.zeros_like(b)
      for coefficient, k_cos, k_sin in terms[(row, col)]:
        value = value + coefficient * cos_half**k_cos * sin_half**k_sin
      cols.append(value)
    rows.append(jnp.stack(cols, axis=-1))
  return jnp.stack(rows, axis=-2)


def wigner_d(
    rot: Float[Array, '... 3 3'], degree: int
) -> Complex[Array, '... 2*degree+1 2*degree+1']:
  r"""Complex Wigner-D matrix of a given degree for an orthogonal matrix.

  The returned matrix :math:`D` satisfies

  .. math::
    Y_\ell(Q\vec{r}) = D(Q)\,Y_\ell(\vec{r})

  for the vector :math:`Y_\ell = (Y_\ell^{-\ell},\dots,Y_\ell^\ell)` of complex
  spherical harmonics (see :func:`spherical_harmonics
  <acecore.so3.spherical_harmonics.spherical_harmonics>`), rows and columns
  indexed by :math:`m+\ell`. For a proper rotation
  :math:`Q=R_z(\alpha)R_y(\beta)R_z(\gamma)`, the entries are

  .. math::
    D_{mm'}(Q) = e^{im\alpha}\,d^\ell_{mm'}(\beta)\,e^{im'\gamma}\,,

  where :math:`d^\ell` is the Wigner small-d matrix. Improper orthogonal
  matrices (:math:`\det Q=-1`) are handled with :math:`D(Q)=(-1)^\ell
  D(-Q)`, so :math:`D` is a representation of :math:`\mathrm{O}(3)`.

  Example:
    >>> import jax
    >>> import jax.numpy as jnp
    >>> import acecore
    >>> r = jnp.asarray([0.3, -1.4, 0.7])
    >>> rot = acecore.so3.random_rotation(jax.random.PRNGKey(0))
    >>> y = acecore.so3.spherical_harmonics(r, max_degree=2)[4:9]
    >>> y_rot = acecore.so3.spherical_harmonics(rot @ r, max_degree=2)[4:9]
    >>> jnp.allclose(acecore.so3.wigner_d(rot, degree=2) @ y, y_rot)
    Array(True, dtype=bool)

  Args:
    rot: An Array of shape ``(..., 3, 3)`` representing orthogonal matrices.
    degree: Degree :math:`\ell` of the representation.

  Returns:
    A complex Array of shape ``(..., 2*degree+1, 2*degree+1)``.

  Raises:
    ValueError: If ``rot`` does not have shape ``(..., 3, 3)`` or ``degree``
      is negative.
  """
  rot = _as_float_array(rot)
  _check_rotation_matrix_shape(rot)
  _check_degree_is_positive_or_zero(degree)

  improper = jnp.linalg.det(rot) < 0
  rot = jnp.where(improper[..., None, None], -rot, rot)
  a, b, c = euler_angles_zyz_from_rotation(rot)
  m = jnp.arange(-degree, degree + 1)
  dmat = (
      jnp.exp(1j * m[:, None] * a[..., None, None])
      * _wigner_small_d(degree, b)
      * jnp.exp(1j * m[None, :] * c[..., None, None])
  )
  sign = jnp.where(improper, (-1.0) ** degree, 1.0)
  return sign[..., None, None] * dmat

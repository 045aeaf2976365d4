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

r"""Clebsch-Gordan coefficients :math:`\langle j_1 m_1 j_2 m_2 | j_3 m_3\rangle`.

Coefficients are computed with exact rational and integer arithmetic (sympy)
and only converted to floating point at the very end, so they are accurate to
full double precision for all degrees.
"""

import functools
import numbers
import numpy as np
import sympy as sp

from ._common import _check_degree_is_positive_or_zero
# pylint: enable=g-importing-member


def _check_integer(name: str, value: int) -> None:
  """Checks that value is an integer (half-integers are not supported)."""
  if not isinstance(value, numbers.Integral):
    raise ValueError(f'{name} must be an integer, received {value!r}')


@functools.lru_cache(maxsize=None)
def _clebsch_gordan(
    j1: int, m1: int, j2: int, m2: int, j3: int, m3: int
) -> float:
  """Clebsch-Gordan coefficient, assumes valid non-zero arguments."""
  n = (
      (2 * j3 + 1)
      * sp.factorial(j1 + m1)
      * sp.factorial(j1 - m1)
      * sp.factorial(j2 + m2)
      * sp.factorial(j2 - m2)
      * sp.factorial(j3 + m3)
      * sp.factorial(j3 - m3)
      / (
          sp.factorial(j1 + j2 - j3)
          * sp.factorial(j1 - j2 + j3)
          * sp.factorial(-j1 + j2 + j3)
          * sp.factorial(j1 + j2 + j3 + 1)
      )
  )
  # The binomials below are non-zero only for
  # 0 <= k <= j1+j2-j3, j2-j3-m1 <= k <= j1-m1 and j1-j3+m2 <= k <= j2+m2.
  lb = max(0, j2 - j3 - m1, j1 - j3 + m2)
  ub = min(j1 + j2 - j3, j1 - m1, j2 + m2)
  g = sp.S(0)
  for k in range(lb, ub + 1):
    g += (
        (-1) ** k
        * sp.binomial(j1 + j2 - j3, k)
        * sp.binomial(j1 - j2 + j3, j1 - m1 - k)
        * sp.binomial(-j1 + j2 + j3, j2 + m2 - k)
    )
  return float(sp.sign(g) * sp.sqrt(n * g**2))


def clebsch_gordan(
    j1: int, m1: int, j2: int, m2: int, j3: int, m3: int
) -> float:
  r"""Clebsch-Gordan coefficient :math:`\langle j_1 m_1 j_2 m_2|j_3 m_3\rangle`.

  Uses the closed form

  .. math::
    \langle j_1 m_1 j_2 m_2|j_3 m_3\rangle = \sqrt{N}\,\sum_k (-1)^k
    \binom{j_1+j_2-j_3}{k}\binom{j_1-j_2+j_3}{j_1-m_1-k}
    \binom{-j_1+j_2+j_3}{j_2+m_2-k}

  with

  .. math::
    N = \frac{(2j_3+1)\,(j_1\pm m_1)!\,(j_2\pm m_2)!\,(j_3\pm m_3)!}
    {(j_1+j_2-j_3)!\,(j_1-j_2+j_3)!\,(-j_1+j_2+j_3)!\,(j_1+j_2+j_3+1)!}\,,

  where :math:`(j\pm m)!` is short for :math:`(j+m)!\,(j-m)!`. The coefficient
  vanishes unless :math:`m_3=m_1+m_2`, :math:`|j_1-j_2|\le j_3\le j_1+j_2`
  and :math:`|m_i|\le j_i`; in these cases ``0.0`` is returned directly.

  Example:
    >>> import acecore
    >>> round(acecore.so3.clebsch_gordan(1, 0, 1, 0, 0, 0), 6)
    -0.57735

  Args:
    j1: Degree of the first factor.
    m1: Order of the first factor.
    j2: Degree of the second factor.
    m2: Order of the second factor.
    j3: Degree of the coupled state.
    m3: Order of the coupled state.

  Returns:
    The Clebsch-Gordan coefficient as float.

  Raises:
    ValueError: If any argument is not an integer or any degree is negative.
  """
  for name, value in zip(
      ('j1', 'm1', 'j2', 'm2', 'j3', 'm3'), (j1, m1, j2, m2, j3, m3)
  ):
    _check_integer(name, value)
  for degree in (j1, j2, j3):
    _check_degree_is_positive_or_zero(degree)

  if m3 != m1 + m2 or not abs(j1 - j2) <= j3 <= j1 + j2:
    return 0.0
  if abs(m1) > j1 or abs(m2) > j2 or abs(m3) > j3:
    return 0.0
  return _clebsch_gordan(int(j1), int(m1), int(j2), int(m2), int(j3), int(m3))


def clebsch_gordan_for_degrees(l1: int, l2: int, l3: int) -> np.ndarray:
  r"""All Clebsch-Gordan coefficients for fixed degrees.

  Example:
    >>> import acecore
    >>> cg = acecore.so3.clebsch_gordan_for_degrees(1, 1, 0)
    >>> cg.shape
    (3, 3, 1)

  Args:
    l1: Degree of the first factor.
    l2: Degree of the second factor.
    l3: Degree of the coupled state.

  Returns:
    A read-only NumPy array of shape ``(2*l1+1, 2*l2+1, 2*l3+1)`` whose entry
    ``[m1+l1, m2+l2, m3+l3]`` holds
    :math:`\langle l_1 m_1 l_2 m_2|l_3 m_3\rangle`.

  Raises:
    ValueError: If any degree is not a non-negative integer.
  """
  for name, value in zip(('l1', 'l2', 'l3'), (l1, l2, l3)):
    _check_integer(name, value)
    _check_degree_is_positive_or_zero(value)
  return _clebsch_gordan_block(int(l1), int(l2), int(l3))


@functools.lru_cache(maxsize=None)
def _clebsch_gordan_block(l1: int, l2: int, l3: int) -> np.ndarray:
  """Read-only block of coefficients, assumes valid arguments."""
  cg = np.zeros((2 * l1 + 1, 2 * l2 + 1, 2 * l3 + 1), dtype=np.float64)
  if abs(l1 - l2) <= l3 <= l1 + l2:
    for m1 in range(-l1, l1 + 1):
      for m2 in range(-l2, l2 + 1):
        m3 = m1 + m2
        if abs(m3) <= l3:
          cg[m1 + l1, m2 + l2, m3 + l3] = clebsch_gordan(l1, m1, l2, m2, l3, m3)
  cg.setflags(write=False)
  return cg

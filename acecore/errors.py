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

"""Exceptions raised by acecore.

Violated preconditions (invalid degrees, shapes, arguments out of range) are
reported with plain ``ValueError``. Inputs that are valid for the caller but
lie outside the domain where a quantity is mathematically defined raise
:class:`NumericalDomainError`.
"""


class NumericalDomainError(ValueError):
  """Raised when an input lies outside the domain of a numerical quantity.

  Examples are zero-length direction vectors (whose direction is undefined) or
  Cartesian gradients of spherical harmonics at the poles, where the angular
  parametrization is singular.
  """

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

"""Global configuration options for acecore."""

import jax


class Config:
  """Static class for storing global configuration options for acecore.

  Attributes:
    enable_x64: Whether JAX computes in double precision. All numerical
      tolerances of acecore assume double precision, so this is enabled by
      default when the package is imported.
    rank_tolerance: Threshold for singular values (relative to the largest
      one, or to 1 if that is smaller) below which coupled basis functions
      are considered linearly dependent (and dropped) when a
      :class:`SymmetricBasis <acecore.basis.SymmetricBasis>` is built.
  """

  enable_x64: bool = True
  rank_tolerance: float = 1e-10

  @staticmethod
  def set_enable_x64(enable_x64: bool = True) -> None:
    """Sets the value of Config.enable_x64 and applies it to JAX.

    Args:
      enable_x64: New value for Config.enable_x64.
    """
    Config.enable_x64 = enable_x64
    jax.config.update('jax_enable_x64', enable_x64)

  @staticmethod
  def set_rank_tolerance(rank_tolerance: float = 1e-10) -> None:
    """Sets the value of Config.rank_tolerance.

    Args:
      rank_tolerance: New value for Config.rank_tolerance.

    Raises:
      ValueError: If ``rank_tolerance`` is not strictly between 0 and 1.
    """
    if not 0.0 < rank_tolerance < 1.0:
      raise ValueError(
          'rank_tolerance must be between 0.0 and 1.0, received '
          f'{rank_tolerance}'
      )
    Config.rank_tolerance = rank_tolerance

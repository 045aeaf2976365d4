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

"""acecore API.

Rotation and permutation invariant (or equivariant) basis functions of the
Atomic Cluster Expansion. The :obj:`so3 <acecore.so3>` submodule contains the
mathematical engine (Legendre polynomials, complex spherical harmonics,
Clebsch-Gordan coefficients, Wigner-D matrices), the :obj:`basis
<acecore.basis>` submodule builds product bases over neighbor clusters and
contracts them into symmetry-adapted bases.
"""

from .config import Config

# All tolerances of acecore assume double precision.
Config.set_enable_x64(Config.enable_x64)

# pylint: disable=g-import-not-at-top,g-bad-import-order
from . import ops
from . import so3
from . import basis
from .errors import NumericalDomainError
from .version import __version__

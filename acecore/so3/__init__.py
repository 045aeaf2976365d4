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

r"""Functions related to :math:`\mathrm{SO}(3)` and :math:`\mathrm{O}(3)`.

Associated Legendre polynomials, complex spherical harmonics (with analytic
gradients), Clebsch-Gordan coefficients and complex Wigner-D matrices.
"""


from ._common import index_p
from ._common import index_y
from ._common import size_p
from ._common import size_y
from .clebsch_gordan import clebsch_gordan
from .clebsch_gordan import clebsch_gordan_for_degrees
from .legendre import ALPCoefficients
from .legendre import compute_coefficients
from .legendre import legendre_dp
from .legendre import legendre_p
from .rotations import euler_angles_zyz_from_rotation
from .rotations import random_reflection
from .rotations import random_rotation
from .rotations import rotation_zyz
from .rotations import wigner_d
from .spherical_harmonics import cartesian_to_rxzs
from .spherical_harmonics import complex_spherical_harmonics
from .spherical_harmonics import complex_spherical_harmonics_gradient
from .spherical_harmonics import SHBasis
from .spherical_harmonics import spherical_harmonics
from .spherical_harmonics import spherical_harmonics_gradient
from .spherical_harmonics import spherical_to_cartesian_gradient

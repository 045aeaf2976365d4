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

r"""Permutation-invariant and symmetry-adapted basis functions of clusters.

Typical usage builds a one-particle basis, a product basis on top of it and
finally contracts the products to a basis with the desired symmetry:

  >>> import acecore
  >>> one_particle = acecore.basis.RnYlmBasis(max_degree=6)
  >>> prop = acecore.basis.Invariant()
  >>> pi_basis = acecore.basis.PIBasis(one_particle, 3, 6, prop)
  >>> basis = acecore.basis.SymmetricBasis(pi_basis, prop)
"""


from .one_particle import NaiveTotalDegree
from .one_particle import RnYlmBasis
from .pi_basis import PIBasis
from .properties import Invariant
from .properties import Property
from .properties import SphericalVector
from .radial import chebyshev_radial_basis
from .radial import smooth_cutoff
from .states import ClusterState
from .states import random_cluster
from .symmetric_basis import evaluate
from .symmetric_basis import evaluate_gradient
from .symmetric_basis import SymmetricBasis

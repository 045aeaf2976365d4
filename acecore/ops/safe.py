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

"""Numerically stable and nan-safe implementations of common operations.

Direction vectors of neighbors are converted to angular coordinates by
dividing through norms, which vanish at the origin and (for the in-plane
component) on the z-axis. The implementations in this module stay finite for
such inputs, both in the forward pass and in derivatives.
"""

import functools
from typing import Any, Optional, Tuple, Union
import jax
import jax.numpy as jnp
import jaxtyping

Array = jaxtyping.Array
Float = jaxtyping.Float


@functools.partial(jax.custom_jvp, nondiff_argnums=(1, 2))
def norm(
    x: Float[Array, '*input_shape'],
    axis: Optional[Union[int, Tuple[int, ...]]] = None,
    keepdims: bool = False,
) -> Union[Float[Array, '*reduced_shape'], Float[Array, '*input_shape']]:
  """L2-norm of x along the specified axis.

  Equivalent to jax.numpy.linalg.norm(x, axis=axis, keepdims=keepdims), except
  that very large entries do not overflow and the derivative at x = 0 is zero
  instead of NaN.

  Args:
    x: Input array.
    axis: Axis or axes along which the L2-norm is computed. The default,
      axis=None, computes the norm of all elements of the input array.
    keepdims: If True, the reduced axes are kept with size one.

  Returns:
    The L2-norm of x along axis.
  """
  a = jnp.maximum(
      jnp.max(jnp.abs(x), axis=axis, keepdims=True), jnp.finfo(x.dtype).tiny
  )
  b = x / a
  n = a * jnp.sqrt(jnp.sum(b * b, axis=axis, keepdims=True))
  if not keepdims:
    n = jnp.squeeze(n, axis=axis)
  return n


@norm.defjvp
def _norm_jvp_impl(
    axis: Optional[Union[int, Tuple[int, ...]]],
    keepdims: bool,
    primals: Any,
    tangents: Any,
) -> Tuple[Any, Any]:
  """JVP implementation for norm function, should not be called directly."""
  (x,) = primals
  (x_dot,) = tangents
  primal_out = norm(x, axis=axis, keepdims=keepdims)
  masked_primal_out = jnp.where(primal_out > 0, primal_out, 1)
  if not keepdims and axis is not None:
    masked_primal_out = jnp.expand_dims(masked_primal_out, axis=axis)
  tangent_out = jnp.sum(
      x_dot * x / masked_primal_out,
      axis=axis,
      keepdims=keepdims,
  )
  return primal_out, tangent_out


def safe_divide(
    numerator: Float[Array, '...'],
    denominator: Float[Array, '...'],
    fallback: Union[Float[Array, '...'], float] = 0.0,
) -> Float[Array, '...']:
  """Divides numerator by denominator, returning fallback where it is zero.

  The division is masked with jnp.where *before* it is carried out, so neither
  the result nor its derivatives contain NaNs or infinities for zero
  denominators.

  Args:
    numerator: Dividend.
    denominator: Divisor.
    fallback: Value used where ``denominator`` is exactly zero.

  Returns:
    numerator / denominator, or ``fallback`` where the denominator is zero.
  """
  nonzero = denominator != 0
  safe_denominator = jnp.where(nonzero, denominator, 1)
  return jnp.where(nonzero, numerator / safe_denominator, fallback)

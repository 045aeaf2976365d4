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

"""Utilities for testing."""

from typing import Any, Dict

import pytest


def subtests(subtest_dictionary: Dict[str, Dict[str, Any]]):
  """Named subtests as a readable alternative to pytest.mark.parametrize.

  Instead of listing argument names and tuples of values separately, every
  subtest is given as a dictionary of keyword arguments under its id:

  @subtests({
    'degree 0': dict(
      max_degree=0,
      expected_size=1
    ),
    'degree 2': dict(
      max_degree=2,
      expected_size=6
    )
  })
  def test_size_p(max_degree, expected_size):
    assert acecore.so3.size_p(max_degree) == expected_size

  Args:
    subtest_dictionary: Dictionary mapping subtest ids to dictionaries of
      keyword arguments. All subtests must specify the same arguments.

  Returns:
    The equivalent pytest.mark.parametrize decorator.

  Raises:
    ValueError: If the subtests do not all specify the same arguments.
  """
  argnames = None
  for name, kwargs in subtest_dictionary.items():
    if argnames is None:
      argnames = sorted(kwargs)
    elif sorted(kwargs) != argnames:
      raise ValueError(
          f'subtest {name!r} has arguments {sorted(kwargs)}, expected '
          f'{argnames}'
      )
  argnames = argnames or []
  return pytest.mark.parametrize(
      argnames=argnames,
      argvalues=[[v[k] for k in argnames] for v in subtest_dictionary.values()],
      ids=list(subtest_dictionary.keys()),
  )

import glob
import os
import warnings

import pytest

import chargetransport as ct


sources = sorted(glob.glob(os.path.join(os.path.dirname(ct.__file__), '*.py')))


@pytest.mark.parametrize('path', sources, ids=os.path.basename)
def test_sources_compile_without_warnings(path):
    with open(path) as f:
        source = f.read()
    # invalid escape sequences in docstrings are reported as warnings
    with warnings.catch_warnings():
        warnings.simplefilter('error')
        compile(source, path, 'exec')


def test_public_names():
    for name in ct.__all__:
        assert hasattr(ct, name)

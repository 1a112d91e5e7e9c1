# Copyright 2017 University of Maryland.
#
# This file is part of Chargetransport. It is subject to the license terms in
# the file LICENSE.rst found in the top-level directory of this distribution.

# Read by setup.py without importing the package dependencies.
__version__ = "0.1"

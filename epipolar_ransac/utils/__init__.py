"""
Utility modules for two-view geometry.
"""

from .math_utils import *

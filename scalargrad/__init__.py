"""
Scalargrad: a minimal scalar-valued autograd engine.

This package provides reverse-mode automatic differentiation over scalar
Values, and neurons, layers and multi-layer perceptrons trained with
gradient descent.
"""

from scalargrad.engine import Value, Operation, backward
from scalargrad import nn
from scalargrad.train import gradient_descent
from scalargrad.utils import draw_dot

__version__ = "0.1.0"
__all__ = ["Value", "Operation", "backward", "nn", "gradient_descent", "draw_dot"]

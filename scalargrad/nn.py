"""
Neural network building blocks for scalargrad.

This module provides neurons, layers and multi-layer perceptrons built from
scalar Values, so every weight and bias is a leaf in the computational graph.
"""

import logging
import uuid

import numpy as np
from scalargrad.engine import Value

logger = logging.getLogger(__name__)


class DimensionError(ValueError):
    """Raised when a call supplies a different number of values than expected."""

    def __init__(self, what, expected, actual):
        super().__init__(f"{what}: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


# Activation functions

def linear(x):
    """Identity activation."""
    return x


def sigmoid(x):
    return x.sigmoid()


def tanh(x):
    return x.tanh()


def relu(x):
    return x.relu()


ACTIVATIONS = {
    'linear': linear,
    'sigmoid': sigmoid,
    'tanh': tanh,
    'relu': relu,
}


def get_activation(activation):
    """Resolve an activation given by name, or pass a callable through."""
    if isinstance(activation, str):
        try:
            return ACTIVATIONS[activation]
        except KeyError:
            raise ValueError(
                f"unknown activation {activation!r}, expected one of {sorted(ACTIVATIONS)}"
            ) from None
    return activation


class Module:
    """
    Base class for all neural network modules.

    Provides common functionality for managing parameters and gradients.
    """

    def zero_grad(self):
        """
        Reset all gradients to zero.

        Call this before each backward pass to avoid accumulating gradients
        from multiple backward passes.
        """
        for p in self.parameters():
            p.grad = 0.0

    def parameters(self):
        """
        Return a list of all trainable parameters (weights and biases).

        Override this in subclasses to return actual parameters.
        """
        return []


class Neuron(Module):
    """
    A single unit: activation(bias + Σ weight_i * input_i)

    Args:
        nin: Number of inputs
        name: Name used as prefix for the weight, bias and output Values
        activation: Activation function or its name (default: tanh)
        weights: Optional pre-initialized weights (nin values)
        bias: Optional pre-initialized bias
        layer_id: Id of the Layer owning this Neuron, for visualization
        rng: numpy Generator used to draw the initial parameters

    Example:
        >>> n = Neuron(3, 'n0', weights=[0.1, -0.2, 0.3], bias=0.0)
        >>> out = n([1, 1, 1])  # tanh(0.2)
    """

    def __init__(self, nin, name="", activation=tanh, weights=None, bias=None,
                 layer_id="", rng=None):
        self.id = str(uuid.uuid4())
        self.name = name
        self.layer_id = layer_id
        self.activation = get_activation(activation)

        # Uniform in [-1, 1), weights first, bias last
        rng = rng if rng is not None else np.random.default_rng()
        init = rng.uniform(-1.0, 1.0, nin + 1)

        if weights is not None:
            if len(weights) != nin:
                raise DimensionError(f"Neuron {name} weights", nin, len(weights))
            init[:nin] = weights
        if bias is not None:
            init[nin] = bias

        self.weights = [self._param(w, f"{name}.w{i}") for i, w in enumerate(init[:nin])]
        self.bias = self._param(init[nin], f"{name}.b")

    def _param(self, data, name):
        return Value(data, name=name, neuron_id=self.id, layer_id=self.layer_id,
                     kind='weight')

    @property
    def nin(self):
        return len(self.weights)

    def __call__(self, inputs):
        """
        Forward pass: compute the neuron output.

        Args:
            inputs: Sequence of Values or plain numbers, one per weight

        Returns:
            A single output Value
        """
        if len(inputs) != self.nin:
            raise DimensionError(f"Neuron {self.name} inputs", self.nin, len(inputs))

        act = self.bias
        for i, (w, x) in enumerate(zip(self.weights, inputs)):
            if not isinstance(x, Value):
                x = Value(x, name=f"x{i}", kind='input')
            act = act + (w * x).relabel(f"{w.name}.wtd")
            act.relabel(f"{self.name}.sum")

        out = self.activation(act)
        out.relabel(f"{self.name}.out", self.id, self.layer_id)
        out.kind = 'output'
        return out

    def parameters(self):
        """Weights followed by bias, in construction order."""
        return self.weights + [self.bias]

    def __repr__(self):
        return f"Neuron({self.nin}, {self.activation.__name__})"


class Layer(Module):
    """
    A set of Neurons that all receive the same inputs.

    Args:
        nin: Number of inputs of every Neuron
        nout: Number of Neurons (outputs)
        name: Layer name, Neurons are named '<name>.n<i>'
        activation: Activation function or its name (default: tanh)
        weights: Optional per-neuron weights (nout lists of nin values)
        biases: Optional per-neuron biases (nout values)
        rng: numpy Generator used to draw the initial parameters
    """

    def __init__(self, nin, nout, name="", activation=tanh, weights=None,
                 biases=None, rng=None):
        self.id = str(uuid.uuid4())
        self.name = name
        self.nin = nin

        if weights is not None and len(weights) != nout:
            raise DimensionError(f"Layer {name} weights", nout, len(weights))
        if biases is not None and len(biases) != nout:
            raise DimensionError(f"Layer {name} biases", nout, len(biases))

        rng = rng if rng is not None else np.random.default_rng()
        self.neurons = [
            Neuron(
                nin,
                f"{name}.n{i}",
                activation=activation,
                weights=weights[i] if weights is not None else None,
                bias=biases[i] if biases is not None else None,
                layer_id=self.id,
                rng=rng,
            )
            for i in range(nout)
        ]

    def __call__(self, inputs):
        """Apply the inputs to every Neuron, returning one output per Neuron."""
        if len(inputs) != self.nin:
            raise DimensionError(f"Layer {self.name} inputs", self.nin, len(inputs))
        return [n(inputs) for n in self.neurons]

    def parameters(self):
        """Parameters of every Neuron, in Neuron order."""
        return [p for n in self.neurons for p in n.parameters()]

    def __repr__(self):
        activation = self.neurons[0].activation.__name__ if self.neurons else "none"
        return f"Layer({self.nin} → {len(self.neurons)}, {activation})"


class MLP(Module):
    """
    Multi-Layer Perceptron: a sequence of fully-connected layers.

    Args:
        nin: Number of input features
        layers: One entry per layer, either a neuron count (tanh activation)
                or a (neuron count, activation) pair
                Example: [4, 4, (1, 'linear')] creates input→4→4→1
        weights: Optional list of per-layer weights (see Layer)
        biases: Optional list of per-layer biases (see Layer)
        rng: numpy Generator used to draw the initial parameters

    Example:
        >>> mlp = MLP(3, [4, 4, 1], rng=np.random.default_rng(0))
        >>> outs = mlp([2.5, 1.5, 0.456])
        >>> mlp.zero_grad()
        >>> outs[0].backward()
        >>> for p in mlp.parameters():
        ...     p.data -= learning_rate * p.grad
    """

    def __init__(self, nin, layers, weights=None, biases=None, rng=None):
        rng = rng if rng is not None else np.random.default_rng()
        if weights is not None and len(weights) != len(layers):
            raise DimensionError("MLP weights", len(layers), len(weights))
        if biases is not None and len(biases) != len(layers):
            raise DimensionError("MLP biases", len(layers), len(biases))

        self.nin = nin
        self.layers = []

        layer_nin = nin
        for i, config in enumerate(layers):
            if isinstance(config, (tuple, list)):
                nout, activation = config
            else:
                nout, activation = config, tanh

            layer = Layer(
                layer_nin,
                nout,
                name=f"l{i}",
                activation=activation,
                weights=weights[i] if weights is not None else None,
                biases=biases[i] if biases is not None else None,
                rng=rng,
            )
            self.layers.append(layer)
            layer_nin = nout

        logger.debug("built %r with %d parameters", self, len(self.parameters()))

    def __call__(self, inputs):
        """Pass the inputs through all layers, returning the last layer's outputs."""
        x = inputs
        for layer in self.layers:
            x = layer(x)
        return x

    def parameters(self):
        """Return all trainable parameters from all layers."""
        return [p for layer in self.layers for p in layer.parameters()]

    def __repr__(self):
        layer_str = ' → '.join(str(layer) for layer in self.layers)
        return f"MLP[{layer_str}]"
